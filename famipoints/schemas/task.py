from datetime import datetime

from pydantic import BaseModel, Field

from ..models.task import TaskAssignmentStatus
from .common import ORMModel


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    points_value: int = Field(default=0, ge=0)


class TaskOut(ORMModel):
    id: str
    title: str
    description: str | None = None
    points_value: int
    created_by_user_id: str


class AssignmentOut(ORMModel):
    id: str
    child_id: str
    task_id: str
    assigned_by_user_id: str | None
    status: TaskAssignmentStatus
    assigned_at: datetime
    submitted_at: datetime | None = None
    verified_by_user_id: str | None = None
    verified_at: datetime | None = None
    completed_at: datetime | None = None
