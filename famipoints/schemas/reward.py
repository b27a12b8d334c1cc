from datetime import datetime

from pydantic import BaseModel, Field

from ..models.reward import ClaimStatus
from .common import ORMModel


class RewardCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    cost_points: int = Field(gt=0)


class RewardOut(ORMModel):
    id: str
    title: str
    description: str | None = None
    cost_points: int
    created_by_user_id: str


class ClaimOut(ORMModel):
    id: str
    child_id: str
    reward_id: str
    points_deducted: int
    status: ClaimStatus
    claimed_at: datetime
    reviewed_by_user_id: str | None = None
    reviewed_at: datetime | None = None
