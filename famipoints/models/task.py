from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.base_class import Base
from . import utcnow


class TaskAssignmentStatus(StrEnum):
    ASSIGNED = "ASSIGNED"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return not _TASK_TRANSITIONS[self]

    def can_become(self, target: "TaskAssignmentStatus") -> bool:
        return target in _TASK_TRANSITIONS[self]


_TASK_TRANSITIONS = {
    TaskAssignmentStatus.ASSIGNED: frozenset({TaskAssignmentStatus.SUBMITTED}),
    TaskAssignmentStatus.SUBMITTED: frozenset({TaskAssignmentStatus.APPROVED, TaskAssignmentStatus.REJECTED}),
    TaskAssignmentStatus.APPROVED: frozenset(),
    TaskAssignmentStatus.REJECTED: frozenset(),
}

# statuses a parent may pick when verifying
TASK_DECISIONS = frozenset({TaskAssignmentStatus.APPROVED, TaskAssignmentStatus.REJECTED})


class Task(Base):
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    points_value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_by_user_id: Mapped[str] = mapped_column(String(36), ForeignKey("user.id", ondelete="RESTRICT"), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    assignments: Mapped[list["TaskAssignment"]] = relationship(back_populates="task")


class TaskAssignment(Base):
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    child_id: Mapped[str] = mapped_column(String(36), ForeignKey("user.id", ondelete="CASCADE"), index=True)
    task_id: Mapped[str] = mapped_column(String(36), ForeignKey("task.id", ondelete="RESTRICT"), index=True)
    assigned_by_user_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("user.id", ondelete="SET NULL"))
    status: Mapped[TaskAssignmentStatus] = mapped_column(default=TaskAssignmentStatus.ASSIGNED, index=True)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    verified_by_user_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("user.id", ondelete="SET NULL"))
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    task: Mapped["Task"] = relationship(back_populates="assignments")
