from datetime import datetime
from enum import StrEnum
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db.base_class import Base
from . import utcnow


class TransactionType(StrEnum):
    TASK_COMPLETION = "TASK_COMPLETION"
    REDEMPTION = "REDEMPTION"
    MANUAL_ADJUSTMENT = "MANUAL_ADJUSTMENT"
    REFUND = "REFUND"


class PointTransaction(Base):
    # Append-only. A child's balance is SUM(change_amount); nothing caches it.
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    child_id: Mapped[str] = mapped_column(String(36), ForeignKey("user.id", ondelete="CASCADE"), index=True)
    change_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[TransactionType] = mapped_column(nullable=False)
    related_assignment_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("taskassignment.id", ondelete="SET NULL"), index=True
    )
    related_claim_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("rewardclaim.id", ondelete="SET NULL"), index=True
    )
    created_by_user_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("user.id", ondelete="SET NULL"))
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
