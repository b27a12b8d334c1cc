from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.base_class import Base
from . import utcnow


class ClaimStatus(StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return not _CLAIM_TRANSITIONS[self]

    def can_become(self, target: "ClaimStatus") -> bool:
        return target in _CLAIM_TRANSITIONS[self]


_CLAIM_TRANSITIONS = {
    ClaimStatus.PENDING: frozenset({ClaimStatus.APPROVED, ClaimStatus.REJECTED}),
    ClaimStatus.APPROVED: frozenset(),
    ClaimStatus.REJECTED: frozenset(),
}

CLAIM_DECISIONS = frozenset({ClaimStatus.APPROVED, ClaimStatus.REJECTED})


class Reward(Base):
    __tablename__ = "reward"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    cost_points: Mapped[int] = mapped_column(Integer, nullable=False)
    created_by_user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("user.id", ondelete="RESTRICT"),
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    claims: Mapped[list["RewardClaim"]] = relationship(back_populates="reward")


class RewardClaim(Base):
    __tablename__ = "rewardclaim"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )

    child_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("user.id", ondelete="CASCADE"),
        index=True,
    )

    reward_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("reward.id", ondelete="RESTRICT"),
        index=True,
    )

    # frozen at claim time so later edits to the reward do not change the refund
    points_deducted: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[ClaimStatus] = mapped_column(
        default=ClaimStatus.PENDING,
        index=True,
    )

    claimed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    reviewed_by_user_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("user.id", ondelete="SET NULL"),
    )

    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    reward: Mapped["Reward"] = relationship(back_populates="claims")
