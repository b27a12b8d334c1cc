from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.base_class import Base
from . import utcnow

if TYPE_CHECKING:
    from .user import User


class UserRelationship(Base):
    """A parent linked to a child. A child may have several parents and vice versa."""

    __table_args__ = (UniqueConstraint("parent_id", "child_id", name="uq_relationship_parent_child"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    parent_id: Mapped[str] = mapped_column(String(36), ForeignKey("user.id", ondelete="CASCADE"), index=True)
    child_id: Mapped[str] = mapped_column(String(36), ForeignKey("user.id", ondelete="CASCADE"), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    parent: Mapped["User"] = relationship(back_populates="child_links", foreign_keys=[parent_id])
    child: Mapped["User"] = relationship(back_populates="parent_links", foreign_keys=[child_id])
