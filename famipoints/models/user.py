from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Optional
from uuid import uuid4

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.base_class import Base
from . import utcnow

if TYPE_CHECKING:
    from .relationship import UserRelationship


class UserRole(StrEnum):
    PARENT = "PARENT"
    CHILD = "CHILD"
    ADMIN = "ADMIN"


class User(Base):
    __tablename__ = "user"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    full_name: Mapped[Optional[str]] = mapped_column(String(128))
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True)
    # role is fixed at registration; role changes belong to admin tooling
    role: Mapped[UserRole] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    child_links: Mapped[list["UserRelationship"]] = relationship(
        back_populates="parent",
        foreign_keys="UserRelationship.parent_id",
        passive_deletes=True,
    )
    parent_links: Mapped[list["UserRelationship"]] = relationship(
        back_populates="child",
        foreign_keys="UserRelationship.child_id",
        passive_deletes=True,
    )
