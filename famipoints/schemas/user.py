from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from ..models.user import UserRole
from .common import ORMModel


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=64)
    role: UserRole
    full_name: str | None = None
    email: EmailStr | None = None


class ChildCreate(BaseModel):
    username: str = Field(min_length=3, max_length=64)
    full_name: str | None = None
    email: EmailStr | None = None


class UserOut(ORMModel):
    id: str
    username: str
    full_name: str | None = None
    email: EmailStr | None = None
    role: UserRole
    created_at: datetime
