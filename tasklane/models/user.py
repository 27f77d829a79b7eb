"""User model."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import SoftDeleteMixin, TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "users"

    email: str = Field(unique=True, index=True, nullable=False)  # always lowercase
    name: str = Field(nullable=False)
    password_hash: str = Field(nullable=False)  # bcrypt
    avatar_url: Optional[str] = None
