"""Refresh token ledger. Rows are revoked, never deleted."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin, _utcnow


class RefreshToken(UUIDMixin, SQLModel, table=True):
    __tablename__ = "refresh_tokens"

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    token_hash: str = Field(unique=True, index=True, nullable=False)  # sha256 hex
    expires_at: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    revoked_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    created_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
