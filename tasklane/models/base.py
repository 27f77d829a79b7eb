"""Base mixins for SQLModel tables, plus the shared soft-delete predicate."""

from datetime import datetime, timezone
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel, select


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin(SQLModel):
    created_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_column_kwargs={"onupdate": _utcnow},
        sa_type=sa.DateTime(timezone=True),
    )


class UUIDMixin(SQLModel):
    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
        nullable=False,
    )


class SoftDeleteMixin(SQLModel):
    deleted_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))


# ---------------------------------------------------------------------------
# Soft-delete filtering
# ---------------------------------------------------------------------------

def not_deleted(model: type[SoftDeleteMixin]):
    """SQL predicate selecting rows of ``model`` that have not been soft-deleted."""
    return model.deleted_at.is_(None)


def select_active(model: type[SoftDeleteMixin], *criteria):
    """``select(model)`` restricted to live rows, with optional extra criteria."""
    return select(model).where(not_deleted(model), *criteria)
