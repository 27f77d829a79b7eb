"""Organization model (tenant boundary)."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import SoftDeleteMixin, TimestampMixin, UUIDMixin


class Organization(UUIDMixin, TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "organizations"

    name: str = Field(nullable=False, index=True)
    slug: str = Field(unique=True, nullable=False, index=True)
    logo_url: Optional[str] = None
