"""Project model."""

from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import SoftDeleteMixin, TimestampMixin, UUIDMixin


class Project(UUIDMixin, TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "projects"
    __table_args__ = (
        sa.UniqueConstraint("org_id", "slug", name="uq_projects_org_slug"),
    )

    org_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    name: str = Field(nullable=False)
    slug: str = Field(nullable=False, index=True)
    description: Optional[str] = None
    color: Optional[str] = None  # #rrggbb
