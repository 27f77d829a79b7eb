"""User-Project membership (join table)."""

from datetime import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from tasklane_shared.schemas.common import ProjectRole

from .base import UUIDMixin, _utcnow


class ProjectMember(UUIDMixin, SQLModel, table=True):
    __tablename__ = "project_members"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "project_id", name="uq_project_members_user_project"),
    )

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    project_id: uuid.UUID = Field(foreign_key="projects.id", nullable=False, index=True)
    role: ProjectRole = Field(
        default=ProjectRole.MEMBER,
        sa_type=sa.Enum(
            ProjectRole,
            name="project_role",
            native_enum=False,
            length=16,
            values_callable=lambda roles: [r.value for r in roles],
        ),
        nullable=False,
    )
    joined_at: datetime = Field(
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
