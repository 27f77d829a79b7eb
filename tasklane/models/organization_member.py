"""User-Organization membership (join table)."""

from datetime import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from tasklane_shared.schemas.common import OrgRole

from .base import UUIDMixin, _utcnow


class OrganizationMember(UUIDMixin, SQLModel, table=True):
    __tablename__ = "organization_members"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "org_id", name="uq_organization_members_user_org"),
    )

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    org_id: uuid.UUID = Field(foreign_key="organizations.id", nullable=False, index=True)
    role: OrgRole = Field(
        default=OrgRole.MEMBER,
        sa_type=sa.Enum(
            OrgRole,
            name="org_role",
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
