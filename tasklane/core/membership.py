"""
Membership resolution for organizations and projects.

Read-only. Organizations and projects are addressed by slug or by id; only
live (not soft-deleted) rows are visible. Organization OWNER/ADMIN members are
implicitly elevated to project MANAGER on every project of their
organization; that membership is synthesized in memory and has no row.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Union

import structlog
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tasklane.core.errors import Forbidden, NotFound
from tasklane.models.base import select_active
from tasklane.models.organization import Organization
from tasklane.models.organization_member import OrganizationMember
from tasklane.models.project import Project
from tasklane.models.project_member import ProjectMember
from tasklane_shared.schemas.common import OrgRole, ProjectRole

log = structlog.get_logger()

ELEVATED_ORG_ROLES = frozenset({OrgRole.OWNER, OrgRole.ADMIN})


@dataclass(frozen=True)
class PersistedProjectMembership:
    """A real ``project_members`` row."""

    member: ProjectMember

    is_synthesized = False

    @property
    def user_id(self) -> uuid.UUID:
        return self.member.user_id

    @property
    def project_id(self) -> uuid.UUID:
        return self.member.project_id

    @property
    def role(self) -> ProjectRole:
        return ProjectRole(self.member.role)


@dataclass(frozen=True)
class SynthesizedProjectMembership:
    """Effective MANAGER membership derived from an elevated org role."""

    user_id: uuid.UUID
    project_id: uuid.UUID
    source_org_role: OrgRole
    role: ProjectRole = ProjectRole.MANAGER

    is_synthesized = True


ProjectMembership = Union[PersistedProjectMembership, SynthesizedProjectMembership]


def _identifier_clause(model, identifier: str):
    """Match ``identifier`` against slug, and against id when it is a UUID."""
    try:
        as_id = uuid.UUID(identifier)
    except ValueError:
        return model.slug == identifier
    return or_(model.slug == identifier, model.id == as_id)


async def resolve_org_membership(
    user_id: uuid.UUID, org_identifier: str, session: AsyncSession
) -> tuple[Organization, OrganizationMember]:
    """Find the org by slug or id, then the caller's membership in it."""
    result = await session.execute(
        select_active(Organization, _identifier_clause(Organization, org_identifier))
    )
    org = result.scalars().first()
    if org is None:
        raise NotFound("Organization not found")

    result = await session.execute(
        select(OrganizationMember).where(
            OrganizationMember.user_id == user_id,
            OrganizationMember.org_id == org.id,
        )
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        log.info("membership.org_denied", user_id=str(user_id), org_id=str(org.id))
        raise Forbidden("You are not a member of this organization")

    return org, membership


async def resolve_project_membership(
    user_id: uuid.UUID,
    org_membership: OrganizationMember,
    project_identifier: str,
    session: AsyncSession,
) -> tuple[Project, ProjectMembership]:
    """Find the project inside the membership's org, then the caller's
    effective project membership (real or synthesized)."""
    result = await session.execute(
        select_active(
            Project,
            Project.org_id == org_membership.org_id,
            _identifier_clause(Project, project_identifier),
        )
    )
    project = result.scalars().first()
    if project is None:
        raise NotFound("Project not found")

    org_role = OrgRole(org_membership.role)
    if org_role in ELEVATED_ORG_ROLES:
        return project, SynthesizedProjectMembership(
            user_id=user_id,
            project_id=project.id,
            source_org_role=org_role,
        )

    result = await session.execute(
        select(ProjectMember).where(
            ProjectMember.user_id == user_id,
            ProjectMember.project_id == project.id,
        )
    )
    member = result.scalar_one_or_none()
    if member is None:
        log.info("membership.project_denied", user_id=str(user_id), project_id=str(project.id))
        raise Forbidden("You are not a member of this project")

    return project, PersistedProjectMembership(member=member)
