"""
Project service: project CRUD and project membership management.

Project-member operations act on persisted rows only; a synthesized
(org-admin) membership has no row and is never written back.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tasklane.core.errors import Conflict, NotFound
from tasklane.core.membership import ELEVATED_ORG_ROLES
from tasklane.models.base import not_deleted
from tasklane.models.organization_member import OrganizationMember
from tasklane.models.project import Project
from tasklane.models.project_member import ProjectMember
from tasklane.services.organizations import generate_slug, unique_slug
from tasklane_shared.schemas.common import OrgRole, ProjectRole
from tasklane_shared.schemas.projects import ProjectCreate, ProjectUpdate

log = structlog.get_logger()


async def create_project(
    org_id: uuid.UUID,
    creator_id: uuid.UUID,
    req: ProjectCreate,
    session: AsyncSession,
) -> Project:
    """Create a project; the creator becomes its MANAGER."""
    slug = req.slug or generate_slug(req.name)

    existing = await session.execute(
        select(Project).where(Project.org_id == org_id, Project.slug == slug)
    )
    if existing.scalar_one_or_none():
        slug = unique_slug(req.name)

    project = Project(
        org_id=org_id,
        name=req.name,
        slug=slug,
        description=req.description,
        color=req.color,
    )
    session.add(project)
    await session.flush()

    session.add(
        ProjectMember(user_id=creator_id, project_id=project.id, role=ProjectRole.MANAGER)
    )
    await session.flush()

    log.info("project.created", project_id=str(project.id), org_id=str(org_id), slug=slug)
    return project


async def list_projects(
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    org_role: OrgRole,
    session: AsyncSession,
) -> list[tuple[Project, ProjectRole | None]]:
    """Org OWNER/ADMIN see every project; others only the ones they belong to.

    Returns (project, caller's persisted project role or None).
    """
    stmt = (
        select(Project, ProjectMember.role)
        .outerjoin(
            ProjectMember,
            (ProjectMember.project_id == Project.id) & (ProjectMember.user_id == user_id),
        )
        .where(Project.org_id == org_id, not_deleted(Project))
        .order_by(Project.created_at.desc())
    )
    if org_role not in ELEVATED_ORG_ROLES:
        stmt = stmt.where(ProjectMember.id.is_not(None))

    result = await session.execute(stmt)
    return [(project, role) for project, role in result.all()]


async def update_project(
    project: Project, req: ProjectUpdate, session: AsyncSession
) -> Project:
    for key, value in req.model_dump(exclude_unset=True).items():
        setattr(project, key, value)
    project.updated_at = datetime.now(timezone.utc)
    session.add(project)
    await session.flush()
    log.info("project.updated", project_id=str(project.id))
    return project


async def delete_project(project: Project, session: AsyncSession) -> None:
    project.deleted_at = datetime.now(timezone.utc)
    session.add(project)
    await session.flush()
    log.info("project.deleted", project_id=str(project.id))


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

async def _get_member(
    project_id: uuid.UUID, user_id: uuid.UUID, session: AsyncSession
) -> ProjectMember:
    result = await session.execute(
        select(ProjectMember).where(
            ProjectMember.project_id == project_id,
            ProjectMember.user_id == user_id,
        )
    )
    member = result.scalar_one_or_none()
    if not member:
        raise NotFound("Member not found")
    return member


async def add_project_member(
    project: Project,
    user_id: uuid.UUID,
    role: ProjectRole,
    session: AsyncSession,
) -> ProjectMember:
    """Add an org member to the project."""
    result = await session.execute(
        select(OrganizationMember).where(
            OrganizationMember.org_id == project.org_id,
            OrganizationMember.user_id == user_id,
        )
    )
    if result.scalar_one_or_none() is None:
        raise Conflict("User is not a member of the organization")

    result = await session.execute(
        select(ProjectMember).where(
            ProjectMember.project_id == project.id,
            ProjectMember.user_id == user_id,
        )
    )
    if result.scalar_one_or_none():
        raise Conflict("User is already a member of this project")

    member = ProjectMember(user_id=user_id, project_id=project.id, role=role)
    session.add(member)
    await session.flush()
    log.info("project.member_added", project_id=str(project.id), user_id=str(user_id), role=role.value)
    return member


async def update_project_member_role(
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    role: ProjectRole,
    session: AsyncSession,
) -> ProjectMember:
    member = await _get_member(project_id, user_id, session)
    member.role = role
    member.updated_at = datetime.now(timezone.utc)
    session.add(member)
    await session.flush()
    log.info("project.member_role_updated", project_id=str(project_id), user_id=str(user_id), role=role.value)
    return member


async def remove_project_member(
    project_id: uuid.UUID, user_id: uuid.UUID, session: AsyncSession
) -> None:
    member = await _get_member(project_id, user_id, session)
    await session.delete(member)
    await session.flush()
    log.info("project.member_removed", project_id=str(project_id), user_id=str(user_id))
