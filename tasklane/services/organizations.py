"""
Organization service: business logic for org CRUD and membership management.
"""

from __future__ import annotations

import re
import secrets
import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tasklane.core.errors import NotFound
from tasklane.core.permissions import (
    ensure_can_remove_org_member,
    ensure_can_update_org_member_role,
)
from tasklane.models.base import not_deleted
from tasklane.models.organization import Organization
from tasklane.models.organization_member import OrganizationMember
from tasklane.models.project import Project
from tasklane.models.project_member import ProjectMember
from tasklane.models.user import User
from tasklane_shared.schemas.common import OrgRole
from tasklane_shared.schemas.organizations import OrgCreateRequest, OrgUpdateRequest

log = structlog.get_logger()


def generate_slug(name: str) -> str:
    """Lowercase, hyphen-separated, at most 50 chars."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug[:50].rstrip("-") or "org"


def unique_slug(name: str) -> str:
    """Slug with a random suffix, used when the plain slug is taken."""
    return f"{generate_slug(name)[:43]}-{secrets.token_hex(3)}"


async def list_user_orgs(
    user_id: uuid.UUID, session: AsyncSession
) -> list[dict]:
    """List all live orgs a user belongs to, with their role."""
    result = await session.execute(
        select(Organization, OrganizationMember.role)
        .join(OrganizationMember, OrganizationMember.org_id == Organization.id)
        .where(OrganizationMember.user_id == user_id)
        .where(not_deleted(Organization))
        .order_by(Organization.created_at.desc())
    )
    return [
        {"id": org.id, "name": org.name, "slug": org.slug, "role": role}
        for org, role in result.all()
    ]


async def create_org(
    req: OrgCreateRequest,
    creator_id: uuid.UUID,
    session: AsyncSession,
) -> Organization:
    """Create an org and make the creator its OWNER."""
    slug = req.slug or generate_slug(req.name)

    # Slugs stay reserved after soft delete (unique column).
    existing = await session.execute(
        select(Organization).where(Organization.slug == slug)
    )
    if existing.scalar_one_or_none():
        slug = unique_slug(req.name)

    org = Organization(name=req.name, slug=slug)
    session.add(org)
    await session.flush()

    session.add(
        OrganizationMember(user_id=creator_id, org_id=org.id, role=OrgRole.OWNER)
    )
    await session.flush()

    log.info("org.created", org_id=str(org.id), slug=slug, creator=str(creator_id))
    return org


async def update_org(
    org: Organization,
    req: OrgUpdateRequest,
    session: AsyncSession,
) -> Organization:
    for key, value in req.model_dump(exclude_unset=True).items():
        setattr(org, key, value)
    org.updated_at = datetime.now(timezone.utc)
    session.add(org)
    await session.flush()
    log.info("org.updated", org_id=str(org.id))
    return org


async def delete_org(org: Organization, session: AsyncSession) -> None:
    """Soft delete: the org disappears from every lookup."""
    org.deleted_at = datetime.now(timezone.utc)
    session.add(org)
    await session.flush()
    log.info("org.deleted", org_id=str(org.id))


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

async def list_members(org_id: uuid.UUID, session: AsyncSession) -> list[dict]:
    result = await session.execute(
        select(OrganizationMember, User)
        .join(User, User.id == OrganizationMember.user_id)
        .where(OrganizationMember.org_id == org_id)
        .order_by(OrganizationMember.joined_at.asc())
    )
    return [
        {
            "user_id": user.id,
            "email": user.email,
            "name": user.name,
            "role": member.role,
            "joined_at": member.joined_at,
        }
        for member, user in result.all()
    ]


async def _get_member(
    org_id: uuid.UUID, user_id: uuid.UUID, session: AsyncSession
) -> OrganizationMember:
    result = await session.execute(
        select(OrganizationMember).where(
            OrganizationMember.org_id == org_id,
            OrganizationMember.user_id == user_id,
        )
    )
    member = result.scalar_one_or_none()
    if not member:
        raise NotFound("Member not found")
    return member


async def update_member_role(
    org_id: uuid.UUID,
    target_user_id: uuid.UUID,
    new_role: OrgRole,
    actor_role: OrgRole,
    session: AsyncSession,
) -> OrganizationMember:
    target = await _get_member(org_id, target_user_id, session)
    ensure_can_update_org_member_role(actor_role, OrgRole(target.role), new_role)

    target.role = new_role
    target.updated_at = datetime.now(timezone.utc)
    session.add(target)
    await session.flush()
    log.info(
        "org.member_role_updated",
        org_id=str(org_id),
        user_id=str(target_user_id),
        role=new_role.value,
    )
    return target


async def remove_member(
    org_id: uuid.UUID,
    target_user_id: uuid.UUID,
    actor_id: uuid.UUID,
    actor_role: OrgRole,
    session: AsyncSession,
) -> None:
    target = await _get_member(org_id, target_user_id, session)
    ensure_can_remove_org_member(actor_id, actor_role, target_user_id, OrgRole(target.role))

    # Project memberships are only valid alongside the org membership.
    await session.execute(
        delete(ProjectMember).where(
            ProjectMember.user_id == target_user_id,
            ProjectMember.project_id.in_(
                select(Project.id).where(Project.org_id == org_id)
            ),
        )
        .execution_options(synchronize_session=False)
    )
    await session.delete(target)
    await session.flush()
    log.info("org.member_removed", org_id=str(org_id), user_id=str(target_user_id))
