"""
Organization API endpoints.

GET    /api/v1/orgs                             - List orgs for authenticated user
POST   /api/v1/orgs                             - Create a new org (creator is OWNER)
GET    /api/v1/orgs/{orgSlug}                   - Get org details
PATCH  /api/v1/orgs/{orgSlug}                   - Update org (org:update)
DELETE /api/v1/orgs/{orgSlug}                   - Soft-delete org (org:delete)
GET    /api/v1/orgs/{orgSlug}/members           - List members
PATCH  /api/v1/orgs/{orgSlug}/members/{userId}  - Change a member's role (member:manage)
DELETE /api/v1/orgs/{orgSlug}/members/{userId}  - Remove a member (or leave)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tasklane.core.auth import (
    Identity,
    OrgContext,
    RequireOrgCapability,
    get_identity,
    get_org_context,
)
from tasklane.core.database import get_session
from tasklane.core.permissions import OrgCapability
from tasklane.models.organization import Organization
from tasklane.models.user import User
from tasklane.services import organizations as org_service
from tasklane_shared.schemas.common import MessageResponse, OrgRole
from tasklane_shared.schemas.organizations import (
    MemberListResponse,
    MemberResponse,
    MemberRoleUpdateRequest,
    OrgCreateRequest,
    OrgListResponse,
    OrgResponse,
    OrgUpdateRequest,
)


def _org_response(org: Organization, role: OrgRole | None) -> OrgResponse:
    return OrgResponse(
        id=org.id,
        name=org.name,
        slug=org.slug,
        logo_url=org.logo_url,
        my_role=role,
        created_at=org.created_at,
        updated_at=org.updated_at,
    )


# ---------------------------------------------------------------------------
# Non-org-scoped routes (no orgSlug in path)
# ---------------------------------------------------------------------------
router_global = APIRouter()


@router_global.get("/orgs", response_model=OrgListResponse, tags=["Organizations"])
async def list_orgs(
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    """List orgs the authenticated user belongs to."""
    items = await org_service.list_user_orgs(identity.user_id, session)
    return OrgListResponse(data=items)


@router_global.post("/orgs", response_model=OrgResponse, status_code=201, tags=["Organizations"])
async def create_org(
    body: OrgCreateRequest,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
):
    """Create a new organization. The creator becomes its owner."""
    org = await org_service.create_org(body, identity.user_id, session)
    return _org_response(org, OrgRole.OWNER)


# ---------------------------------------------------------------------------
# Org-scoped routes (orgSlug in path)
# ---------------------------------------------------------------------------
router_scoped = APIRouter()


@router_scoped.get("", response_model=OrgResponse)
async def get_org(ctx: OrgContext = Depends(get_org_context)):
    return _org_response(ctx.org, ctx.role)


@router_scoped.patch("", response_model=OrgResponse)
async def update_org(
    body: OrgUpdateRequest,
    ctx: OrgContext = Depends(RequireOrgCapability(OrgCapability.ORG_UPDATE)),
    session: AsyncSession = Depends(get_session),
):
    org = await org_service.update_org(ctx.org, body, session)
    return _org_response(org, ctx.role)


@router_scoped.delete("", response_model=MessageResponse)
async def delete_org(
    ctx: OrgContext = Depends(RequireOrgCapability(OrgCapability.ORG_DELETE)),
    session: AsyncSession = Depends(get_session),
):
    await org_service.delete_org(ctx.org, session)
    return MessageResponse(message="Organization deleted")


@router_scoped.get("/members", response_model=MemberListResponse)
async def list_members(
    ctx: OrgContext = Depends(get_org_context),
    session: AsyncSession = Depends(get_session),
):
    members = await org_service.list_members(ctx.org_id, session)
    return MemberListResponse(data=members)


@router_scoped.patch("/members/{userId}", response_model=MemberResponse)
async def update_member_role(
    userId: uuid.UUID,
    body: MemberRoleUpdateRequest,
    ctx: OrgContext = Depends(RequireOrgCapability(OrgCapability.MEMBER_MANAGE)),
    session: AsyncSession = Depends(get_session),
):
    member = await org_service.update_member_role(
        ctx.org_id, userId, body.role, ctx.role, session
    )
    user = await session.get(User, userId)
    return MemberResponse(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=member.role,
        joined_at=member.joined_at,
    )


@router_scoped.delete("/members/{userId}", response_model=MessageResponse)
async def remove_member(
    userId: uuid.UUID,
    ctx: OrgContext = Depends(get_org_context),
    session: AsyncSession = Depends(get_session),
):
    """Remove a member. Members may only remove themselves."""
    await org_service.remove_member(
        ctx.org_id, userId, ctx.identity.user_id, ctx.role, session
    )
    return MessageResponse(message="Member removed")
