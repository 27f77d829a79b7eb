"""
Project endpoints: CRUD and membership.

Every route is org-scoped. Org OWNER/ADMIN are implicit MANAGERs of every
project in their org; everyone else needs a project membership row.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tasklane.core.auth import (
    OrgContext,
    ProjectContext,
    RequireOrgCapability,
    RequireProjectCapability,
    get_org_context,
    get_project_context,
)
from tasklane.core.database import get_session
from tasklane.core.membership import ELEVATED_ORG_ROLES
from tasklane.core.permissions import OrgCapability, ProjectCapability
from tasklane.models.project import Project
from tasklane.models.project_member import ProjectMember
from tasklane.services import projects as project_service
from tasklane_shared.schemas.common import MessageResponse, ProjectRole
from tasklane_shared.schemas.projects import (
    ProjectCreate,
    ProjectListResponse,
    ProjectMemberAdd,
    ProjectMemberRead,
    ProjectMemberUpdate,
    ProjectRead,
    ProjectUpdate,
)

router = APIRouter()

manage_members = RequireProjectCapability(ProjectCapability.PROJECT_MEMBER_MANAGE)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _project_read(project: Project, role: Optional[ProjectRole]) -> ProjectRead:
    return ProjectRead(
        id=project.id,
        org_id=project.org_id,
        name=project.name,
        slug=project.slug,
        description=project.description,
        color=project.color,
        my_role=role,
        created_at=project.created_at,
        updated_at=project.updated_at,
    )


def _member_read(member: ProjectMember) -> ProjectMemberRead:
    return ProjectMemberRead(
        user_id=member.user_id,
        project_id=member.project_id,
        role=member.role,
        joined_at=member.joined_at,
    )


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    ctx: OrgContext = Depends(get_org_context),
    session: AsyncSession = Depends(get_session),
):
    rows = await project_service.list_projects(
        ctx.org_id, ctx.identity.user_id, ctx.role, session
    )
    elevated = ctx.role in ELEVATED_ORG_ROLES
    return ProjectListResponse(
        data=[_project_read(p, ProjectRole.MANAGER if elevated else role) for p, role in rows]
    )


@router.post("", response_model=ProjectRead, status_code=201)
async def create_project(
    body: ProjectCreate,
    ctx: OrgContext = Depends(RequireOrgCapability(OrgCapability.PROJECT_CREATE)),
    session: AsyncSession = Depends(get_session),
):
    project = await project_service.create_project(
        ctx.org_id, ctx.identity.user_id, body, session
    )
    return _project_read(project, ProjectRole.MANAGER)


@router.get("/{projectSlug}", response_model=ProjectRead)
async def get_project(ctx: ProjectContext = Depends(get_project_context)):
    return _project_read(ctx.project, ctx.role)


@router.patch("/{projectSlug}", response_model=ProjectRead)
async def update_project(
    body: ProjectUpdate,
    ctx: ProjectContext = Depends(RequireProjectCapability(ProjectCapability.PROJECT_UPDATE)),
    session: AsyncSession = Depends(get_session),
):
    project = await project_service.update_project(ctx.project, body, session)
    return _project_read(project, ctx.role)


@router.delete("/{projectSlug}", response_model=MessageResponse)
async def delete_project(
    ctx: ProjectContext = Depends(RequireProjectCapability(ProjectCapability.PROJECT_DELETE)),
    session: AsyncSession = Depends(get_session),
):
    await project_service.delete_project(ctx.project, session)
    return MessageResponse(message="Project deleted")


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------


@router.post("/{projectSlug}/members", response_model=ProjectMemberRead, status_code=201)
async def add_member(
    body: ProjectMemberAdd,
    ctx: ProjectContext = Depends(manage_members),
    session: AsyncSession = Depends(get_session),
):
    member = await project_service.add_project_member(
        ctx.project, body.user_id, body.role, session
    )
    return _member_read(member)


@router.patch("/{projectSlug}/members/{userId}", response_model=ProjectMemberRead)
async def update_member(
    userId: uuid.UUID,
    body: ProjectMemberUpdate,
    ctx: ProjectContext = Depends(manage_members),
    session: AsyncSession = Depends(get_session),
):
    member = await project_service.update_project_member_role(
        ctx.project_id, userId, body.role, session
    )
    return _member_read(member)


@router.delete("/{projectSlug}/members/{userId}", response_model=MessageResponse)
async def remove_member(
    userId: uuid.UUID,
    ctx: ProjectContext = Depends(manage_members),
    session: AsyncSession = Depends(get_session),
):
    await project_service.remove_project_member(ctx.project_id, userId, session)
    return MessageResponse(message="Member removed")
