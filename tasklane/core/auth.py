"""
Authorization pipeline.

Each stage either returns an enriched, immutable context or raises a typed
error from ``tasklane.core.errors``; no stage recovers from a failure:

1. ``authenticate``: bearer token -> ``Identity``
2. ``require_org_membership``: ``Identity`` + org slug/id -> ``OrgContext``
3. ``require_org_capability``: ``OrgContext`` + org capability
4. ``require_project_membership``: ``OrgContext`` + project slug/id -> ``ProjectContext``
5. ``require_project_capability``: ``ProjectContext`` + project capability

Routes compose only the stages they need through the FastAPI dependencies at
the bottom of this module. Nothing here holds per-request state between
calls.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tasklane.core.database import get_session
from tasklane.core.errors import Forbidden, Unauthorized
from tasklane.core.membership import (
    ProjectMembership,
    resolve_org_membership,
    resolve_project_membership,
)
from tasklane.core.permissions import (
    OrgCapability,
    ProjectCapability,
    has_org_capability,
    has_project_capability,
)
from tasklane.core.tokens import verify_access
from tasklane.models.organization import Organization
from tasklane.models.organization_member import OrganizationMember
from tasklane.models.project import Project
from tasklane_shared.schemas.common import OrgRole, ProjectRole

log = structlog.get_logger()

BEARER_PREFIX = "Bearer "


# ---------------------------------------------------------------------------
# Contexts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Identity:
    user_id: uuid.UUID
    email: str


@dataclass(frozen=True)
class OrgContext:
    identity: Identity
    org: Organization
    membership: OrganizationMember

    @property
    def org_id(self) -> uuid.UUID:
        return self.org.id

    @property
    def role(self) -> OrgRole:
        return OrgRole(self.membership.role)


@dataclass(frozen=True)
class ProjectContext:
    org_context: OrgContext
    project: Project
    membership: ProjectMembership

    @property
    def identity(self) -> Identity:
        return self.org_context.identity

    @property
    def project_id(self) -> uuid.UUID:
        return self.project.id

    @property
    def role(self) -> ProjectRole:
        return self.membership.role


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

def extract_bearer_token(authorization: Optional[str]) -> str:
    """Pull the token out of an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise Unauthorized("Missing or invalid authorization header")
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise Unauthorized("Missing or invalid authorization header")
    return token


def authenticate(headers: Mapping[str, str]) -> Identity:
    """Stage 1+2: extract and verify the access token."""
    token = extract_bearer_token(headers.get("authorization") or headers.get("Authorization"))
    claims = verify_access(token)
    return Identity(user_id=claims.user_id, email=claims.email)


async def require_org_membership(
    identity: Identity, org_identifier: str, session: AsyncSession
) -> OrgContext:
    org, membership = await resolve_org_membership(identity.user_id, org_identifier, session)
    return OrgContext(identity=identity, org=org, membership=membership)


def require_org_capability(org_ctx: OrgContext, capability: OrgCapability) -> None:
    if not has_org_capability(org_ctx.role, capability):
        log.info(
            "authz.org_capability_denied",
            user_id=str(org_ctx.identity.user_id),
            org_id=str(org_ctx.org_id),
            role=org_ctx.role.value,
            capability=OrgCapability(capability).value,
        )
        raise Forbidden(f"Missing permission: {OrgCapability(capability).value}")


async def require_project_membership(
    identity: Identity,
    org_ctx: OrgContext,
    project_identifier: str,
    session: AsyncSession,
) -> ProjectContext:
    project, membership = await resolve_project_membership(
        identity.user_id, org_ctx.membership, project_identifier, session
    )
    return ProjectContext(org_context=org_ctx, project=project, membership=membership)


def require_project_capability(
    project_ctx: ProjectContext, capability: ProjectCapability
) -> None:
    if not has_project_capability(project_ctx.role, capability):
        log.info(
            "authz.project_capability_denied",
            user_id=str(project_ctx.identity.user_id),
            project_id=str(project_ctx.project_id),
            role=project_ctx.role.value,
            capability=ProjectCapability(capability).value,
        )
        raise Forbidden(f"Missing permission: {ProjectCapability(capability).value}")


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

async def get_identity(request: Request) -> Identity:
    """Any authenticated user (no org scoping)."""
    identity = authenticate(request.headers)
    structlog.contextvars.bind_contextvars(user_id=str(identity.user_id))
    return identity


async def get_org_context(
    orgSlug: str,
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_session),
) -> OrgContext:
    """Caller must be a member of ``{orgSlug}`` (slug or id)."""
    return await require_org_membership(identity, orgSlug, session)


class RequireOrgCapability:
    """Dependency: org membership plus one org capability."""

    def __init__(self, capability: OrgCapability):
        self.capability = OrgCapability(capability)

    async def __call__(self, org_ctx: OrgContext = Depends(get_org_context)) -> OrgContext:
        require_org_capability(org_ctx, self.capability)
        return org_ctx


async def get_project_context(
    projectSlug: str,
    org_ctx: OrgContext = Depends(get_org_context),
    session: AsyncSession = Depends(get_session),
) -> ProjectContext:
    """Caller must be a (possibly implicit) member of ``{projectSlug}``."""
    return await require_project_membership(org_ctx.identity, org_ctx, projectSlug, session)


class RequireProjectCapability:
    """Dependency: project membership plus one project capability.

    With ``org_capability`` the org check runs before the project is looked
    up, so a caller failing the org gate never learns whether it exists.
    """

    def __init__(
        self,
        capability: ProjectCapability,
        *,
        org_capability: Optional[OrgCapability] = None,
    ):
        self.capability = ProjectCapability(capability)
        self.org_capability = OrgCapability(org_capability) if org_capability else None

    async def __call__(
        self,
        projectSlug: str,
        org_ctx: OrgContext = Depends(get_org_context),
        session: AsyncSession = Depends(get_session),
    ) -> ProjectContext:
        if self.org_capability is not None:
            require_org_capability(org_ctx, self.org_capability)
        project_ctx = await require_project_membership(
            org_ctx.identity, org_ctx, projectSlug, session
        )
        require_project_capability(project_ctx, self.capability)
        return project_ctx
