"""
Capabilities and role tables.

Two closed enums of capability tags and two static role -> capability tables.
No role inherits another role's set. Org OWNER/ADMIN reach project
capabilities only through the implicit MANAGER elevation in
``tasklane.core.membership``, which changes the role looked up here, not the
tables.

Role ordering for member management (OWNER > ADMIN > MEMBER > GUEST) is not
a capability; it is enforced by the ``ensure_can_*`` cross-checks below.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Union

from tasklane.core.errors import Forbidden
from tasklane_shared.schemas.common import OrgRole, ProjectRole


class OrgCapability(str, Enum):
    ORG_DELETE = "org:delete"
    ORG_UPDATE = "org:update"
    ORG_TRANSFER = "org:transfer"
    MEMBER_MANAGE = "member:manage"
    MEMBER_REMOVE_ADMIN = "member:remove_admin"
    MEMBER_INVITE = "member:invite"
    PROJECT_CREATE = "project:create"
    PROJECT_DELETE_ANY = "project:delete_any"
    PROJECT_VIEW = "project:view"
    INVITE_SEND = "invite:send"
    INVITE_REVOKE = "invite:revoke"
    LABEL_MANAGE = "label:manage"
    LABEL_VIEW = "label:view"


class ProjectCapability(str, Enum):
    PROJECT_UPDATE = "project:update"
    PROJECT_DELETE = "project:delete"
    PROJECT_MEMBER_MANAGE = "project:member_manage"
    TASK_CREATE = "task:create"
    TASK_VIEW = "task:view"
    TASK_UPDATE_ANY = "task:update_any"
    TASK_UPDATE_OWN = "task:update_own"
    TASK_UPDATE_ASSIGNED = "task:update_assigned"
    TASK_DELETE_ANY = "task:delete_any"
    TASK_DELETE_OWN = "task:delete_own"
    TASK_ASSIGN = "task:assign"
    COMMENT_CREATE = "comment:create"
    COMMENT_VIEW = "comment:view"
    COMMENT_UPDATE_OWN = "comment:update_own"
    COMMENT_DELETE_OWN = "comment:delete_own"


Role = Union[OrgRole, ProjectRole]
Capability = Union[OrgCapability, ProjectCapability]


# ---------------------------------------------------------------------------
# Role tables
# ---------------------------------------------------------------------------

ORG_ROLE_CAPABILITIES: dict[OrgRole, frozenset[OrgCapability]] = {
    OrgRole.OWNER: frozenset({
        OrgCapability.ORG_DELETE,
        OrgCapability.ORG_UPDATE,
        OrgCapability.ORG_TRANSFER,
        OrgCapability.MEMBER_MANAGE,
        OrgCapability.MEMBER_REMOVE_ADMIN,
        OrgCapability.PROJECT_CREATE,
        OrgCapability.PROJECT_DELETE_ANY,
        OrgCapability.INVITE_SEND,
        OrgCapability.INVITE_REVOKE,
        OrgCapability.LABEL_MANAGE,
    }),
    OrgRole.ADMIN: frozenset({
        OrgCapability.ORG_UPDATE,
        OrgCapability.MEMBER_MANAGE,
        OrgCapability.MEMBER_INVITE,
        OrgCapability.PROJECT_CREATE,
        OrgCapability.PROJECT_DELETE_ANY,
        OrgCapability.INVITE_SEND,
        OrgCapability.INVITE_REVOKE,
        OrgCapability.LABEL_MANAGE,
    }),
    OrgRole.MEMBER: frozenset({
        OrgCapability.PROJECT_CREATE,
        OrgCapability.PROJECT_VIEW,
        OrgCapability.LABEL_VIEW,
    }),
    OrgRole.GUEST: frozenset({
        OrgCapability.PROJECT_VIEW,
    }),
}

PROJECT_ROLE_CAPABILITIES: dict[ProjectRole, frozenset[ProjectCapability]] = {
    ProjectRole.MANAGER: frozenset({
        ProjectCapability.PROJECT_UPDATE,
        ProjectCapability.PROJECT_DELETE,
        ProjectCapability.PROJECT_MEMBER_MANAGE,
        ProjectCapability.TASK_CREATE,
        ProjectCapability.TASK_UPDATE_ANY,
        ProjectCapability.TASK_DELETE_ANY,
        ProjectCapability.TASK_ASSIGN,
    }),
    ProjectRole.MEMBER: frozenset({
        ProjectCapability.TASK_CREATE,
        ProjectCapability.TASK_UPDATE_OWN,
        ProjectCapability.TASK_UPDATE_ASSIGNED,
        ProjectCapability.TASK_DELETE_OWN,
        ProjectCapability.COMMENT_CREATE,
        ProjectCapability.COMMENT_UPDATE_OWN,
        ProjectCapability.COMMENT_DELETE_OWN,
    }),
    ProjectRole.VIEWER: frozenset({
        ProjectCapability.TASK_VIEW,
        ProjectCapability.COMMENT_VIEW,
    }),
}

# Every role must have a row; a new enum member without one fails at import.
if set(ORG_ROLE_CAPABILITIES) != set(OrgRole):
    raise RuntimeError("ORG_ROLE_CAPABILITIES does not cover every OrgRole")
if set(PROJECT_ROLE_CAPABILITIES) != set(ProjectRole):
    raise RuntimeError("PROJECT_ROLE_CAPABILITIES does not cover every ProjectRole")

ORG_ROLE_RANK: dict[OrgRole, int] = {
    OrgRole.OWNER: 3,
    OrgRole.ADMIN: 2,
    OrgRole.MEMBER: 1,
    OrgRole.GUEST: 0,
}


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def has_org_capability(role: OrgRole, capability: OrgCapability | str) -> bool:
    """Raises ValueError for a tag that is not an org capability."""
    return OrgCapability(capability) in ORG_ROLE_CAPABILITIES[OrgRole(role)]


def has_project_capability(role: ProjectRole, capability: ProjectCapability | str) -> bool:
    """Raises ValueError for a tag that is not a project capability."""
    return ProjectCapability(capability) in PROJECT_ROLE_CAPABILITIES[ProjectRole(role)]


def has_capability(role: Role, capability: Capability) -> bool:
    """Dispatch on the role kind. Mixing org roles and project capabilities
    (or vice versa) is a programming error and raises TypeError."""
    if isinstance(role, OrgRole):
        if isinstance(capability, ProjectCapability):
            raise TypeError(f"{capability.value} is a project capability, got org role {role.value}")
        return has_org_capability(role, capability)
    if isinstance(role, ProjectRole):
        if isinstance(capability, OrgCapability):
            raise TypeError(f"{capability.value} is an org capability, got project role {role.value}")
        return has_project_capability(role, capability)
    raise TypeError(f"Unknown role type: {type(role).__name__}")


# ---------------------------------------------------------------------------
# Role-ordering cross-checks
# ---------------------------------------------------------------------------

def ensure_can_update_org_member_role(
    actor_role: OrgRole, target_role: OrgRole, new_role: OrgRole
) -> None:
    """Raise Forbidden unless ``actor_role`` may move a member from
    ``target_role`` to ``new_role``."""
    if target_role == OrgRole.ADMIN and actor_role != OrgRole.OWNER:
        raise Forbidden("Only owner can modify admin roles")
    if target_role == OrgRole.OWNER:
        raise Forbidden("Cannot change owner role")
    if new_role == OrgRole.OWNER:
        raise Forbidden("Cannot promote to owner")


def ensure_can_remove_org_member(
    actor_id: uuid.UUID,
    actor_role: OrgRole,
    target_id: uuid.UUID,
    target_role: OrgRole,
) -> None:
    """Raise Forbidden unless the actor may remove the target membership."""
    if target_role == OrgRole.OWNER:
        raise Forbidden("Cannot remove organization owner")
    if target_role == OrgRole.ADMIN and actor_role != OrgRole.OWNER:
        raise Forbidden("Only owner can remove admins")
    if actor_id != target_id and ORG_ROLE_RANK[actor_role] < ORG_ROLE_RANK[OrgRole.ADMIN]:
        raise Forbidden("You cannot remove other members")
