"""
Organization-related Pydantic schemas.

Covers: Org CRUD request/response and org membership management.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .common import OrgRole


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class OrgCreateRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, description="Organization display name")
    slug: Optional[str] = Field(
        None,
        min_length=2,
        max_length=50,
        pattern=r"^[a-z0-9-]+$",
        description="URL-safe org identifier (derived from name when omitted)",
    )


class OrgUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    logo_url: Optional[str] = Field(None, max_length=2048)


class MemberRoleUpdateRequest(BaseModel):
    role: OrgRole


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class OrgResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    logo_url: Optional[str] = None
    my_role: Optional[OrgRole] = None
    created_at: datetime
    updated_at: datetime


class OrgListItem(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    role: OrgRole


class OrgListResponse(BaseModel):
    data: List[OrgListItem]


class MemberResponse(BaseModel):
    user_id: uuid.UUID
    email: str
    name: str
    role: OrgRole
    joined_at: datetime


class MemberListResponse(BaseModel):
    data: List[MemberResponse]
