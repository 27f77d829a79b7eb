from typing import List, Optional
from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from .common import ProjectRole


class ProjectBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9a-fA-F]{6}$")


class ProjectCreate(ProjectBase):
    slug: Optional[str] = Field(
        default=None, min_length=2, max_length=50, pattern=r"^[a-z0-9-]+$"
    )


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9a-fA-F]{6}$")


class ProjectRead(ProjectBase):
    id: UUID
    org_id: UUID
    slug: str
    my_role: Optional[ProjectRole] = None
    created_at: datetime
    updated_at: datetime


class ProjectListResponse(BaseModel):
    data: List[ProjectRead]


class ProjectMemberAdd(BaseModel):
    user_id: UUID
    role: ProjectRole = ProjectRole.MEMBER


class ProjectMemberUpdate(BaseModel):
    role: ProjectRole


class ProjectMemberRead(BaseModel):
    user_id: UUID
    project_id: UUID
    role: ProjectRole
    joined_at: datetime
