from enum import Enum
from typing import Optional

from pydantic import BaseModel


class OrgRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    GUEST = "guest"


class ProjectRole(str, Enum):
    MANAGER = "manager"
    MEMBER = "member"
    VIEWER = "viewer"


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class ErrorBody(BaseModel):
    code: str
    message: str
    status: int


class ErrorResponse(BaseModel):
    error: ErrorBody


class MessageResponse(BaseModel):
    message: str
    data: Optional[object] = None
