# SQLModel definitions, imported here to ensure metadata is populated for Alembic.
from .base import UUIDMixin, TimestampMixin, SoftDeleteMixin, not_deleted, select_active  # noqa: F401
from .user import User  # noqa: F401
from .refresh_token import RefreshToken  # noqa: F401
from .organization import Organization  # noqa: F401
from .organization_member import OrganizationMember  # noqa: F401
from .project import Project  # noqa: F401
from .project_member import ProjectMember  # noqa: F401
