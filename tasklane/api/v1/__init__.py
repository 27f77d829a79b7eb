"""
API v1 Router

All org-scoped endpoints are prefixed with /orgs/{orgSlug}. The org segment
accepts either the slug or the id; so does {projectSlug}.
"""

from fastapi import APIRouter
from . import projects
from .organizations import router_global as orgs_global_router
from .organizations import router_scoped as orgs_scoped_router

router = APIRouter()

# Organization routes (non-org-scoped: list, create)
router.include_router(orgs_global_router)

# Organization routes (org-scoped: get, update, delete, members)
router.include_router(orgs_scoped_router, prefix="/orgs/{orgSlug}", tags=["Organizations"])

router.include_router(projects.router, prefix="/orgs/{orgSlug}/projects", tags=["Projects"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/orgs",
            "/orgs/{orgSlug}",
            "/orgs/{orgSlug}/members",
            "/orgs/{orgSlug}/projects",
            "/orgs/{orgSlug}/projects/{projectSlug}",
            "/orgs/{orgSlug}/projects/{projectSlug}/members",
        ],
    }
