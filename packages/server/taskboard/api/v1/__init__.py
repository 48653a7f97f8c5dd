"""
API v1 Router

All org-scoped endpoints are prefixed with /orgs/{orgSlug}.
"""

from fastapi import APIRouter
from . import daily_logs, invites, members, projects, reports, tasks
from .organizations import router_global as orgs_global_router
from .organizations import router_scoped as orgs_scoped_router

router = APIRouter()

# Organization routes (non-org-scoped: list)
router.include_router(orgs_global_router)

# Invite acceptance (the caller is not a member of the org yet)
router.include_router(invites.router_global)

# Organization routes (org-scoped: details with the caller's role)
router.include_router(orgs_scoped_router, prefix="/orgs/{orgSlug}", tags=["Organizations"])

# Include resource routers
router.include_router(members.router, prefix="/orgs/{orgSlug}/members", tags=["Members"])
router.include_router(invites.router, prefix="/orgs/{orgSlug}/invites", tags=["Invites"])
router.include_router(projects.router, prefix="/orgs/{orgSlug}/projects", tags=["Projects"])
router.include_router(tasks.router, prefix="/orgs/{orgSlug}/tasks", tags=["Tasks"])
router.include_router(daily_logs.router, prefix="/orgs/{orgSlug}/daily-logs", tags=["Daily Logs"])
router.include_router(
    reports.completions_router, prefix="/orgs/{orgSlug}/completions", tags=["Completions"]
)
router.include_router(reports.dashboard_router, prefix="/orgs/{orgSlug}/dashboard", tags=["Dashboard"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/orgs",
            "/orgs/{orgSlug}/members",
            "/orgs/{orgSlug}/invites",
            "/orgs/{orgSlug}/projects",
            "/orgs/{orgSlug}/tasks",
            "/orgs/{orgSlug}/daily-logs",
            "/orgs/{orgSlug}/completions",
            "/orgs/{orgSlug}/dashboard",
            "/invites/{token}/accept",
        ],
    }
