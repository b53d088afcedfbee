"""Dashboard API v1 endpoints."""

from fastapi import APIRouter, Depends, Query

from insights.auth.middleware import require_admin, require_auth
from insights.auth.models import User
from insights.dashboard.encouragement import encouragement_service
from insights.dashboard.reports import reporting_service

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

# Numeric query values arrive as raw strings; the reporting layer
# defaults and clamps them instead of rejecting them.


@router.get("/stats")
async def get_dashboard_stats(user: User = Depends(require_auth)):
    """Opportunity and application counts (global for admins, own otherwise)."""
    return reporting_service.counts(user)


@router.get("/activity")
async def get_recent_activity(
    limit: str | None = Query(default=None),
    user: User = Depends(require_auth),
):
    """The caller's most recent applications."""
    return reporting_service.recent_activity(user, limit)


@router.get("/applications-status")
async def get_applications_status(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    status: str | None = Query(default=None, description="pending or completed"),
    admin: User = Depends(require_admin),
):
    """Applications with timestamps, optionally filtered by status bucket."""
    return reporting_service.applications_by_status(page, limit, status)


@router.get("/analytics")
async def get_visitor_analytics(
    days: str | None = Query(default=None),
    admin: User = Depends(require_admin),
):
    """Visitor and conversion analytics over the last ``days`` days."""
    return reporting_service.visitor_analytics(days)


@router.get("/visitors")
async def list_visitors(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    type: str | None = Query(default=None, description="anonymous, logged-in or not-applied"),
    admin: User = Depends(require_admin),
):
    """Detailed visitor list."""
    return reporting_service.list_visitors(page, limit, type)


@router.post("/send-encouragement/{user_id}")
async def send_encouragement(user_id: str, admin: User = Depends(require_admin)):
    """Email a user who signed up but hasn't applied yet."""
    await encouragement_service.send(user_id)
    return {"message": "Encouragement email sent successfully"}
