"""Visit tracking endpoint (public)."""

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import ValidationError
from slowapi.util import get_remote_address
from sqlalchemy.exc import SQLAlchemyError

from insights.api.rate_limit import limiter
from insights.auth.middleware import get_current_user, security
from insights.auth.models import User
from insights.logging_config import get_logger
from insights.settings import settings
from insights.tracking.service import RequestContext, VisitInput, visitor_recorder

logger = get_logger(__name__)

router = APIRouter(prefix="/dashboard", tags=["tracking"])


async def get_visitor(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> User | None:
    """Optional identity for tracking; lookup failures count as anonymous."""
    try:
        return await get_current_user(request, credentials)
    except SQLAlchemyError as e:
        logger.warning("visitor_lookup_failed", error=str(e))
        return None


async def read_visit(request: Request) -> VisitInput:
    """Parse the tracker body whatever its content type.

    ``navigator.sendBeacon`` posts JSON as text/plain; anything that is not
    a JSON object (empty, malformed, an array) records a default visit.
    """
    raw = await request.body()
    if not raw.strip():
        return VisitInput()
    try:
        return VisitInput.model_validate_json(raw)
    except ValidationError as e:
        logger.debug("visit_body_ignored", errors=e.error_count())
        return VisitInput()


@router.post("/track-visit")
@limiter.limit(settings.track_visit_rate_limit)
async def track_visit(
    request: Request,
    background_tasks: BackgroundTasks,
    user: User | None = Depends(get_visitor),
):
    """Record a page visit. Works with or without authentication.

    A failed write answers 500 with ``{"ok": false}`` so the page that
    fired the tracker carries on.
    """
    visit = await read_visit(request)
    context = RequestContext(
        user=user,
        user_agent=request.headers.get("user-agent"),
        ip_address=get_remote_address(request),
        referrer=request.headers.get("referer"),
    )

    outcome = visitor_recorder.record(
        visit,
        context,
        schedule=background_tasks.add_task,
    )

    if not outcome.ok:
        return JSONResponse(status_code=500, content={"ok": False})
    return {"ok": True}
