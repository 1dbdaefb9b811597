"""FastAPI dependencies for authentication, gateways and request context."""

from zoneinfo import ZoneInfo

from fastapi import Depends, HTTPException, Query, Request

from caseops.core.config import settings
from caseops.core.session_context import SessionContext
from caseops.schemas.auth import UserSession
from caseops.services.event_repository import EventRepository
from caseops.services.gateways import Gateways
from caseops.services.record_query import resolve_timezone


CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_gateways(request: Request) -> Gateways:
    """Gateways built in the application lifespan."""
    return request.app.state.gateways


def get_event_repository(request: Request) -> EventRepository:
    return request.app.state.event_repository


async def get_current_session(
    request: Request,
    gateways: Gateways = Depends(get_gateways),
) -> UserSession:
    """
    PRIMARY auth dependency: the session user for this request.

    Raises:
        HTTPException 401: Not authenticated
        HTTPException 403: Blocked account or unknown role
    """
    return await SessionContext(request, gateways.identities).load()


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PATCH, DELETE).

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'"
        )


def get_timezone(
    tz: str | None = Query(None, description="IANA timezone for local-date filters"),
) -> ZoneInfo:
    """Requested timezone, or DEFAULT_TIMEZONE."""
    try:
        return resolve_timezone(tz or settings.DEFAULT_TIMEZONE)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
