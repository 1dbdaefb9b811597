"""Calendar month view endpoint."""

from datetime import date, datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Query

from caseops.core.deps import get_current_session, get_event_repository, get_timezone
from caseops.schemas.auth import UserSession
from caseops.schemas.calendar import CalendarMonthResponse
from caseops.services import event_service
from caseops.services.event_repository import EventRepository
from caseops.utils.calendar_grid import shift_month

router = APIRouter()


@router.get("/month", response_model=CalendarMonthResponse)
async def get_month(
    year: int | None = Query(None, ge=1, le=9999),
    month: int | None = Query(None, ge=1, le=12),
    offset: int = Query(0, description="Months relative to year/month (prev/next navigation)"),
    tz: ZoneInfo = Depends(get_timezone),
    session: UserSession = Depends(get_current_session),
    repository: EventRepository = Depends(get_event_repository),
):
    """Six-week grid with each day's events. Defaults to the current local month."""
    today = datetime.now(tz).date()
    anchor = date(year or today.year, month or today.month, 1)
    if offset:
        anchor = shift_month(anchor, offset)
    return await event_service.calendar_month(repository, session, anchor, tz, today=today)
