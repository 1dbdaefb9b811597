"""Event service - scheduled events, their status/archive lifecycle and calendar view.

Status transitions (active/completed/cancelled) are unconstrained and always
logged. Archive is an independent flag; archiving, unarchiving and deleting
are privileged, and only archived events can be deleted. The Google Calendar
mirror is best-effort throughout.

Every mutation appends its activity entry before it touches the event
document. A rejected log write therefore changes nothing, and no change is
saved without its entry.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

from caseops.core.case_access import check_record_access, filter_by_role, require_privileged
from caseops.core.structured_logging import build_log_context
from caseops.db.documents import DocumentStoreError
from caseops.db.enums import EventStatus
from caseops.schemas.auth import UserSession
from caseops.schemas.calendar import CalendarDay, CalendarMonthResponse
from caseops.schemas.event import EnrichedEvent, EventCreate, EventRecord, EventUpdate
from caseops.schemas.query import EventQuery
from caseops.services import activity_service
from caseops.services.event_repository import EventRepository
from caseops.services.gateways import Gateways
from caseops.services.record_query import events_for_day, filter_events, upcoming_meetings
from caseops.utils.calendar_grid import build_month_grid

logger = logging.getLogger(__name__)


class EventServiceError(Exception):
    """Base exception for event service errors."""

    pass


class EventNotFoundError(EventServiceError):
    """Event not found."""

    pass


class EventCaseNotFoundError(EventServiceError):
    """Event references a case that does not exist."""

    pass


class EventNotArchivedError(EventServiceError):
    """Only archived events can be deleted."""

    pass


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


async def _load_event(gateways: Gateways, event_id: str) -> EventRecord:
    event = await gateways.cases.get_event(event_id)
    if event is None:
        raise EventNotFoundError(f"Event {event_id} not found")
    return event


async def _check_case(gateways: Gateways, session: UserSession, case_id: str) -> None:
    case = await gateways.cases.get_case(case_id)
    if case is None:
        raise EventCaseNotFoundError(f"Case {case_id} not found")
    check_record_access(case, session, noun="case")


# =============================================================================
# Reads
# =============================================================================

async def list_events(
    repository: EventRepository,
    session: UserSession,
    query: EventQuery,
    tz: ZoneInfo,
) -> list[EnrichedEvent]:
    """Visible events in store order (date descending), filtered."""
    visible = filter_by_role(await repository.all(), session)
    return filter_events(visible, query, tz)


async def get_event(repository: EventRepository, session: UserSession, event_id: str) -> EnrichedEvent:
    for item in await repository.all():
        if item.record.id == event_id:
            check_record_access(item, session, noun="event")
            return item
    raise EventNotFoundError(f"Event {event_id} not found")


async def list_upcoming(
    repository: EventRepository,
    session: UserSession,
    tz: ZoneInfo,
    now: datetime | None = None,
) -> list[EnrichedEvent]:
    visible = filter_by_role(await repository.all(), session)
    return upcoming_meetings(visible, tz, now or datetime.now(timezone.utc))


async def calendar_month(
    repository: EventRepository,
    session: UserSession,
    anchor: date,
    tz: ZoneInfo,
    today: date | None = None,
) -> CalendarMonthResponse:
    """Six-week grid for ``anchor``'s month with each day's visible events."""
    if today is None:
        today = datetime.now(tz).date()
    visible = filter_by_role(await repository.all(), session)
    days = [
        CalendarDay(
            date=day,
            in_month=day.month == anchor.month,
            is_today=day == today,
            events=events_for_day(visible, day, tz),
        )
        for day in build_month_grid(anchor)
    ]
    return CalendarMonthResponse(anchor=anchor.replace(day=1), timezone=str(tz), days=days)


# =============================================================================
# Mutations
# =============================================================================

async def create_event(
    gateways: Gateways,
    repository: EventRepository,
    session: UserSession,
    data: EventCreate,
    tz: ZoneInfo,
) -> EnrichedEvent:
    """
    Write the event and mirror it to Google Calendar (best-effort).

    When a description was given the meeting entry is appended first, so a
    rejected log write leaves no event behind to be duplicated on retry.
    """
    await _check_case(gateways, session, data.case_id)
    if data.description.strip():
        await activity_service.log_meeting(
            gateways, session, data.case_id, data.title, data.description, tz
        )

    now = datetime.now(timezone.utc)
    doc: dict[str, Any] = {
        "title": data.title,
        "description": data.description,
        "case_id": data.case_id,
        "date": _as_utc(data.date),
        "type": data.type,
        "status": data.status.value,
        "archived": False,
        "created_by": session.user_id,
        "google_event_id": None,
        "created_at": now,
        "updated_at": None,
    }
    event_id = await gateways.cases.create_event_document(doc)
    record = EventRecord(id=event_id, **doc)

    google_event_id = await gateways.calendar.sync_event_best_effort(session.user_id, record)
    if google_event_id:
        try:
            await gateways.cases.update_event(event_id, {"google_event_id": google_event_id})
        except DocumentStoreError:
            logger.warning("Could not store google_event_id event_id=%s", event_id, exc_info=True)

    logger.info(
        "event_created",
        extra=build_log_context(user_id=session.user_id, case_id=data.case_id, event_id=event_id),
    )
    fresh = await repository.patch(event_id)
    return fresh or EnrichedEvent(record=record)


async def update_event_status(
    gateways: Gateways,
    repository: EventRepository,
    session: UserSession,
    event_id: str,
    status: EventStatus,
) -> EnrichedEvent | None:
    event = await _load_event(gateways, event_id)
    check_record_access(event, session, noun="event")

    await activity_service.log_event_status_updated(
        gateways, session, event.title, status, event.case_id
    )
    await gateways.cases.update_event(
        event_id, {"status": status.value, "updated_at": datetime.now(timezone.utc)}
    )
    return await repository.patch(event_id)


async def set_event_archived(
    gateways: Gateways,
    repository: EventRepository,
    session: UserSession,
    event_id: str,
    archived: bool,
) -> EnrichedEvent | None:
    require_privileged(session, action="archive events")
    event = await _load_event(gateways, event_id)

    await activity_service.log_event_archived(
        gateways, session, event.title, archived, event.case_id
    )
    await gateways.cases.update_event(
        event_id, {"archived": archived, "updated_at": datetime.now(timezone.utc)}
    )
    return await repository.patch(event_id)


async def update_event(
    gateways: Gateways,
    repository: EventRepository,
    session: UserSession,
    event_id: str,
    data: EventUpdate,
) -> EnrichedEvent | None:
    """Edit title/description/case/date/type. Status and archive are separate."""
    event = await _load_event(gateways, event_id)
    check_record_access(event, session, noun="event")

    fields = data.model_dump(exclude_unset=True, exclude_none=True)
    if not fields:
        return await repository.patch(event_id)
    if "case_id" in fields and fields["case_id"] != event.case_id:
        await _check_case(gateways, session, fields["case_id"])
    if "date" in fields:
        fields["date"] = _as_utc(fields["date"])

    await activity_service.log_event_updated(
        gateways, session, fields.get("title", event.title), sorted(fields),
        fields.get("case_id", event.case_id),
    )
    await gateways.cases.update_event(
        event_id, {**fields, "updated_at": datetime.now(timezone.utc)}
    )
    return await repository.patch(event_id)


async def delete_event(
    gateways: Gateways,
    repository: EventRepository,
    session: UserSession,
    event_id: str,
) -> None:
    """
    Remove an archived event.

    Order: remote calendar delete (failure ignored), ``event_deleted``
    activity note, then the document itself.
    """
    require_privileged(session, action="delete events")
    event = await _load_event(gateways, event_id)
    if not event.archived:
        raise EventNotArchivedError("Only archived events can be deleted")

    await gateways.calendar.delete_event_best_effort(event.created_by, event)
    await activity_service.log_event_deleted(gateways, session, event.title, event.case_id)
    await gateways.cases.delete_event_document(event_id)
    repository.discard(event_id)

    logger.info(
        "event_deleted",
        extra=build_log_context(user_id=session.user_id, case_id=event.case_id, event_id=event_id),
    )
