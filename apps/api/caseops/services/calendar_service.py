"""Calendar service - Google Calendar mirror of console events.

Handles:
- Remote event creation when a console event is created
- Remote event deletion when a console event is deleted

The mirror is best-effort: a calendar failure never fails the console
operation. Access tokens are stored on the user document by the
calendar-linking flow; users without a linked calendar are skipped.
"""

from __future__ import annotations

import logging
from datetime import timedelta, timezone
from urllib.parse import quote

import httpx

from caseops.core.config import settings
from caseops.schemas.event import EventRecord
from caseops.services.identity_store import IdentityStore

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"


class CalendarSyncError(Exception):
    """Google Calendar rejected or could not be reached for a sync call."""

    pass


def create_calendar_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=GOOGLE_CALENDAR_API,
        timeout=settings.GOOGLE_CALENDAR_TIMEOUT_SECONDS,
    )


class GoogleCalendarClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        identities: IdentityStore,
        *,
        enabled: bool | None = None,
        calendar_id: str | None = None,
    ):
        self._http = http
        self._identities = identities
        self.enabled = settings.GOOGLE_CALENDAR_ENABLED if enabled is None else enabled
        self.calendar_id = calendar_id or settings.GOOGLE_CALENDAR_ID

    def _events_path(self) -> str:
        return f"/calendars/{quote(self.calendar_id, safe='')}/events"

    # =========================================================================
    # Raw API calls (raise CalendarSyncError)
    # =========================================================================

    async def create_remote_event(self, access_token: str, event: EventRecord) -> str:
        """Create the remote counterpart and return its Google event id."""
        if event.date is None:
            raise CalendarSyncError("Event has no date")
        start = event.date if event.date.tzinfo else event.date.replace(tzinfo=timezone.utc)
        end = start + timedelta(minutes=settings.GOOGLE_CALENDAR_EVENT_MINUTES)
        body = {
            "summary": event.title,
            "description": event.description,
            "start": {"dateTime": start.isoformat(), "timeZone": "UTC"},
            "end": {"dateTime": end.isoformat(), "timeZone": "UTC"},
        }
        try:
            response = await self._http.post(
                self._events_path(),
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": "application/json",
                },
                json=body,
            )
        except httpx.HTTPError as e:
            raise CalendarSyncError(f"Calendar unreachable: {e.__class__.__name__}") from e
        if response.status_code not in (200, 201):
            raise CalendarSyncError(f"Calendar create returned {response.status_code}")
        google_id = response.json().get("id")
        if not google_id:
            raise CalendarSyncError("Calendar create response missing id")
        return google_id

    async def delete_remote_event(self, access_token: str, google_event_id: str) -> None:
        """Delete the remote event. Already-deleted events count as success."""
        try:
            response = await self._http.delete(
                f"{self._events_path()}/{quote(google_event_id, safe='')}",
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise CalendarSyncError(f"Calendar unreachable: {e.__class__.__name__}") from e
        if response.status_code not in (200, 204, 404, 410):
            raise CalendarSyncError(f"Calendar delete returned {response.status_code}")

    # =========================================================================
    # Best-effort wrappers (never raise)
    # =========================================================================

    async def sync_event_best_effort(self, user_id: str, event: EventRecord) -> str | None:
        """Mirror a new console event. Returns the Google id, or None if skipped/failed."""
        if not self.enabled:
            return None
        try:
            token = await self._identities.get_calendar_token(user_id)
            if not token:
                return None
            return await self.create_remote_event(token, event)
        except Exception:
            logger.warning(
                "Google Calendar sync failed event_id=%s", event.id, exc_info=True
            )
            return None

    async def delete_event_best_effort(self, user_id: str, event: EventRecord) -> bool:
        """Remove the mirrored remote event, if any. Returns True when removed."""
        if not self.enabled or not event.google_event_id:
            return False
        try:
            token = await self._identities.get_calendar_token(user_id)
            if not token:
                return False
            await self.delete_remote_event(token, event.google_event_id)
            return True
        except Exception:
            logger.warning(
                "Google Calendar delete failed event_id=%s", event.id, exc_info=True
            )
            return False
