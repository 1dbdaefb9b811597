from datetime import datetime, timezone

import httpx
import pytest

from caseops.schemas.event import EventRecord
from caseops.services.calendar_service import GOOGLE_CALENDAR_API, GoogleCalendarClient
from caseops.services.identity_store import IdentityStore

from conftest import ADMIN_ID


def _event(**overrides) -> EventRecord:
    data = {
        "id": "e1",
        "title": "Intake",
        "description": "Forms",
        "date": datetime(2024, 6, 15, 14, 0, tzinfo=timezone.utc),
        "created_by": ADMIN_ID,
    }
    data.update(overrides)
    return EventRecord(**data)


@pytest.fixture
def linked(store):
    store.put("users", ADMIN_ID, name="Ada Admin", email="ada@example.com", role="admin",
              has_google_calendar=True, google_calendar_token="tok")


@pytest.mark.asyncio
async def test_remote_event_spans_configured_duration(gateways, linked, calendar_server):
    google_id = await gateways.calendar.sync_event_best_effort(ADMIN_ID, _event())

    assert google_id == "g-1"
    [body] = calendar_server.created
    assert body["summary"] == "Intake"
    assert body["start"]["dateTime"] == "2024-06-15T14:00:00+00:00"
    assert body["end"]["dateTime"] == "2024-06-15T15:00:00+00:00"
    assert calendar_server.requests[0].url.path == "/calendar/v3/calendars/primary/events"


@pytest.mark.asyncio
async def test_sync_skips_unlinked_users(gateways, calendar_server):
    assert await gateways.calendar.sync_event_best_effort(ADMIN_ID, _event()) is None
    assert calendar_server.requests == []


@pytest.mark.asyncio
async def test_sync_failure_returns_none(gateways, linked, calendar_server):
    calendar_server.fail = True
    assert await gateways.calendar.sync_event_best_effort(ADMIN_ID, _event()) is None


@pytest.mark.asyncio
async def test_disabled_client_makes_no_calls(store, linked, calendar_server):
    http = httpx.AsyncClient(transport=httpx.MockTransport(calendar_server.handle), base_url=GOOGLE_CALENDAR_API)
    client = GoogleCalendarClient(http, IdentityStore(store), enabled=False)

    assert await client.sync_event_best_effort(ADMIN_ID, _event()) is None
    assert await client.delete_event_best_effort(ADMIN_ID, _event(google_event_id="g-9")) is False
    assert calendar_server.requests == []
    await http.aclose()


@pytest.mark.asyncio
async def test_delete_treats_gone_as_success(gateways, linked, calendar_server):
    removed = await gateways.calendar.delete_event_best_effort(ADMIN_ID, _event(google_event_id="g-7"))

    assert removed is True
    assert calendar_server.deleted == ["g-7"]


@pytest.mark.asyncio
async def test_delete_without_google_id_is_skipped(gateways, linked, calendar_server):
    assert await gateways.calendar.delete_event_best_effort(ADMIN_ID, _event()) is False
    assert calendar_server.requests == []
