"""Activity log: write-time email, read-time backfill, scoping, remediation."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from fastapi import HTTPException

from caseops.core.config import settings
from caseops.db.enums import ActivityAction, ActivityWindow, Role
from caseops.schemas.auth import UserSession
from caseops.schemas.query import ActivityQuery
from caseops.services import activity_service
from caseops.services.activity_service import ActivityNotFoundError

from conftest import ADMIN_ID, OTHER_ADMIN_ID

UTC = ZoneInfo("UTC")
NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def _entry(store, entry_id, created_by, *, hours_ago=1, **fields):
    store.put(
        "activities", entry_id,
        created_by=created_by,
        action=fields.pop("action", "case_created"),
        note=fields.pop("note", "Patient case created"),
        timestamp=NOW - timedelta(hours=hours_ago),
        **fields,
    )


@pytest.mark.asyncio
async def test_log_activity_resolves_email_at_write_time(gateways, store):
    session = UserSession(user_id=ADMIN_ID, role=Role.ADMIN)  # no email on the session

    await activity_service.log_activity(
        gateways, session, ActivityAction.CASE_CREATED, "Patient case created", case_id="CASE-001"
    )

    [entry] = store.docs("activities")
    assert entry["user_email"] == "ada@example.com"
    assert entry["created_by"] == ADMIN_ID
    assert entry["timestamp"].tzinfo is not None


@pytest.mark.asyncio
async def test_legacy_entries_backfilled_from_one_identity(gateways, store, super_session, monkeypatch):
    """Same uid before and after its identity document existed reads back one email."""
    monkeypatch.setattr(settings, "LEGACY_IDENTITY_EMAILS", {})
    _entry(store, "before", "uid-legacy", hours_ago=5)
    store.put("users", "uid-legacy", name="Lee Legacy", email="lee@example.com", role="admin")
    _entry(store, "after", "uid-legacy", hours_ago=1, user_email="lee@example.com")

    entries = await activity_service.list_activity_logs(
        gateways, super_session, ActivityQuery(window=ActivityWindow.ALL), UTC, now=NOW
    )

    assert [e.id for e in entries] == ["after", "before"]
    assert {e.user_email for e in entries} == {"lee@example.com"}
    # read-time only: the stored entry is untouched
    before = next(d for d in store.docs("activities") if d["id"] == "before")
    assert "user_email" not in before


@pytest.mark.asyncio
async def test_backfill_falls_back_to_legacy_table(gateways, store, super_session, monkeypatch):
    monkeypatch.setattr(settings, "LEGACY_IDENTITY_EMAILS", {"uid-gone": "gone@example.com"})
    _entry(store, "a1", "uid-gone")

    [entry] = await activity_service.list_activity_logs(
        gateways, super_session, ActivityQuery(window=ActivityWindow.ALL), UTC, now=NOW
    )

    assert entry.user_email == "gone@example.com"


@pytest.mark.asyncio
async def test_entries_are_scoped_before_window_and_search(gateways, store, admin_session):
    _entry(store, "mine-today", ADMIN_ID, hours_ago=1, user_email="ada@example.com")
    _entry(store, "mine-old", ADMIN_ID, hours_ago=24 * 10, user_email="ada@example.com")
    _entry(store, "theirs", OTHER_ADMIN_ID, hours_ago=1, user_email="otto@example.com")

    week = await activity_service.list_activity_logs(
        gateways, admin_session, ActivityQuery(window=ActivityWindow.LAST_WEEK), UTC, now=NOW
    )
    month = await activity_service.list_activity_logs(
        gateways, admin_session, ActivityQuery(window=ActivityWindow.LAST_MONTH), UTC, now=NOW
    )
    searched = await activity_service.list_activity_logs(
        gateways, admin_session, ActivityQuery(window=ActivityWindow.ALL, search="otto"), UTC, now=NOW
    )

    assert [e.id for e in week] == ["mine-today"]
    assert [e.id for e in month] == ["mine-today", "mine-old"]
    assert searched == []


@pytest.mark.asyncio
async def test_entries_for_deleted_case_are_kept(gateways, store, super_session):
    _entry(store, "orphan", ADMIN_ID, case_id="CASE-GONE", user_email="ada@example.com")

    entries = await activity_service.list_activity_logs(
        gateways, super_session, ActivityQuery(window=ActivityWindow.ALL), UTC, now=NOW
    )

    assert [e.case_id for e in entries] == ["CASE-GONE"]


@pytest.mark.asyncio
async def test_delete_is_privileged(gateways, store, admin_session, super_session):
    _entry(store, "a1", ADMIN_ID, user_email="ada@example.com")

    with pytest.raises(HTTPException) as exc:
        await activity_service.delete_activity_log(gateways, admin_session, "a1")
    assert exc.value.status_code == 403

    await activity_service.delete_activity_log(gateways, super_session, "a1")
    assert store.docs("activities") == []

    with pytest.raises(ActivityNotFoundError):
        await activity_service.delete_activity_log(gateways, super_session, "a1")


@pytest.mark.asyncio
async def test_meeting_entry_fields(gateways, store, admin_session):
    tz = ZoneInfo("Asia/Tokyo")

    await activity_service.log_meeting(gateways, admin_session, "CASE-001", "Check-in", "Bring forms", tz)

    [entry] = store.docs("activities")
    assert entry["action"] == "meeting"
    assert entry["note"] == "Check-in - Bring forms"
    assert entry["meeting_date"] == datetime.now(tz).strftime("%d/%m/%Y")
    assert entry["is_event_created"] is True
