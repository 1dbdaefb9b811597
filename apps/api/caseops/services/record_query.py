"""List-view filters: status buckets, local-date ranges and free-text search.

All filters are pure predicates over already visibility-scoped records and
keep input order, so applying one twice is a no-op. Records may be raw or
enriched.

Dates are compared on the local calendar day in the requested timezone,
never as UTC instants, so an event at 23:30 local stays on its own day
whatever the offset.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Iterable, TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from caseops.db.enums import ActivityWindow, EventBucket, EventStatus, UserStatusFilter
from caseops.schemas.enrichment import EnrichedRecord
from caseops.schemas.query import ActivityQuery, CaseQuery, EventQuery, UserQuery
from caseops.schemas.user import UserRecord

T = TypeVar("T")

_WINDOW_DAYS = {
    ActivityWindow.TODAY: 0,
    ActivityWindow.LAST_WEEK: 7,
    ActivityWindow.LAST_MONTH: 30,
}


def _raw(record: Any) -> Any:
    return record.record if isinstance(record, EnrichedRecord) else record


def resolve_timezone(name: str) -> ZoneInfo:
    """
    Raises:
        ValueError: unknown IANA timezone name
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


def local_date(instant: datetime | None, tz: ZoneInfo) -> date | None:
    """Calendar date of an instant in ``tz``. Naive values are read as UTC."""
    if instant is None:
        return None
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(tz).date()


def local_midnight(now: datetime, tz: ZoneInfo) -> datetime:
    """Start of ``now``'s local day, as an aware datetime."""
    today = local_date(now, tz)
    return datetime.combine(today, time.min, tzinfo=tz)


def _contains(needle: str, *fields: str | None) -> bool:
    return any(needle in (field or "").lower() for field in fields)


# =============================================================================
# Events
# =============================================================================

def matches_bucket(event: Any, bucket: EventBucket) -> bool:
    """
    Archived is independent of status: the active bucket never includes an
    archived event, and the archived bucket ignores status.
    """
    raw = _raw(event)
    if bucket == EventBucket.ARCHIVED:
        return bool(raw.archived)
    return not raw.archived and (raw.status or "").lower() in EventStatus.active_aliases()


def in_date_range(instant: datetime | None, date_from: date | None, date_to: date | None, tz: ZoneInfo) -> bool:
    """Inclusive on both bounds. Undated records fail whenever a bound is set."""
    if date_from is None and date_to is None:
        return True
    day = local_date(instant, tz)
    if day is None:
        return False
    if date_from is not None and day < date_from:
        return False
    if date_to is not None and day > date_to:
        return False
    return True


def filter_events(records: Iterable[T], query: EventQuery, tz: ZoneInfo) -> list[T]:
    needle = query.search.strip().lower()
    result = []
    for record in records:
        raw = _raw(record)
        if not matches_bucket(raw, query.bucket):
            continue
        if not in_date_range(raw.date, query.date_from, query.date_to, tz):
            continue
        if needle and not _contains(needle, raw.title, raw.description, raw.case_id):
            continue
        result.append(record)
    return result


def upcoming_meetings(records: Iterable[T], tz: ZoneInfo, now: datetime) -> list[T]:
    """Non-archived events dated today (local) or later, soonest first."""
    cutoff = local_midnight(now, tz)
    upcoming = [
        r for r in records
        if not _raw(r).archived and _raw(r).date is not None and _aware(_raw(r).date) >= cutoff
    ]
    return sorted(upcoming, key=lambda r: _aware(_raw(r).date))


def events_for_day(records: Iterable[T], day: date, tz: ZoneInfo) -> list[T]:
    """Calendar cell contents: non-archived events whose local y/m/d is ``day``."""
    return [
        r for r in records
        if not _raw(r).archived and local_date(_raw(r).date, tz) == day
    ]


def _aware(instant: datetime) -> datetime:
    return instant if instant.tzinfo else instant.replace(tzinfo=timezone.utc)


# =============================================================================
# Cases
# =============================================================================

def filter_cases(records: Iterable[T], query: CaseQuery) -> list[T]:
    """Status match plus case-identifier search. Store order (newest first) is kept."""
    needle = query.search.strip().lower()
    result = []
    for record in records:
        raw = _raw(record)
        if query.status is not None and raw.status != query.status.value:
            continue
        if needle and not _contains(needle, raw.case_id):
            continue
        result.append(record)
    return result


# =============================================================================
# Activity log
# =============================================================================

def window_start(window: ActivityWindow, tz: ZoneInfo, now: datetime) -> datetime | None:
    if window == ActivityWindow.ALL:
        return None
    return local_midnight(now, tz) - timedelta(days=_WINDOW_DAYS[window])


def filter_activities(records: Iterable[T], query: ActivityQuery, tz: ZoneInfo, now: datetime) -> list[T]:
    start = window_start(query.window, tz, now)
    needle = query.search.strip().lower()
    result = []
    for record in records:
        if start is not None and (record.timestamp is None or _aware(record.timestamp) < start):
            continue
        if needle and not _contains(needle, record.action, record.note, record.user_email, record.created_by):
            continue
        result.append(record)
    return result


# =============================================================================
# Users
# =============================================================================

def matches_user_status(user: UserRecord, status: UserStatusFilter) -> bool:
    if status == UserStatusFilter.ACTIVE:
        return not user.blocked and not user.restricted
    if status == UserStatusFilter.BLOCKED:
        return user.blocked or user.restricted
    if status == UserStatusFilter.RESTRICTED:
        return user.restricted
    return True


def filter_users(records: Iterable[UserRecord], query: UserQuery) -> list[UserRecord]:
    needle = query.search.strip().lower()
    return [
        user for user in records
        if matches_user_status(user, query.status)
        and (not needle or _contains(needle, user.name, user.email))
    ]
