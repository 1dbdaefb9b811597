"""Dashboard service - visible totals and case freshness counts."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from caseops.core.case_access import filter_by_role
from caseops.db.enums import CaseStatus
from caseops.schemas.auth import UserSession
from caseops.schemas.dashboard import DashboardStats
from caseops.services.event_repository import EventRepository
from caseops.services.gateways import Gateways
from caseops.services.record_query import upcoming_meetings

STALE_AFTER = timedelta(days=30)
RECENT_WITHIN = timedelta(days=7)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


async def get_dashboard_stats(
    gateways: Gateways,
    repository: EventRepository,
    session: UserSession,
    tz: ZoneInfo,
    now: datetime | None = None,
) -> DashboardStats:
    """
    Counts over what the session user can see.

    A case is stale when it was never updated or not updated for 30 days,
    and recently updated when updated within 7 days.
    """
    now = now or datetime.now(timezone.utc)
    cases = filter_by_role(await gateways.cases.list_cases(), session)
    events = filter_by_role(await repository.all(), session)
    activities = filter_by_role(await gateways.cases.list_activities(), session)
    if session.is_privileged:
        total_users = len(await gateways.identities.list_users())
    else:
        total_users = 1

    by_status = Counter(case.status for case in cases)
    stale = sum(
        1 for case in cases
        if case.updated_at is None or now - _aware(case.updated_at) > STALE_AFTER
    )
    recent = sum(
        1 for case in cases
        if case.updated_at is not None and now - _aware(case.updated_at) <= RECENT_WITHIN
    )

    return DashboardStats(
        total_cases=len(cases),
        total_users=total_users,
        total_events=len(events),
        total_activities=len(activities),
        active_cases=by_status[CaseStatus.ACTIVE.value],
        new_cases=by_status[CaseStatus.NEW.value],
        inactive_cases=by_status[CaseStatus.INACTIVE.value],
        stale_cases=stale,
        recently_updated_cases=recent,
        upcoming_meetings=len(upcoming_meetings(events, tz, now)),
    )
