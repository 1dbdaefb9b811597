"""Activity logging service - append-only audit trail of console actions."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

from caseops.core.async_utils import gather_ordered
from caseops.core.case_access import filter_by_role, require_privileged
from caseops.core.structured_logging import build_log_context
from caseops.db.enums import ActivityAction, CaseStatus, EventStatus
from caseops.schemas.activity import ActivityEntry
from caseops.schemas.auth import UserSession
from caseops.schemas.query import ActivityQuery
from caseops.services.enrichment_service import resolve_actor_email
from caseops.services.gateways import Gateways
from caseops.services.record_query import filter_activities, local_date

logger = logging.getLogger(__name__)


class ActivityServiceError(Exception):
    """Base exception for activity service errors."""

    pass


class ActivityNotFoundError(ActivityServiceError):
    """Activity entry not found."""

    pass


async def log_activity(
    gateways: Gateways,
    session: UserSession,
    action: ActivityAction,
    note: str,
    case_id: str | None = None,
    extra: dict[str, Any] | None = None,
) -> str:
    """
    Append an activity entry for the session user.

    The actor email is resolved at write time so the entry stays readable
    after the identity document changes or is removed.

    Returns:
        The new entry id
    """
    user_email = await resolve_actor_email(gateways.identities, session.email or session.user_id)
    data: dict[str, Any] = {
        "case_id": case_id,
        "note": note,
        "action": action.value,
        "created_by": session.user_id,
        "user_email": user_email,
        "timestamp": datetime.now(timezone.utc),
    }
    if extra:
        data.update(extra)
    activity_id = await gateways.cases.append_activity(data)
    logger.info(
        "activity_logged",
        extra=build_log_context(user_id=session.user_id, case_id=case_id, action=action.value),
    )
    return activity_id


# =============================================================================
# Typed helpers
# =============================================================================

async def log_case_created(gateways: Gateways, session: UserSession, case_id: str) -> str:
    return await log_activity(
        gateways, session, ActivityAction.CASE_CREATED, "Patient case created", case_id=case_id
    )


async def log_case_deleted(gateways: Gateways, session: UserSession, case_id: str) -> str:
    return await log_activity(
        gateways, session, ActivityAction.CASE_DELETED, "Patient case deleted from system", case_id=case_id
    )


async def log_case_status_updated(
    gateways: Gateways, session: UserSession, case_id: str, status: CaseStatus
) -> str:
    return await log_activity(
        gateways, session, ActivityAction.STATUS_UPDATED,
        f"Patient status updated to {status.value}", case_id=case_id,
    )


async def log_assignment_updated(
    gateways: Gateways, session: UserSession, case_id: str, assigned_admins: list[str]
) -> str:
    return await log_activity(
        gateways, session, ActivityAction.ASSIGNMENT_UPDATED,
        f"Assigned admins updated ({len(assigned_admins)})", case_id=case_id,
        extra={"assigned_admins": assigned_admins},
    )


async def log_event_status_updated(
    gateways: Gateways, session: UserSession, title: str, status: EventStatus, case_id: str | None
) -> str:
    return await log_activity(
        gateways, session, ActivityAction.EVENT_STATUS_UPDATED,
        f'Event "{title}" status updated to {status.value}', case_id=case_id or None,
    )


async def log_event_archived(
    gateways: Gateways, session: UserSession, title: str, archived: bool, case_id: str | None
) -> str:
    if archived:
        action, verb = ActivityAction.EVENT_ARCHIVED, "archived"
    else:
        action, verb = ActivityAction.EVENT_UNARCHIVED, "unarchived"
    return await log_activity(
        gateways, session, action, f'Event "{title}" {verb}', case_id=case_id or None
    )


async def log_event_updated(
    gateways: Gateways, session: UserSession, title: str, fields: list[str], case_id: str | None
) -> str:
    return await log_activity(
        gateways, session, ActivityAction.EVENT_UPDATED,
        f'Event "{title}" updated ({", ".join(fields)})', case_id=case_id or None,
    )


async def log_event_deleted(
    gateways: Gateways, session: UserSession, title: str, case_id: str | None
) -> str:
    return await log_activity(
        gateways, session, ActivityAction.EVENT_DELETED, f'Event "{title}" deleted', case_id=case_id or None
    )


async def log_meeting(
    gateways: Gateways,
    session: UserSession,
    case_id: str,
    title: str,
    description: str,
    tz: ZoneInfo,
) -> str:
    """Denormalized meeting entry written when an event has a description. Not editable."""
    today = local_date(datetime.now(timezone.utc), tz)
    return await log_activity(
        gateways, session, ActivityAction.MEETING, f"{title} - {description}", case_id=case_id,
        extra={
            "meeting_date": today.strftime("%d/%m/%Y"),
            "meeting_description": title,
            "meeting_notes": description,
            "is_event_created": True,
        },
    )


# =============================================================================
# Activity log view
# =============================================================================

async def backfill_missing_emails(gateways: Gateways, entries: list[ActivityEntry]) -> list[ActivityEntry]:
    """Fill ``user_email`` on entries written before it was recorded (read-time only)."""
    uids = list(dict.fromkeys(e.created_by for e in entries if not e.user_email))
    if not uids:
        return entries
    emails = await gather_ordered(
        [lambda uid=uid: resolve_actor_email(gateways.identities, uid) for uid in uids]
    )
    by_uid = dict(zip(uids, emails))
    return [
        e if e.user_email else e.model_copy(update={"user_email": by_uid[e.created_by]})
        for e in entries
    ]


async def list_activity_logs(
    gateways: Gateways,
    session: UserSession,
    query: ActivityQuery,
    tz: ZoneInfo,
    now: datetime | None = None,
) -> list[ActivityEntry]:
    """Visible entries, newest first, filtered by time window and search."""
    entries = filter_by_role(await gateways.cases.list_activities(), session)
    entries = await backfill_missing_emails(gateways, entries)
    return filter_activities(entries, query, tz, now or datetime.now(timezone.utc))


async def delete_activity_log(gateways: Gateways, session: UserSession, activity_id: str) -> None:
    """Privileged remediation of a single entry."""
    require_privileged(session, action="delete activity logs")
    if not await gateways.cases.delete_activity(activity_id):
        raise ActivityNotFoundError(f"Activity {activity_id} not found")
    logger.info(
        "activity_deleted %s",
        activity_id,
        extra=build_log_context(user_id=session.user_id, action="activity_deleted"),
    )
