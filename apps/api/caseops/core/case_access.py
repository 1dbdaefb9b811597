"""Record visibility - centralized role scoping for cases, events and activity.

Access is creator/assignee based:
- super_admin: sees and may act on every record
- every other role: only records they created, plus cases they are
  assigned to

``filter_by_role`` must run before any status/date/search filter so that
counts never reveal records the user cannot see.
"""

from typing import Any, Iterable, TypeVar

from fastapi import HTTPException, status

from caseops.schemas.auth import UserSession
from caseops.schemas.enrichment import EnrichedRecord

T = TypeVar("T")


def _unwrap(record: Any) -> Any:
    return record.record if isinstance(record, EnrichedRecord) else record


def can_view(record: Any, session: UserSession) -> bool:
    """
    Non-raising visibility check for a raw or enriched record.

    Cases carry ``assigned_admins``; events and activity entries only
    have a creator.
    """
    if session.is_privileged:
        return True
    raw = _unwrap(record)
    if getattr(raw, "created_by", None) == session.user_id:
        return True
    assigned = getattr(raw, "assigned_admins", None) or []
    return session.user_id in assigned


def filter_by_role(records: Iterable[T], session: UserSession) -> list[T]:
    """Keep only records visible to the session user. Order is preserved."""
    if session.is_privileged:
        return list(records)
    return [r for r in records if can_view(r, session)]


def check_record_access(record: Any, session: UserSession, *, noun: str = "record") -> None:
    """
    Raise 403 unless the session user can see this record.

    Raises:
        HTTPException: 403 if access denied
    """
    if not can_view(record, session):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You don't have access to this {noun}",
        )


def require_privileged(session: UserSession, *, action: str) -> None:
    """
    Guard for destructive and management actions.

    Enforced inside the services, not only by hiding UI affordances.
    """
    if not session.is_privileged:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Role '{session.role.value}' not authorized to {action}",
        )


def require_creator(record: Any, session: UserSession, *, action: str) -> None:
    """Creator-or-privileged guard; assignment alone is not enough."""
    if session.is_privileged:
        return
    if getattr(_unwrap(record), "created_by", None) != session.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Only the creator may {action}",
        )
