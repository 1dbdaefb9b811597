"""User management service - roles, block/restrict flags and 2FA."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, status

from caseops.core.case_access import require_privileged
from caseops.core.structured_logging import build_log_context
from caseops.db.enums import UserStatus
from caseops.schemas.auth import UserSession
from caseops.schemas.query import UserQuery
from caseops.schemas.user import UserRecord, UserUpdate
from caseops.services.gateways import Gateways
from caseops.services.record_query import filter_users

logger = logging.getLogger(__name__)


class UserServiceError(Exception):
    """Base exception for user service errors."""

    pass


class UserNotFoundError(UserServiceError):
    """User not found."""

    pass


def status_flags(user_status: UserStatus) -> dict[str, bool]:
    """Blocked and restricted are mutually exclusive; active clears both."""
    return {
        "blocked": user_status == UserStatus.BLOCKED,
        "restricted": user_status == UserStatus.RESTRICTED,
    }


def _require_self_or_privileged(session: UserSession, user_id: str, action: str) -> None:
    if session.user_id != user_id and not session.is_privileged:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Not authorized to {action} for another user",
        )


async def _load_user(gateways: Gateways, user_id: str) -> UserRecord:
    user = await gateways.identities.get_user(user_id)
    if user is None:
        raise UserNotFoundError(f"User {user_id} not found")
    return user


async def list_users(gateways: Gateways, session: UserSession, query: UserQuery) -> list[UserRecord]:
    require_privileged(session, action="manage users")
    users = await gateways.identities.list_users()
    return filter_users(sorted(users, key=lambda u: (u.name or u.email).lower()), query)


async def get_user(gateways: Gateways, session: UserSession, user_id: str) -> UserRecord:
    _require_self_or_privileged(session, user_id, "view profile")
    return await _load_user(gateways, user_id)


async def update_user(
    gateways: Gateways,
    session: UserSession,
    user_id: str,
    data: UserUpdate,
) -> UserRecord:
    require_privileged(session, action="manage users")
    await _load_user(gateways, user_id)

    fields: dict[str, Any] = {}
    if data.name is not None:
        fields["name"] = data.name
    if data.email is not None:
        fields["email"] = data.email
    if data.role is not None:
        fields["role"] = data.role.value
    if data.status is not None:
        fields.update(status_flags(data.status))
        if data.status == UserStatus.ACTIVE:
            fields["blocked_reason"] = ""
    if data.blocked_reason is not None and data.status != UserStatus.ACTIVE:
        fields["blocked_reason"] = data.blocked_reason

    if fields:
        await gateways.identities.update_user(user_id, fields)
        logger.info(
            "user_updated fields=%s",
            sorted(fields),
            extra=build_log_context(user_id=session.user_id, action="user_updated"),
        )
    return await _load_user(gateways, user_id)


async def delete_user(gateways: Gateways, session: UserSession, user_id: str) -> None:
    require_privileged(session, action="manage users")
    if user_id == session.user_id:
        raise UserServiceError("You cannot delete your own account")
    if not await gateways.identities.delete_user(user_id):
        raise UserNotFoundError(f"User {user_id} not found")
    logger.info("user_deleted", extra=build_log_context(user_id=session.user_id, action="user_deleted"))


async def set_two_factor(
    gateways: Gateways,
    session: UserSession,
    user_id: str,
    enabled: bool,
) -> UserRecord:
    _require_self_or_privileged(session, user_id, "change two-factor settings")
    await _load_user(gateways, user_id)
    await gateways.identities.set_two_factor(user_id, enabled)
    return await _load_user(gateways, user_id)
