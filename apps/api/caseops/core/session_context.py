"""Session context - load/save/clear of the signed session cookie.

The session user is resolved once per request and handed to services
explicitly; nothing reads the cookie anywhere else.
"""

import logging

import jwt
from fastapi import HTTPException, Request, Response

from caseops.core.config import settings
from caseops.core.security import create_session_token, decode_session_token
from caseops.db.enums import Role
from caseops.schemas.auth import TokenPayload, UserSession
from caseops.services.identity_store import IdentityStore

logger = logging.getLogger(__name__)

COOKIE_NAME = "caseops_session"


class SessionContext:
    def __init__(self, request: Request, identities: IdentityStore):
        self._request = request
        self._identities = identities

    async def load(self) -> UserSession:
        """
        Resolve the cookie to a session user.

        The token subject may be a linked sign-in uid; it is mapped to the
        owning user document.

        Raises:
            HTTPException 401: missing/invalid cookie or unknown user
            HTTPException 403: blocked account or unknown role
        """
        token = self._request.cookies.get(COOKIE_NAME)
        if not token:
            raise HTTPException(status_code=401, detail="Not authenticated")

        try:
            payload = TokenPayload.model_validate(decode_session_token(token))
        except (jwt.InvalidTokenError, ValueError):
            raise HTTPException(status_code=401, detail="Invalid session")

        found = await self._identities.find_user_by_any_uid(payload.sub)
        if not found:
            raise HTTPException(status_code=401, detail="User not found")
        user_id, user = found

        if user.blocked or user.role == Role.BLOCKED.value:
            reason = f": {user.blocked_reason}" if user.blocked_reason else ""
            raise HTTPException(status_code=403, detail=f"Account blocked{reason}")

        # Validate role is a known enum value - return 403 not 500
        if not Role.has_value(user.role):
            raise HTTPException(
                status_code=403,
                detail=f"Unknown role '{user.role}'. Contact administrator.",
            )

        return UserSession(
            user_id=user_id,
            role=Role(user.role),
            email=user.email,
            display_name=user.name,
        )

    @staticmethod
    def save(response: Response, session: UserSession) -> str:
        """Sign a fresh token for ``session`` and set it as the cookie."""
        token = create_session_token(
            session.user_id,
            session.role.value,
            email=session.email,
            name=session.display_name,
        )
        response.set_cookie(
            COOKIE_NAME,
            token,
            max_age=settings.JWT_EXPIRES_HOURS * 3600,
            httponly=True,
            secure=settings.cookie_secure,
            samesite="lax",
        )
        return token

    @staticmethod
    def clear(response: Response) -> None:
        response.delete_cookie(
            COOKIE_NAME,
            httponly=True,
            secure=settings.cookie_secure,
            samesite="lax",
        )
