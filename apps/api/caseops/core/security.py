"""Security utilities for JWT session tokens."""

from datetime import datetime, timedelta, timezone

import jwt

from caseops.core.config import settings


# =============================================================================
# Session Token (JWT in cookie)
# =============================================================================

def create_session_token(
    user_id: str,
    role: str,
    email: str = "",
    name: str = "",
) -> str:
    """
    Create signed session JWT.

    Always signs with current secret (JWT_SECRET). Tokens are minted by the
    sign-in flow, which lives outside this service.
    """
    payload = {
        "sub": user_id,
        "role": role,
        "email": email,
        "name": name,
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_session_token(token: str) -> dict:
    """
    Decode and verify session JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore
