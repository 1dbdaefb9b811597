"""Session endpoints. Sign-in itself is handled by the identity provider."""

from fastapi import APIRouter, Depends, Response

from caseops.core.deps import get_current_session, require_csrf_header
from caseops.core.session_context import SessionContext
from caseops.schemas.auth import UserSession

router = APIRouter()


@router.get("/me", response_model=UserSession)
async def me(session: UserSession = Depends(get_current_session)):
    """Current session user (role and email re-read from the identity store)."""
    return session


@router.post("/refresh", response_model=UserSession, dependencies=[Depends(require_csrf_header)])
async def refresh(response: Response, session: UserSession = Depends(get_current_session)):
    """Re-sign the cookie with the current role and a new expiry."""
    SessionContext.save(response, session)
    return session


@router.post("/logout", dependencies=[Depends(require_csrf_header)])
async def logout(response: Response):
    SessionContext.clear(response)
    return {"status": "logged_out"}
