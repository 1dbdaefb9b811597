"""Authentication-related Pydantic schemas."""

from pydantic import BaseModel

from caseops.db.enums import PRIVILEGED_ROLES, Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: str  # user_id
    role: str
    email: str = ""
    name: str = ""


class UserSession(BaseModel):
    """
    Session context for an authenticated console user.

    Loaded once per request by ``SessionContext.load`` and passed explicitly
    into every service call that scopes or authorizes data.
    """
    user_id: str
    role: Role
    email: str = ""
    display_name: str = ""

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES
