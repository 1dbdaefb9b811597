"""User schemas."""

from datetime import datetime

from pydantic import BaseModel

from caseops.db.enums import Role, UserStatus
from caseops.schemas.stored import StoredModel


class UserRecord(StoredModel):
    """Identity document as stored in ``users``."""

    user_id: str
    name: str = ""
    email: str = ""
    role: str = Role.ADMIN.value
    blocked: bool = False
    restricted: bool = False
    blocked_reason: str = ""
    linked_google_uid: str | None = None
    linked_google_email: str | None = None
    two_factor_enabled: bool = False
    created_at: datetime | None = None
    last_login_at: datetime | None = None
    login_count: int = 0


class UserUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    role: Role | None = None
    status: UserStatus | None = None
    blocked_reason: str | None = None


class TwoFactorUpdate(BaseModel):
    enabled: bool


class UserListResponse(BaseModel):
    items: list[UserRecord]
    total: int
    page: int
    per_page: int
    pages: int
