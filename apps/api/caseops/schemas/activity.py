"""Activity log schemas."""

from datetime import datetime

from pydantic import BaseModel

from caseops.schemas.stored import StoredModel


class ActivityEntry(StoredModel):
    """
    Immutable activity log entry.

    ``case_id`` may point at a case that no longer exists; such entries are
    kept until a privileged user removes them.
    """

    id: str
    case_id: str | None = None
    note: str = ""
    action: str = ""
    created_by: str = ""
    user_email: str | None = None
    timestamp: datetime | None = None
    # Meeting entries written alongside event creation
    meeting_date: str | None = None
    meeting_description: str | None = None
    meeting_notes: str | None = None
    is_event_created: bool = False


class ActivityListResponse(BaseModel):
    items: list[ActivityEntry]
    total: int
    page: int
    per_page: int
    pages: int
