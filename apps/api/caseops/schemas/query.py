"""Filter parameters for list views."""

from datetime import date

from pydantic import BaseModel

from caseops.db.enums import ActivityWindow, CaseStatus, EventBucket, UserStatusFilter


class EventQuery(BaseModel):
    bucket: EventBucket = EventBucket.ACTIVE
    date_from: date | None = None
    date_to: date | None = None
    search: str = ""


class CaseQuery(BaseModel):
    status: CaseStatus | None = None  # None = all statuses
    search: str = ""


class ActivityQuery(BaseModel):
    window: ActivityWindow = ActivityWindow.LAST_WEEK
    search: str = ""


class UserQuery(BaseModel):
    status: UserStatusFilter = UserStatusFilter.ACTIVE
    search: str = ""
