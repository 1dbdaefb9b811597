"""Event schemas - Pydantic models for scheduled events."""

from datetime import datetime

from pydantic import BaseModel, Field

from caseops.db.enums import EventStatus
from caseops.schemas.enrichment import EnrichedRecord
from caseops.schemas.stored import StoredModel


class EventRecord(StoredModel):
    """Event document as stored in ``events``."""

    id: str
    title: str = ""
    description: str = ""
    case_id: str = ""
    date: datetime | None = None
    type: str = "meeting"
    status: str = EventStatus.ACTIVE.value  # legacy documents may hold "new"
    archived: bool = False
    created_by: str = ""
    google_event_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    case_id: str = Field(..., min_length=1)
    date: datetime
    type: str = "meeting"
    status: EventStatus = EventStatus.ACTIVE


class EventUpdate(BaseModel):
    """Field edit; status and archive have their own endpoints."""
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    case_id: str | None = Field(None, min_length=1)
    date: datetime | None = None
    type: str | None = None


class EventStatusUpdate(BaseModel):
    status: EventStatus


class EventArchiveUpdate(BaseModel):
    archived: bool


class EventCreateResponse(BaseModel):
    id: str


EnrichedEvent = EnrichedRecord[EventRecord]


class EventListResponse(BaseModel):
    items: list[EnrichedEvent]
    total: int
    page: int
    per_page: int
    pages: int
