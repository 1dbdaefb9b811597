"""Case schemas - Pydantic models for cases and their PII counterpart."""

from datetime import datetime

from pydantic import BaseModel, Field

from caseops.db.enums import CaseStatus
from caseops.schemas.activity import ActivityEntry
from caseops.schemas.enrichment import EnrichedRecord
from caseops.schemas.stored import StoredModel


class CaseRecord(StoredModel):
    """Case document (non-PII metadata) as stored in ``patients``."""

    case_id: str
    status: str = CaseStatus.NEW.value  # legacy documents may hold "completed"
    created_by: str = ""
    assigned_admins: list[str] = Field(default_factory=list)
    notes: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PatientPII(StoredModel):
    """Person-identifying fields held only by the PII store."""

    first_name: str = ""
    last_name: str = ""
    date_of_birth: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    notes: str = ""


class CaseCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    notes: str = ""
    status: CaseStatus = CaseStatus.NEW
    assigned_admins: list[str] = Field(default_factory=list)

    def pii(self) -> PatientPII:
        return PatientPII(
            first_name=self.first_name,
            last_name=self.last_name,
            date_of_birth=self.date_of_birth,
            email=self.email,
            phone=self.phone,
            address=self.address,
        )


class CaseStatusUpdate(BaseModel):
    status: CaseStatus


class CaseAssignUpdate(BaseModel):
    assigned_admins: list[str] = Field(..., min_length=1)


class CaseCreateResponse(BaseModel):
    case_id: str


EnrichedCase = EnrichedRecord[CaseRecord]


class CaseListResponse(BaseModel):
    items: list[EnrichedCase]
    total: int
    page: int
    per_page: int
    pages: int


class CaseDetail(BaseModel):
    """Case with its PII record and activity notes."""
    case: EnrichedCase
    patient: PatientPII | None
    activities: list[ActivityEntry]


class PatientSearchResult(StoredModel):
    case_id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
