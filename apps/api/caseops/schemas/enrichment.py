"""Enriched record wrapper: a raw store record plus optional display joins."""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field, computed_field

RecordT = TypeVar("RecordT", bound=BaseModel)

UNKNOWN_PATIENT = "Unknown Patient"
UNKNOWN_USER = "Unknown User"


class PatientSummary(BaseModel):
    """Display fields joined from the PII store."""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    notes: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or UNKNOWN_PATIENT


class RecordEnrichment(BaseModel):
    """
    Derived fields for one record.

    ``patient`` is None when the PII lookup was not found, failed or timed
    out; callers render that as "Unknown Patient".
    """
    patient: PatientSummary | None = None
    created_by_name: str = UNKNOWN_USER

    @computed_field
    @property
    def patient_name(self) -> str:
        return self.patient.display_name if self.patient else UNKNOWN_PATIENT


class EnrichedRecord(BaseModel, Generic[RecordT]):
    record: RecordT
    enrichment: RecordEnrichment = Field(default_factory=RecordEnrichment)

    @property
    def created_by(self) -> str:
        return getattr(self.record, "created_by", "")
