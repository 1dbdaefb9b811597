"""Gateway bundle passed explicitly into service calls."""

from dataclasses import dataclass

from caseops.services.calendar_service import GoogleCalendarClient
from caseops.services.case_store import CaseStore
from caseops.services.identity_store import IdentityStore
from caseops.services.pii_client import PIIClient


@dataclass
class Gateways:
    cases: CaseStore
    identities: IdentityStore
    pii: PIIClient
    calendar: GoogleCalendarClient
