"""Case service - case lifecycle across the document store and the PII store.

A case is two records: non-PII metadata in the document store and the
identifying fields in the PII store. Creation writes the case document first,
then the activity note, then the PII record. Nothing is rolled back when the
PII write fails; the caller gets ``CaseCreationError`` with the case id.
Deletion only removes the case document.
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from datetime import datetime, timezone

from caseops.core.case_access import check_record_access, filter_by_role, require_creator, require_privileged
from caseops.core.structured_logging import build_log_context
from caseops.db.enums import CaseStatus
from caseops.schemas.auth import UserSession
from caseops.schemas.case import (
    CaseCreate,
    CaseDetail,
    CaseRecord,
    EnrichedCase,
    PatientSearchResult,
)
from caseops.schemas.query import CaseQuery
from caseops.services import activity_service
from caseops.services.enrichment_service import enrich_case_detail, enrich_cases
from caseops.services.gateways import Gateways
from caseops.services.pii_client import PIIStoreError
from caseops.services.record_query import filter_cases
from caseops.utils.pagination import Page, PaginationParams

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


class CaseServiceError(Exception):
    """Base exception for case service errors."""

    pass


class CaseNotFoundError(CaseServiceError):
    """Case not found."""

    pass


class CaseCreationError(CaseServiceError):
    """
    The case document was written but its PII record was not.

    The case document is left in place; ``case_id`` identifies it.
    """

    def __init__(self, case_id: str, message: str):
        super().__init__(message)
        self.case_id = case_id


# =============================================================================
# Case identifiers
# =============================================================================

def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def fallback_case_id(now_ms: int | None = None) -> str:
    """CASE-<base36 ms timestamp>-<5 random base36 chars>, uppercased."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(5))
    return f"CASE-{to_base36(now_ms)}-{suffix}".upper()


def format_case_id(number: int) -> str:
    return f"CASE-{number:03d}"


async def allocate_case_id(gateways: Gateways) -> str:
    """Sequential id from the PII store, or a timestamp-based one if that fails."""
    try:
        return format_case_id(await gateways.pii.next_case_number())
    except PIIStoreError as e:
        logger.warning("next-case-id unavailable, using fallback id: %s", e)
        return fallback_case_id()


async def _load_case(gateways: Gateways, case_id: str) -> CaseRecord:
    case = await gateways.cases.get_case(case_id)
    if case is None:
        raise CaseNotFoundError(f"Case {case_id} not found")
    return case


# =============================================================================
# Reads
# =============================================================================

async def list_cases(
    gateways: Gateways,
    session: UserSession,
    query: CaseQuery,
    pagination: PaginationParams,
) -> Page[EnrichedCase]:
    """
    Visible cases, newest first, filtered and paginated.

    Only the returned page is enriched; filtering never needs PII.
    """
    visible = filter_by_role(await gateways.cases.list_cases(), session)
    page = Page.create(filter_cases(visible, query), pagination)
    page.items = await enrich_cases(page.items, gateways)
    return page


async def get_case_detail(gateways: Gateways, session: UserSession, case_id: str) -> CaseDetail:
    case = await _load_case(gateways, case_id)
    check_record_access(case, session, noun="case")

    enriched, patient = await enrich_case_detail(case, gateways)
    activities = await gateways.cases.list_case_activities(case_id)
    return CaseDetail(case=enriched, patient=patient, activities=activities)


async def search_patients(gateways: Gateways, session: UserSession, query: str) -> list[PatientSearchResult]:
    """PII search limited to cases the session user can see. Empty on PII failure."""
    if not query.strip():
        return []
    try:
        results = await gateways.pii.search_patients(query.strip())
    except PIIStoreError as e:
        logger.warning("Patient search failed: %s", e)
        return []
    if session.is_privileged:
        return results
    visible = {c.case_id for c in filter_by_role(await gateways.cases.list_cases(), session)}
    return [r for r in results if r.case_id in visible]


# =============================================================================
# Mutations
# =============================================================================

async def create_case(gateways: Gateways, session: UserSession, data: CaseCreate) -> str:
    """
    Returns:
        The new case id

    Raises:
        CaseCreationError: the PII write failed after the case document was written
    """
    case_id = await allocate_case_id(gateways)
    case = CaseRecord(
        case_id=case_id,
        status=data.status.value,
        created_by=session.user_id,
        assigned_admins=list(dict.fromkeys([session.user_id, *data.assigned_admins])),
        notes=data.notes,
        created_at=datetime.now(timezone.utc),
        updated_at=None,
    )
    await gateways.cases.create_case_document(case)
    await activity_service.log_case_created(gateways, session, case_id)

    try:
        await gateways.pii.create_patient(case_id, data.pii())
    except PIIStoreError as e:
        logger.error(
            "PII write failed after case document was created",
            extra=build_log_context(user_id=session.user_id, case_id=case_id, action="case_created"),
        )
        raise CaseCreationError(case_id, "Failed to save patient details") from e

    logger.info(
        "case_created",
        extra=build_log_context(user_id=session.user_id, case_id=case_id, action="case_created"),
    )
    return case_id


async def update_case_status(
    gateways: Gateways,
    session: UserSession,
    case_id: str,
    status: CaseStatus,
) -> CaseRecord:
    """
    Note the new status in the activity log, then write it.

    Returns the updated record so callers can mirror it without a re-fetch.
    """
    case = await _load_case(gateways, case_id)
    check_record_access(case, session, noun="case")
    fields = {"status": status.value, "updated_at": datetime.now(timezone.utc)}
    await activity_service.log_case_status_updated(gateways, session, case_id, status)
    await gateways.cases.update_case(case_id, fields)
    return case.model_copy(update=fields)


async def update_assigned_admins(
    gateways: Gateways,
    session: UserSession,
    case_id: str,
    assigned_admins: list[str],
) -> CaseRecord:
    case = await _load_case(gateways, case_id)
    require_creator(case, session, action="change case assignments")
    admins = list(dict.fromkeys(a for a in assigned_admins if a))
    if not admins:
        raise CaseServiceError("A case needs at least one assigned admin")
    fields = {"assigned_admins": admins, "updated_at": datetime.now(timezone.utc)}
    await activity_service.log_assignment_updated(gateways, session, case_id, admins)
    await gateways.cases.update_case(case_id, fields)
    return case.model_copy(update=fields)


async def delete_case(gateways: Gateways, session: UserSession, case_id: str) -> None:
    """
    Delete the case document and note it in the activity log.

    The PII record and existing activity entries are kept.
    """
    require_privileged(session, action="delete cases")
    if not await gateways.cases.delete_case(case_id):
        raise CaseNotFoundError(f"Case {case_id} not found")
    await activity_service.log_case_deleted(gateways, session, case_id)
    logger.info(
        "case_deleted",
        extra=build_log_context(user_id=session.user_id, case_id=case_id, action="case_deleted"),
    )
