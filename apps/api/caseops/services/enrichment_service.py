"""Enrichment service - joins raw records with PII and identity display fields.

Each pass de-duplicates case ids and creator ids, fans the lookups out
concurrently and merges the results back in input order. A lookup that
fails or times out only degrades the records sharing its key:

- patient: ``None`` (rendered "Unknown Patient")
- creator name: identity name/email -> legacy email table -> raw id ->
  "Unknown User"

Nothing is cached across calls.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

import anyio

from caseops.core.async_utils import gather_ordered
from caseops.core.config import settings
from caseops.db.documents import DocumentStoreError
from caseops.schemas.case import CaseRecord, EnrichedCase, PatientPII
from caseops.schemas.enrichment import UNKNOWN_USER, PatientSummary, RecordEnrichment
from caseops.schemas.event import EnrichedEvent, EventRecord
from caseops.schemas.user import UserRecord
from caseops.services.gateways import Gateways
from caseops.services.identity_store import IdentityStore
from caseops.services.pii_client import PatientNotFoundError, PIIClient, PIIStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNKNOWN_EMAIL = "unknown"

_LOOKUP_ERRORS = (TimeoutError, PIIStoreError, DocumentStoreError)


class _LookupFailed(Exception):
    pass


async def _bounded(call: Callable[[], Awaitable[T]]) -> T:
    with anyio.fail_after(settings.ENRICHMENT_TIMEOUT_SECONDS):
        return await call()


def legacy_email(uid: str) -> str | None:
    return settings.LEGACY_IDENTITY_EMAILS.get(uid)


def _summary(pii: PatientPII) -> PatientSummary:
    return PatientSummary(
        first_name=pii.first_name,
        last_name=pii.last_name,
        email=pii.email,
        phone=pii.phone,
        address=pii.address,
        notes=pii.notes,
    )


# =============================================================================
# Single-key resolvers
# =============================================================================

async def resolve_patient(pii: PIIClient, case_id: str) -> PatientSummary | None:
    """PII display fields for a case, or None when missing/unavailable."""
    if not case_id:
        return None
    try:
        patient = await _bounded(lambda: pii.get_patient(case_id))
    except _LOOKUP_ERRORS as e:
        logger.debug("Patient lookup degraded case_id=%s error=%s", case_id, e.__class__.__name__)
        return None
    return _summary(patient)


async def _lookup_user(identities: IdentityStore, uid: str) -> UserRecord | None:
    """Raises _LookupFailed when the store could not answer."""
    try:
        return await _bounded(lambda: identities.get_user(uid))
    except _LOOKUP_ERRORS as e:
        logger.warning("Identity lookup failed uid=%s error=%s", uid, e.__class__.__name__)
        raise _LookupFailed from e


async def resolve_display_name(identities: IdentityStore, uid: str) -> str:
    """Creator display name, falling back through legacy email and raw id."""
    if not uid:
        return UNKNOWN_USER
    try:
        user = await _lookup_user(identities, uid)
    except _LookupFailed:
        user = None
    if user and (user.name or user.email):
        return user.name or user.email
    return legacy_email(uid) or uid


async def resolve_actor_email(identities: IdentityStore, uid: str) -> str:
    """
    Email recorded on activity entries for the acting user.

    Values that already look like an email are kept. A missing identity
    document falls back to the legacy table, then the raw uid; a failed
    lookup falls back to the legacy table, then "unknown".
    """
    if not uid:
        return UNKNOWN_EMAIL
    if "@" in uid:
        return uid
    try:
        user = await _lookup_user(identities, uid)
    except _LookupFailed:
        return legacy_email(uid) or UNKNOWN_EMAIL
    if user and user.email:
        return user.email
    return legacy_email(uid) or uid


# =============================================================================
# Batch passes
# =============================================================================

def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(v for v in values if v))


async def _patients_by_key(pii: PIIClient, case_ids: list[str]) -> dict[str, PatientSummary | None]:
    keys = _unique(case_ids)
    results = await gather_ordered([lambda k=k: resolve_patient(pii, k) for k in keys])
    return dict(zip(keys, results))


async def _names_by_key(identities: IdentityStore, uids: list[str]) -> dict[str, str]:
    keys = _unique(uids)
    results = await gather_ordered([lambda k=k: resolve_display_name(identities, k) for k in keys])
    return dict(zip(keys, results))


async def _batch_patients(pii: PIIClient, case_ids: list[str]) -> dict[str, PatientSummary | None]:
    """
    One batch call for many cases; per-key lookups if the batch call fails.

    Keys missing from a successful batch response are treated as not found.
    """
    keys = _unique(case_ids)
    if not keys:
        return {}
    try:
        found = await _bounded(lambda: pii.get_patients_batch(keys))
    except _LOOKUP_ERRORS as e:
        logger.info("PII batch lookup failed, falling back to single lookups: %s", e.__class__.__name__)
        return await _patients_by_key(pii, keys)
    return {key: _summary(found[key]) if key in found else None for key in keys}


async def enrich_events(events: list[EventRecord], gateways: Gateways) -> list[EnrichedEvent]:
    """Enriched events in input order."""
    if not events:
        return []
    patients, names = await gather_ordered([
        lambda: _patients_by_key(gateways.pii, [e.case_id for e in events]),
        lambda: _names_by_key(gateways.identities, [e.created_by for e in events]),
    ])
    return [
        EnrichedEvent(
            record=event,
            enrichment=RecordEnrichment(
                patient=patients.get(event.case_id),
                created_by_name=names.get(event.created_by, UNKNOWN_USER),
            ),
        )
        for event in events
    ]


async def enrich_cases(cases: list[CaseRecord], gateways: Gateways) -> list[EnrichedCase]:
    """Enriched cases in input order."""
    if not cases:
        return []
    patients, names = await gather_ordered([
        lambda: _batch_patients(gateways.pii, [c.case_id for c in cases]),
        lambda: _names_by_key(gateways.identities, [c.created_by for c in cases]),
    ])
    return [
        EnrichedCase(
            record=case,
            enrichment=RecordEnrichment(
                patient=patients.get(case.case_id),
                created_by_name=names.get(case.created_by, UNKNOWN_USER),
            ),
        )
        for case in cases
    ]


async def _fetch_patient(pii: PIIClient, case_id: str) -> PatientPII | None:
    try:
        return await _bounded(lambda: pii.get_patient(case_id))
    except PatientNotFoundError:
        return None
    except _LOOKUP_ERRORS as e:
        logger.warning("Patient lookup failed case_id=%s error=%s", case_id, e.__class__.__name__)
        return None


async def enrich_case_detail(
    case: CaseRecord, gateways: Gateways
) -> tuple[EnrichedCase, PatientPII | None]:
    """
    Enriched case plus its full PII record, from a single PII fetch.

    The patient is None when it is missing or the PII store is unavailable.
    """
    patient, name = await gather_ordered([
        lambda: _fetch_patient(gateways.pii, case.case_id),
        lambda: resolve_display_name(gateways.identities, case.created_by),
    ])
    enriched = EnrichedCase(
        record=case,
        enrichment=RecordEnrichment(
            patient=_summary(patient) if patient else None,
            created_by_name=name,
        ),
    )
    return enriched, patient
