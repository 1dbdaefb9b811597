"""Case store - case, event and activity documents.

Cases live in ``patients`` keyed by case identifier, events in ``events``
with generated ids, and activity entries in ``activities``. No cross-store
consistency is attempted here.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from caseops.db.documents import DocumentStore
from caseops.db.enums import Collection
from caseops.schemas.activity import ActivityEntry
from caseops.schemas.case import CaseRecord
from caseops.schemas.event import EventRecord

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _to_case(doc: dict[str, Any]) -> CaseRecord:
    data = dict(doc)
    data["case_id"] = data.get("case_id") or data["id"]
    return CaseRecord.model_validate(data)


def _created_desc_key(case: CaseRecord) -> tuple[bool, datetime]:
    return (case.created_at is not None, case.created_at or _EPOCH)


class CaseStore:
    def __init__(self, store: DocumentStore):
        self._store = store

    # -------------------------------------------------------------------------
    # Cases
    # -------------------------------------------------------------------------

    async def list_cases(self) -> list[CaseRecord]:
        """All case documents, newest first (undated cases last)."""
        docs = await self._store.list(Collection.PATIENTS.value)
        cases = [_to_case(doc) for doc in docs]
        return sorted(cases, key=_created_desc_key, reverse=True)

    async def get_case(self, case_id: str) -> CaseRecord | None:
        doc = await self._store.get(Collection.PATIENTS.value, case_id)
        return _to_case(doc) if doc else None

    async def create_case_document(self, case: CaseRecord) -> None:
        await self._store.set(Collection.PATIENTS.value, case.case_id, case.model_dump())

    async def update_case(self, case_id: str, fields: dict[str, Any]) -> None:
        await self._store.update(Collection.PATIENTS.value, case_id, fields)

    async def delete_case(self, case_id: str) -> bool:
        return await self._store.delete(Collection.PATIENTS.value, case_id)

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    async def list_events(self) -> list[EventRecord]:
        docs = await self._store.list(Collection.EVENTS.value, order_by="date", descending=True)
        return [EventRecord.model_validate(doc) for doc in docs]

    async def get_event(self, event_id: str) -> EventRecord | None:
        doc = await self._store.get(Collection.EVENTS.value, event_id)
        return EventRecord.model_validate(doc) if doc else None

    async def create_event_document(self, data: dict[str, Any]) -> str:
        return await self._store.add(Collection.EVENTS.value, data)

    async def update_event(self, event_id: str, fields: dict[str, Any]) -> None:
        await self._store.update(Collection.EVENTS.value, event_id, fields)

    async def delete_event_document(self, event_id: str) -> bool:
        return await self._store.delete(Collection.EVENTS.value, event_id)

    # -------------------------------------------------------------------------
    # Activity log (append-only)
    # -------------------------------------------------------------------------

    async def list_activities(self) -> list[ActivityEntry]:
        docs = await self._store.list(
            Collection.ACTIVITIES.value, order_by="timestamp", descending=True
        )
        return [ActivityEntry.model_validate(doc) for doc in docs]

    async def list_case_activities(self, case_id: str) -> list[ActivityEntry]:
        docs = await self._store.list(
            Collection.ACTIVITIES.value,
            where={"case_id": case_id},
            order_by="timestamp",
            descending=True,
        )
        return [ActivityEntry.model_validate(doc) for doc in docs]

    async def append_activity(self, data: dict[str, Any]) -> str:
        return await self._store.add(Collection.ACTIVITIES.value, data)

    async def backfill_activity_email(self, activity_id: str, email: str) -> None:
        """Migration-only write; entries are otherwise never updated."""
        await self._store.update(Collection.ACTIVITIES.value, activity_id, {"user_email": email})

    async def delete_activity(self, activity_id: str) -> bool:
        return await self._store.delete(Collection.ACTIVITIES.value, activity_id)
