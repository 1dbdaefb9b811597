"""Identity store - user documents (role, block flags, linked sign-in)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from caseops.db.documents import DocumentStore, DocumentStoreError
from caseops.db.enums import Collection
from caseops.schemas.user import UserRecord


def _to_user(doc: dict[str, Any]) -> UserRecord:
    data = dict(doc)
    data["user_id"] = data.get("user_id") or data.get("id")
    try:
        return UserRecord.model_validate(data)
    except ValidationError as e:
        raise DocumentStoreError(f"Unreadable user document {data['user_id']!r}") from e


class IdentityStore:
    def __init__(self, store: DocumentStore):
        self._store = store

    async def get_user(self, user_id: str) -> UserRecord | None:
        doc = await self._store.get(Collection.USERS.value, user_id)
        return _to_user(doc) if doc else None

    async def find_user_by_any_uid(self, uid: str) -> tuple[str, UserRecord] | None:
        """
        Resolve a login identity to its user document.

        Tries the primary key first, then the ``linked_google_uid``
        back-reference written when an alternate sign-in was linked.
        """
        user = await self.get_user(uid)
        if user:
            return uid, user
        linked = await self._store.list(
            Collection.USERS.value, where={"linked_google_uid": uid}
        )
        if linked:
            return linked[0]["id"], _to_user(linked[0])
        return None

    async def find_user_by_linked_email(self, email: str) -> tuple[str, UserRecord] | None:
        linked = await self._store.list(
            Collection.USERS.value, where={"linked_google_email": email}
        )
        if linked:
            return linked[0]["id"], _to_user(linked[0])
        return None

    async def list_users(self) -> list[UserRecord]:
        docs = await self._store.list(Collection.USERS.value)
        return [_to_user(doc) for doc in docs]

    async def create_user(self, user: UserRecord) -> None:
        await self._store.set(Collection.USERS.value, user.user_id, user.model_dump())

    async def update_user(self, user_id: str, fields: dict[str, Any]) -> None:
        await self._store.update(Collection.USERS.value, user_id, fields)

    async def delete_user(self, user_id: str) -> bool:
        return await self._store.delete(Collection.USERS.value, user_id)

    async def set_two_factor(self, user_id: str, enabled: bool) -> None:
        stamp_field = "two_factor_enabled_at" if enabled else "two_factor_disabled_at"
        await self._store.update(
            Collection.USERS.value,
            user_id,
            {"two_factor_enabled": enabled, stamp_field: datetime.now(timezone.utc)},
        )

    async def get_calendar_token(self, user_id: str) -> str | None:
        """Access token stored by the calendar-linking flow, if linked."""
        doc = await self._store.get(Collection.USERS.value, user_id)
        if not doc or not doc.get("has_google_calendar"):
            return None
        return doc.get("google_calendar_token") or None
