"""
Test configuration and fixtures.

Provides:
- In-memory document store (same contract as the Motor store)
- Fake PII store and Google Calendar served through httpx.MockTransport
- Gateways/EventRepository wired to the fakes
- Session users (privileged + two standard admins) and JWT cookies
- HTTPX AsyncClient against the app with dependency overrides
"""
from __future__ import annotations

import copy
import json
import re
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from caseops.core.deps import get_event_repository, get_gateways
from caseops.core.security import create_session_token
from caseops.core.session_context import COOKIE_NAME
from caseops.db.documents import DocumentNotFoundError, DocumentStoreError, new_document_id
from caseops.db.enums import Role
from caseops.main import app
from caseops.schemas.auth import UserSession
from caseops.services.calendar_service import GOOGLE_CALENDAR_API, GoogleCalendarClient
from caseops.services.case_store import CaseStore
from caseops.services.event_repository import EventRepository
from caseops.services.gateways import Gateways
from caseops.services.identity_store import IdentityStore
from caseops.services.pii_client import PIIClient


# =============================================================================
# Document store fake
# =============================================================================

class InMemoryDocumentStore:
    """DocumentStore over dicts. ``fail_writes`` makes every write raise."""

    def __init__(self):
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.fail_writes = False
        self.fail_reads = False

    def _coll(self, collection: str) -> dict[str, dict[str, Any]]:
        return self.collections.setdefault(collection, {})

    def _check_write(self, collection: str) -> None:
        if self.fail_writes:
            raise DocumentStoreError(f"Failed to write {collection}")

    async def get(self, collection, doc_id):
        if self.fail_reads:
            raise DocumentStoreError(f"Failed to read {collection}/{doc_id}")
        doc = self._coll(collection).get(doc_id)
        return {**copy.deepcopy(doc), "id": doc_id} if doc is not None else None

    async def set(self, collection, doc_id, data):
        self._check_write(collection)
        self._coll(collection)[doc_id] = {k: copy.deepcopy(v) for k, v in data.items() if k != "id"}

    async def add(self, collection, data):
        self._check_write(collection)
        doc_id = new_document_id()
        self._coll(collection)[doc_id] = {k: copy.deepcopy(v) for k, v in data.items() if k != "id"}
        return doc_id

    async def update(self, collection, doc_id, fields):
        self._check_write(collection)
        if doc_id not in self._coll(collection):
            raise DocumentNotFoundError(f"{collection}/{doc_id} does not exist")
        self._coll(collection)[doc_id].update(copy.deepcopy(fields))

    async def delete(self, collection, doc_id):
        self._check_write(collection)
        return self._coll(collection).pop(doc_id, None) is not None

    async def list(self, collection, *, where=None, order_by=None, descending=False):
        if self.fail_reads:
            raise DocumentStoreError(f"Failed to list {collection}")
        docs = [
            {**copy.deepcopy(doc), "id": doc_id}
            for doc_id, doc in self._coll(collection).items()
            if all(doc.get(k) == v for k, v in (where or {}).items())
        ]
        if order_by:
            present = [d for d in docs if d.get(order_by) is not None]
            missing = [d for d in docs if d.get(order_by) is None]
            present.sort(key=lambda d: d[order_by], reverse=descending)
            # nulls sort lowest, as in MongoDB
            docs = present + missing if descending else missing + present
        return docs

    # Test helpers
    def docs(self, collection: str) -> list[dict[str, Any]]:
        return [{**doc, "id": doc_id} for doc_id, doc in self._coll(collection).items()]

    def put(self, collection: str, doc_id: str, **data: Any) -> None:
        self._coll(collection)[doc_id] = data


# =============================================================================
# PII store fake
# =============================================================================

@dataclass
class FakePIIServer:
    patients: dict[str, dict[str, Any]] = field(default_factory=dict)
    next_id: int | None = 1
    fail_create_status: int | None = None
    fail_get: set[str] = field(default_factory=set)
    garbled: set[str] = field(default_factory=set)
    fail_batch: bool = False
    fail_search: bool = False
    requests: list[httpx.Request] = field(default_factory=list)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "GET" and path == "/api/patients/next-case-id":
            if self.next_id is None:
                return httpx.Response(503, json={"error": "unavailable"})
            current, self.next_id = self.next_id, self.next_id + 1
            return httpx.Response(200, json={"nextId": current})

        if request.method == "GET" and path == "/api/patients/search":
            if self.fail_search:
                return httpx.Response(500, json={"error": "boom"})
            q = request.url.params.get("q", "").lower()
            found = [
                {"case_id": case_id, **p}
                for case_id, p in self.patients.items()
                if q in f"{p.get('first_name', '')} {p.get('last_name', '')}".lower()
            ]
            return httpx.Response(200, json={"patients": found})

        if request.method == "POST" and path == "/api/patients/batch":
            if self.fail_batch:
                return httpx.Response(500, json={"error": "boom"})
            case_ids = json.loads(request.content)["case_ids"]
            return httpx.Response(
                200,
                json={"patients": {c: self.patients[c] for c in case_ids if c in self.patients}},
            )

        if request.method == "POST" and path == "/api/patients":
            if self.fail_create_status:
                return httpx.Response(self.fail_create_status, json={"error": "boom"})
            body = json.loads(request.content)
            case_id = body.pop("case_id")
            self.patients[case_id] = body
            return httpx.Response(201, json={"ok": True})

        match = re.fullmatch(r"/api/patients/([^/]+)", path)
        if request.method == "GET" and match:
            case_id = match.group(1)
            if case_id in self.fail_get:
                return httpx.Response(500, json={"error": "boom"})
            if case_id in self.garbled:
                return httpx.Response(200, text="<html>maintenance</html>")
            if case_id not in self.patients:
                return httpx.Response(404, json={"error": "not found"})
            return httpx.Response(200, json={"patient": self.patients[case_id]})

        return httpx.Response(404, json={"error": "no route"})


# =============================================================================
# Google Calendar fake
# =============================================================================

@dataclass
class FakeCalendarServer:
    fail: bool = False
    created: list[dict[str, Any]] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    requests: list[httpx.Request] = field(default_factory=list)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail:
            return httpx.Response(500, json={"error": "boom"})
        if request.method == "POST":
            body = json.loads(request.content)
            google_id = f"g-{len(self.created) + 1}"
            self.created.append({**body, "id": google_id})
            return httpx.Response(200, json={"id": google_id})
        if request.method == "DELETE":
            self.deleted.append(request.url.path.rsplit("/", 1)[-1])
            return httpx.Response(204)
        return httpx.Response(404)


# =============================================================================
# Gateway fixtures
# =============================================================================

SUPER_ADMIN_ID = "uid-super"
ADMIN_ID = "uid-admin"
OTHER_ADMIN_ID = "uid-other"


@pytest.fixture
def store() -> InMemoryDocumentStore:
    store = InMemoryDocumentStore()
    store.put("users", SUPER_ADMIN_ID, name="Sam Super", email="super@example.com", role="super_admin")
    store.put("users", ADMIN_ID, name="Ada Admin", email="ada@example.com", role="admin")
    store.put("users", OTHER_ADMIN_ID, name="Otto Other", email="otto@example.com", role="admin")
    return store


@pytest.fixture
def pii_server() -> FakePIIServer:
    return FakePIIServer()


@pytest.fixture
def calendar_server() -> FakeCalendarServer:
    return FakeCalendarServer()


@pytest.fixture
async def gateways(
    store: InMemoryDocumentStore,
    pii_server: FakePIIServer,
    calendar_server: FakeCalendarServer,
) -> AsyncGenerator[Gateways, None]:
    pii_http = httpx.AsyncClient(
        transport=httpx.MockTransport(pii_server.handle), base_url="http://pii.test"
    )
    calendar_http = httpx.AsyncClient(
        transport=httpx.MockTransport(calendar_server.handle), base_url=GOOGLE_CALENDAR_API
    )
    identities = IdentityStore(store)
    yield Gateways(
        cases=CaseStore(store),
        identities=identities,
        pii=PIIClient(pii_http),
        calendar=GoogleCalendarClient(calendar_http, identities, enabled=True),
    )
    await pii_http.aclose()
    await calendar_http.aclose()


@pytest.fixture
def repository(gateways: Gateways) -> EventRepository:
    return EventRepository(gateways, ttl_seconds=3600)


# =============================================================================
# Session fixtures
# =============================================================================

@pytest.fixture
def super_session() -> UserSession:
    return UserSession(user_id=SUPER_ADMIN_ID, role=Role.SUPER_ADMIN, email="super@example.com")


@pytest.fixture
def admin_session() -> UserSession:
    return UserSession(user_id=ADMIN_ID, role=Role.ADMIN, email="ada@example.com")


@pytest.fixture
def other_session() -> UserSession:
    return UserSession(user_id=OTHER_ADMIN_ID, role=Role.ADMIN, email="otto@example.com")


# =============================================================================
# Client fixtures
# =============================================================================

def _override(gateways: Gateways, repository: EventRepository) -> None:
    app.dependency_overrides[get_gateways] = lambda: gateways
    app.dependency_overrides[get_event_repository] = lambda: repository


@pytest.fixture
async def client(gateways: Gateways, repository: EventRepository) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated client."""
    _override(gateways, repository)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def _authed(user_id: str, role: Role) -> AsyncClient:
    token = create_session_token(user_id, role.value)
    return AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={COOKIE_NAME: token},
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    )


@pytest.fixture
async def admin_client(gateways: Gateways, repository: EventRepository) -> AsyncGenerator[AsyncClient, None]:
    """Authenticated standard admin with JWT cookie and CSRF header."""
    _override(gateways, repository)
    async with _authed(ADMIN_ID, Role.ADMIN) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def super_client(gateways: Gateways, repository: EventRepository) -> AsyncGenerator[AsyncClient, None]:
    """Authenticated privileged user with JWT cookie and CSRF header."""
    _override(gateways, repository)
    async with _authed(SUPER_ADMIN_ID, Role.SUPER_ADMIN) as c:
        yield c
    app.dependency_overrides.clear()
