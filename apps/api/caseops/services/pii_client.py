"""PII store client - patient identifying fields behind the relational API.

Endpoints:
- GET  /api/patients/{case_id}        -> {"patient": {...}}, 404 when absent
- GET  /api/patients/search?q=        -> {"patients": [...]}
- POST /api/patients                  -> create
- POST /api/patients/batch            -> {"patients": {case_id: {...}}}
- GET  /api/patients/next-case-id     -> {"nextId": n}
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from caseops.core.config import settings
from caseops.schemas.case import PatientPII, PatientSearchResult

logger = logging.getLogger(__name__)


class PIIStoreError(Exception):
    """PII store call failed (transport error, non-2xx response or unreadable body)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PatientNotFoundError(PIIStoreError):
    """No PII record exists for the case identifier."""

    pass


def create_pii_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.PII_API_URL,
        timeout=settings.PII_API_TIMEOUT_SECONDS,
        headers={"Content-Type": "application/json"},
    )


class PIIClient:
    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise PIIStoreError(f"PII store unreachable: {e.__class__.__name__}") from e
        if response.status_code == 404:
            raise PatientNotFoundError("Patient not found", status_code=404)
        if response.status_code >= 400:
            raise PIIStoreError(
                f"PII store returned {response.status_code}",
                status_code=response.status_code,
            )
        return response

    async def _json(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        """Response body as a JSON object; anything else is a store error."""
        response = await self._request(method, path, **kwargs)
        try:
            data = response.json()
        except ValueError as e:
            raise PIIStoreError("PII store returned a non-JSON body", status_code=response.status_code) from e
        if not isinstance(data, dict):
            raise PIIStoreError("PII store returned an unexpected body", status_code=response.status_code)
        return data

    async def get_patient(self, case_id: str) -> PatientPII:
        data = await self._json("GET", f"/api/patients/{quote(case_id, safe='')}")
        if not data.get("patient"):
            raise PatientNotFoundError("Patient payload missing", status_code=200)
        try:
            return PatientPII.model_validate(data["patient"])
        except ValidationError as e:
            raise PIIStoreError("Malformed patient record") from e

    async def search_patients(self, query: str) -> list[PatientSearchResult]:
        data = await self._json("GET", "/api/patients/search", params={"q": query})
        try:
            return [PatientSearchResult.model_validate(item) for item in data.get("patients") or []]
        except ValidationError as e:
            raise PIIStoreError("Malformed patient search results") from e

    async def create_patient(self, case_id: str, pii: PatientPII) -> None:
        payload = {"case_id": case_id, **pii.model_dump(exclude={"notes"})}
        try:
            await self._request("POST", "/api/patients", json=payload)
        except PatientNotFoundError as e:
            raise PIIStoreError("PII create endpoint not found", status_code=404) from e

    async def get_patients_batch(self, case_ids: list[str]) -> dict[str, PatientPII]:
        """
        PII for many cases at once.

        Empty or malformed entries are left out, so those cases read as not
        found while the rest of the batch is kept.
        """
        data = await self._json("POST", "/api/patients/batch", json={"case_ids": case_ids})
        patients = data.get("patients") or {}
        if not isinstance(patients, dict):
            raise PIIStoreError("Malformed batch response")
        found: dict[str, PatientPII] = {}
        for case_id, item in patients.items():
            if not item:
                continue
            try:
                found[case_id] = PatientPII.model_validate(item)
            except ValidationError:
                logger.warning("Skipping malformed batch entry case_id=%s", case_id)
        return found

    async def next_case_number(self) -> int:
        data = await self._json("GET", "/api/patients/next-case-id")
        try:
            return int(data["nextId"])
        except (KeyError, TypeError, ValueError) as e:
            raise PIIStoreError("Malformed next-case-id response") from e
