"""Structured logging helpers (PHI-safe)."""

from typing import Any


def build_log_context(
    *,
    user_id: str | None = None,
    case_id: str | None = None,
    event_id: str | None = None,
    action: str | None = None,
    route: str | None = None,
) -> dict[str, Any]:
    """Return a PHI-safe log context dict (identifiers only, never PII)."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = user_id
    if case_id:
        context["case_id"] = case_id
    if event_id:
        context["event_id"] = event_id
    if action:
        context["action"] = action
    if route:
        context["route"] = route
    return context
