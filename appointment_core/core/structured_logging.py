"""Structured logging helpers (PII-safe)."""

import logging
from typing import Any
from uuid import UUID


def build_log_context(
    *,
    business_id: UUID | str | None = None,
    appointment_id: UUID | str | None = None,
    action: str | None = None,
    count: int | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict (ids and counts only, never names or phones)."""
    context: dict[str, Any] = {}
    if business_id:
        context["business_id"] = str(business_id)
    if appointment_id:
        context["appointment_id"] = str(appointment_id)
    if action:
        context["action"] = action
    if count is not None:
        context["count"] = count
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
