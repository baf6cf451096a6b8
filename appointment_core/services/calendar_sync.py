"""External calendar sync hook (best-effort).

Every successful create/update tells the configured calendar endpoint which
appointment changed. Failures are logged and never reach the caller, so a
calendar outage cannot undo or block a booking.

Retries, delays and the overall deadline come from the CALENDAR_SYNC_*
settings.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Iterable
from uuid import UUID

import anyio
import httpx

from appointment_core.core.config import settings
from appointment_core.core.structured_logging import build_log_context

logger = logging.getLogger(__name__)

# Throttling and upstream outages; anything else is final
RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True)
class SyncRetryPolicy:
    """How often one appointment notification is attempted, and how far apart."""

    max_attempts: int
    base_delay: float
    max_delay: float

    @classmethod
    def from_settings(cls) -> SyncRetryPolicy:
        return cls(
            max_attempts=max(1, settings.CALENDAR_SYNC_MAX_ATTEMPTS),
            base_delay=max(0.0, settings.CALENDAR_SYNC_RETRY_BASE_DELAY),
            max_delay=max(0.0, settings.CALENDAR_SYNC_RETRY_MAX_DELAY),
        )

    def delay(self, attempt: int) -> float:
        """Pause after a zero-based attempt: doubling up to max_delay, plus up to 50% jitter."""
        delay = min(self.max_delay, self.base_delay * (2**attempt))
        if delay:
            delay += random.uniform(0, delay / 2)
        return delay

    def deadline(self, count: int) -> float:
        """Wall-clock budget for notifying count appointments."""
        per_attempt = settings.CALENDAR_SYNC_TIMEOUT_SECONDS + self.max_delay * 1.5
        return per_attempt * self.max_attempts * max(count, 1)


def build_payload(appointment_id: UUID) -> dict[str, str]:
    return {"action": "sync", "appointmentId": str(appointment_id)}


def _headers() -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if settings.CALENDAR_SYNC_TOKEN:
        headers["Authorization"] = f"Bearer {settings.CALENDAR_SYNC_TOKEN}"
    return headers


async def _send_one(
    client: httpx.AsyncClient,
    appointment_id: UUID,
    policy: SyncRetryPolicy,
) -> bool:
    """POST the notification for one appointment; True once the calendar accepts it."""
    context = build_log_context(appointment_id=appointment_id, action="calendar_sync")

    for attempt in range(policy.max_attempts):
        last_attempt = attempt == policy.max_attempts - 1
        try:
            response = await client.post(
                settings.CALENDAR_SYNC_URL,
                headers=_headers(),
                json=build_payload(appointment_id),
            )
        except httpx.RequestError:
            if last_attempt:
                logger.warning("calendar_sync_failed", extra=context, exc_info=True)
                return False
            logger.info("calendar_sync_retry", extra={**context, "attempt": attempt + 1})
        else:
            if response.is_success:
                return True
            if last_attempt or response.status_code not in RETRY_STATUSES:
                logger.warning(
                    "calendar_sync_rejected",
                    extra={**context, "status_code": response.status_code, "attempt": attempt + 1},
                )
                return False
            logger.info(
                "calendar_sync_retry",
                extra={**context, "status_code": response.status_code, "attempt": attempt + 1},
            )

        delay = policy.delay(attempt)
        if delay:
            await anyio.sleep(delay)
    return False


async def _post_sync(appointment_ids: list[UUID], policy: SyncRetryPolicy) -> int:
    """Notify each id in turn; returns how many the calendar accepted."""
    accepted = 0
    async with httpx.AsyncClient(timeout=settings.CALENDAR_SYNC_TIMEOUT_SECONDS) as client:
        for appointment_id in appointment_ids:
            if await _send_one(client, appointment_id, policy):
                accepted += 1
    return accepted


def _in_worker_thread() -> bool:
    """True inside a thread started by anyio.to_thread (FastAPI sync endpoints)."""
    try:
        anyio.from_thread.check_cancelled()
    except RuntimeError:
        return False
    return True


def _run_blocking(appointment_ids: list[UUID], policy: SyncRetryPolicy) -> int:
    """
    Drive _post_sync to completion from synchronous service code.

    From a FastAPI worker thread the request's event loop runs it; with no
    loop around (scripts, tests) a fresh one is started. Either way the
    whole batch is bounded by policy.deadline.
    """

    async def bounded() -> int:
        with anyio.fail_after(policy.deadline(len(appointment_ids))):
            return await _post_sync(appointment_ids, policy)

    if _in_worker_thread():
        return anyio.from_thread.run(bounded)
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return anyio.run(bounded)
    raise RuntimeError("calendar sync cannot block a thread that runs an event loop")


def notify_many(appointment_ids: Iterable[UUID]) -> int:
    """
    Ask the external calendar to sync each appointment.

    Returns the number of accepted notifications; 0 when sync is disabled
    or the whole call failed.
    """
    ids = list(appointment_ids)
    if not ids or not settings.calendar_sync_enabled:
        return 0
    try:
        accepted = _run_blocking(ids, SyncRetryPolicy.from_settings())
    except Exception:
        logger.warning(
            "calendar_sync_failed",
            extra=build_log_context(action="calendar_sync", count=len(ids)),
            exc_info=True,
        )
        return 0

    logger.info(
        "calendar_sync_sent",
        extra=build_log_context(action="calendar_sync", count=accepted),
    )
    return accepted


def notify_external_calendar(appointment_id: UUID) -> bool:
    """Single-appointment variant of notify_many."""
    return notify_many([appointment_id]) == 1
