"""
Email verification retry service.

Drains the email verification queue: each due item is verified through an
injected provider client, and the verdict is written to the lead (status and
marketplace listing flag). Provider failures are retried with capped
exponential backoff until the attempt limit, after which the item is marked
permanently failed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol
from uuid import UUID

from domain.lead import VerificationStatus
from domain.time import utc_now
from domain.verification import MAX_ATTEMPTS, VerificationQueueItem, is_exhausted, map_provider_result, retry_delay

logger = logging.getLogger(__name__)


class EmailVerifier(Protocol):
    def verify(self, email: str) -> str:
        """Return the provider's raw verdict (e.g. "ok", "catch_all", "invalid")."""
        ...


class VerificationStore(Protocol):
    def list_due_items(self, limit: int, as_of: datetime) -> List[VerificationQueueItem]: ...

    def mark_processing(self, item: VerificationQueueItem, attempts: int) -> None: ...

    def mark_completed(self, item: VerificationQueueItem, status: VerificationStatus) -> None: ...

    def schedule_retry(self, item: VerificationQueueItem, next_retry_at: datetime) -> None: ...

    def mark_failed(self, item: VerificationQueueItem, error: str) -> None: ...

    def update_verification_status(self, lead_id: UUID, status: VerificationStatus) -> None: ...


class SupabaseVerificationStore:
    def list_due_items(self, limit: int, as_of: datetime) -> List[VerificationQueueItem]:
        from repositories.verification_queue_repository import list_due_items

        return list_due_items(limit, as_of)

    def mark_processing(self, item: VerificationQueueItem, attempts: int) -> None:
        from repositories.verification_queue_repository import mark_processing

        mark_processing(item, attempts)

    def mark_completed(self, item: VerificationQueueItem, status: VerificationStatus) -> None:
        from repositories.verification_queue_repository import mark_completed

        mark_completed(item, status)

    def schedule_retry(self, item: VerificationQueueItem, next_retry_at: datetime) -> None:
        from repositories.verification_queue_repository import schedule_retry

        schedule_retry(item, next_retry_at)

    def mark_failed(self, item: VerificationQueueItem, error: str) -> None:
        from repositories.verification_queue_repository import mark_failed

        mark_failed(item, error)

    def update_verification_status(self, lead_id: UUID, status: VerificationStatus) -> None:
        from repositories.lead_repository import update_verification_status

        update_verification_status(lead_id, status)


@dataclass(frozen=True, slots=True)
class VerificationRunStats:
    processed: int = 0
    completed: int = 0
    retried: int = 0
    failed: int = 0
    errors: int = 0


def _process_item(
    item: VerificationQueueItem,
    verifier: EmailVerifier,
    store: VerificationStore,
    as_of: datetime,
    max_attempts: int,
) -> str:
    attempts = item.attempts + 1
    store.mark_processing(item, attempts)

    try:
        verdict = verifier.verify(item.email)
    except Exception as e:
        if is_exhausted(attempts, max_attempts):
            store.mark_failed(item, str(e))
            logger.warning(
                "Email verification failed permanently",
                extra={"lead_id": str(item.lead_id), "attempts": attempts, "error": str(e)},
            )
            return "failed"

        store.schedule_retry(item, as_of + retry_delay(item.attempts))
        logger.info(
            "Email verification retry scheduled",
            extra={"lead_id": str(item.lead_id), "attempts": attempts},
        )
        return "retried"

    status = map_provider_result(verdict)
    store.update_verification_status(item.lead_id, status)
    store.mark_completed(item, status)
    return "completed"


def process_verification_queue(
    verifier: EmailVerifier,
    *,
    store: Optional[VerificationStore] = None,
    limit: int = 100,
    now: Optional[datetime] = None,
    max_attempts: int = MAX_ATTEMPTS,
) -> VerificationRunStats:
    """
    Process one pass over the due queue items.

    The backoff before the next attempt is computed from the attempts made
    before this one: 5, 10, 20 ... minutes, capped at 60.
    """

    store = store or SupabaseVerificationStore()
    as_of = now or utc_now()
    items = store.list_due_items(limit, as_of)

    outcomes = {"completed": 0, "retried": 0, "failed": 0, "errors": 0}
    for item in items:
        try:
            outcome = _process_item(item, verifier, store, as_of, max_attempts)
        except Exception as e:
            logger.error(
                "Verification queue item could not be processed",
                extra={"lead_id": str(item.lead_id), "error": str(e)},
            )
            outcome = "errors"
        outcomes[outcome] += 1

    stats = VerificationRunStats(
        processed=len(items),
        completed=outcomes["completed"],
        retried=outcomes["retried"],
        failed=outcomes["failed"],
        errors=outcomes["errors"],
    )
    logger.info(
        "Verification queue pass complete",
        extra={"processed": stats.processed, **outcomes},
    )
    return stats


__all__ = [
    "EmailVerifier",
    "VerificationStore",
    "SupabaseVerificationStore",
    "VerificationRunStats",
    "process_verification_queue",
]
