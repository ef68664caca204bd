"""
Domain: email verification queue items and retry policy.

Verification calls feed the stored verification status that scoring reads.
Failed calls are retried with capped exponential backoff; after the maximum
number of attempts an item is marked permanently failed instead of retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from uuid import UUID

from domain.lead import VerificationStatus
from domain.time import require_utc_timestamp

MAX_ATTEMPTS = 3
BASE_RETRY_DELAY = timedelta(minutes=5)
MAX_RETRY_DELAY = timedelta(minutes=60)

# Provider verdicts (MillionVerifier-style) mapped to stored statuses.
PROVIDER_RESULT_MAPPING: dict[str, VerificationStatus] = {
    "ok": VerificationStatus.VALID,
    "catch_all": VerificationStatus.CATCH_ALL,
    "unknown": VerificationStatus.UNKNOWN,
    "invalid": VerificationStatus.INVALID,
    "disposable": VerificationStatus.INVALID,
    "role": VerificationStatus.RISKY,
}


def map_provider_result(result: Optional[str]) -> VerificationStatus:
    if not result:
        return VerificationStatus.UNKNOWN
    return PROVIDER_RESULT_MAPPING.get(result.strip().lower(), VerificationStatus.UNKNOWN)


class QueueStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class VerificationQueueItem:
    item_id: UUID
    lead_id: UUID
    email: str
    attempts: int = 0
    status: QueueStatus = QueueStatus.PENDING
    next_retry_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.attempts < 0:
            raise ValueError("attempts must be >= 0")
        if self.next_retry_at is not None:
            require_utc_timestamp("next_retry_at", self.next_retry_at)


def retry_delay(attempts: int) -> timedelta:
    """
    Backoff before the next attempt after `attempts` failed attempts.

    5 minutes doubled per attempt, capped at 60 minutes.
    """

    if attempts < 0:
        raise ValueError("attempts must be >= 0")
    # Exponent is bounded so large attempt counts cannot overflow timedelta.
    delay = BASE_RETRY_DELAY * (2 ** min(attempts, 16))
    return min(delay, MAX_RETRY_DELAY)


def is_exhausted(attempts: int, max_attempts: int = MAX_ATTEMPTS) -> bool:
    return attempts >= max_attempts
