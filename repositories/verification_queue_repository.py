"""
Email verification queue repository (persistence).

State transitions only; the retry policy lives in domain.verification and is
applied by the verification retry service.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional
from uuid import UUID

from domain.lead import VerificationStatus
from domain.time import parse_utc_datetime, to_iso_utc, utc_now
from domain.verification import QueueStatus, VerificationQueueItem
from repositories.client import get_client, raise_for_error, rows_of

_QUEUE_TABLE: str = "email_verification_queue"


def _row_to_item(row: Mapping[str, Any]) -> VerificationQueueItem:
    next_retry = row.get("next_retry_at")
    return VerificationQueueItem(
        item_id=UUID(str(row["id"])),
        lead_id=UUID(str(row["lead_id"])),
        email=str(row["email"]),
        attempts=int(row.get("attempts") or 0),
        status=QueueStatus(str(row.get("status") or "pending")),
        next_retry_at=parse_utc_datetime(next_retry) if next_retry else None,
    )


def _update(item_id: UUID, payload: dict[str, Any], action: str) -> None:
    response = (
        get_client()
        .table(_QUEUE_TABLE)
        .update(payload)
        .eq("id", str(item_id))
        .execute()
    )
    raise_for_error(response, action)


def list_due_items(limit: int = 100, as_of: Optional[datetime] = None) -> List[VerificationQueueItem]:
    """Pending items whose retry time (if any) has passed, highest priority first."""

    now = to_iso_utc(as_of or utc_now(), name="as_of")
    response = (
        get_client()
        .table(_QUEUE_TABLE)
        .select("*")
        .eq("status", QueueStatus.PENDING.value)
        .or_(f"next_retry_at.is.null,next_retry_at.lte.{now}")
        .order("priority", desc=True)
        .order("scheduled_at")
        .limit(limit)
        .execute()
    )
    raise_for_error(response, "fetch verification queue")
    return [_row_to_item(row) for row in rows_of(response)]


def mark_processing(item: VerificationQueueItem, attempts: int) -> None:
    _update(
        item.item_id,
        {
            "status": QueueStatus.PROCESSING.value,
            "attempts": attempts,
            "started_at": to_iso_utc(utc_now(), name="started_at"),
        },
        "mark verification item processing",
    )


def mark_completed(item: VerificationQueueItem, status: VerificationStatus) -> None:
    _update(
        item.item_id,
        {
            "status": QueueStatus.COMPLETED.value,
            "verification_result": status.value,
            "completed_at": to_iso_utc(utc_now(), name="completed_at"),
        },
        "mark verification item completed",
    )


def schedule_retry(item: VerificationQueueItem, next_retry_at: datetime) -> None:
    _update(
        item.item_id,
        {
            "status": QueueStatus.PENDING.value,
            "next_retry_at": to_iso_utc(next_retry_at, name="next_retry_at"),
        },
        "schedule verification retry",
    )


def mark_failed(item: VerificationQueueItem, error: str) -> None:
    _update(
        item.item_id,
        {
            "status": QueueStatus.FAILED.value,
            "verification_response": {"error": error[:500]},
        },
        "mark verification item failed",
    )


__all__ = [
    "list_due_items",
    "mark_processing",
    "mark_completed",
    "schedule_retry",
    "mark_failed",
]
