"""
Notification dispatch service.

Fires the notification candidates produced by a routing run concurrently, one
task per request, and joins them before returning. Delivery is best effort:
a failed or rejected request is logged and counted, never raised, and never
retried within the run.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from domain.notification import NotificationRequest

logger = logging.getLogger(__name__)


class NotificationTransport(Protocol):
    async def send(self, request: NotificationRequest) -> bool: ...


class SupabaseNotificationQueue:
    """
    Transport that records requests in the notification_requests table.

    The external delivery worker drains that table; "accepted" here means the
    request was queued, not delivered.
    """

    async def send(self, request: NotificationRequest) -> bool:
        from repositories.notification_repository import enqueue_notification

        await asyncio.to_thread(enqueue_notification, request)
        return True


@dataclass(frozen=True, slots=True)
class DispatchResult:
    accepted: int = 0
    failed: int = 0

    @property
    def attempted(self) -> int:
        return self.accepted + self.failed


async def dispatch_notifications(
    requests: Sequence[NotificationRequest],
    transport: Optional[NotificationTransport] = None,
) -> DispatchResult:
    if not requests:
        return DispatchResult()

    transport = transport or SupabaseNotificationQueue()
    outcomes = await asyncio.gather(
        *(transport.send(request) for request in requests),
        return_exceptions=True,
    )

    accepted = 0
    failed = 0
    for request, outcome in zip(requests, outcomes):
        if isinstance(outcome, BaseException):
            failed += 1
            logger.warning(
                "Notification request failed",
                extra={
                    "lead_id": str(request.lead_id),
                    "subscriber_id": str(request.subscriber_id),
                    "error": repr(outcome),
                },
            )
        elif outcome:
            accepted += 1
        else:
            failed += 1
            logger.warning(
                "Notification request not accepted",
                extra={"lead_id": str(request.lead_id), "subscriber_id": str(request.subscriber_id)},
            )

    logger.info("Notifications dispatched", extra={"accepted": accepted, "failed": failed})
    return DispatchResult(accepted=accepted, failed=failed)


def dispatch_notifications_sync(
    requests: Sequence[NotificationRequest],
    transport: Optional[NotificationTransport] = None,
) -> DispatchResult:
    """Run dispatch_notifications to completion. Must not be called from a running event loop."""

    if not requests:
        return DispatchResult()
    return asyncio.run(dispatch_notifications(requests, transport))


__all__ = [
    "NotificationTransport",
    "SupabaseNotificationQueue",
    "DispatchResult",
    "dispatch_notifications",
    "dispatch_notifications_sync",
]
