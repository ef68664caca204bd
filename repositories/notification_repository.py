"""
Notification request repository (persistence).

Routing does not deliver notifications. It records requests in
notification_requests, which the external delivery worker drains.
"""

from __future__ import annotations

from domain.notification import NotificationRequest
from domain.time import to_iso_utc, utc_now
from repositories.client import get_client, raise_for_error

_NOTIFICATIONS_TABLE: str = "notification_requests"


def enqueue_notification(request: NotificationRequest) -> None:
    response = (
        get_client()
        .table(_NOTIFICATIONS_TABLE)
        .insert(
            {
                "user_id": str(request.subscriber_id) if request.subscriber_id else None,
                "workspace_id": str(request.tenant_id),
                "lead_id": str(request.lead_id),
                "channel": request.channel.value,
                "recipient_email": request.recipient_email,
                "recipient_name": request.recipient_name,
                "payload": request.payload(),
                "status": "pending",
                "created_at": to_iso_utc(utc_now(), name="created_at"),
            }
        )
        .execute()
    )
    raise_for_error(response, "enqueue notification request")


__all__ = ["enqueue_notification"]
