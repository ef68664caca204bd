"""
Tests for `services/notification_service.py`.

Notification fan-out is best effort: failures are counted, never raised, and
one failure never prevents the other requests from being sent.
"""

from __future__ import annotations

import asyncio
from uuid import UUID

import pytest

from domain.notification import NotificationChannel, NotificationRequest
from services.notification_service import DispatchResult, dispatch_notifications, dispatch_notifications_sync

TENANT_T = UUID("00000000-0000-0000-0000-000000000101")
SUBSCRIBER = UUID("00000000-0000-0000-0000-000000000201")


def _request(n: int) -> NotificationRequest:
    return NotificationRequest(
        channel=NotificationChannel.EMAIL,
        subscriber_id=SUBSCRIBER,
        tenant_id=TENANT_T,
        recipient_email="sub@buyer.com",
        lead_id=UUID(f"00000000-0000-0000-0000-0000000001{n:02d}"),
        source="marketplace",
        lead_name=f"Lead {n}",
        intent_score=40,
    )


def test_all_requests_accepted(transport) -> None:
    requests = [_request(n) for n in range(3)]

    result = asyncio.run(dispatch_notifications(requests, transport))

    assert result == DispatchResult(accepted=3, failed=0)
    assert transport.sent == requests


def test_failures_are_swallowed_and_counted(transport) -> None:
    requests = [_request(n) for n in range(4)]
    transport.failing = {requests[0].lead_id}
    transport.declined = {requests[2].lead_id}

    result = asyncio.run(dispatch_notifications(requests, transport))

    assert result.accepted == 2
    assert result.failed == 2
    assert result.attempted == 4
    assert transport.sent == [requests[1], requests[3]]


def test_empty_candidate_list_is_a_no_op(transport) -> None:
    assert asyncio.run(dispatch_notifications([], transport)) == DispatchResult()
    assert dispatch_notifications_sync([], transport) == DispatchResult()


def test_sync_wrapper_runs_dispatch(transport) -> None:
    result = dispatch_notifications_sync([_request(1)], transport)

    assert result.accepted == 1


def test_requests_run_concurrently() -> None:
    class SlowTransport:
        def __init__(self) -> None:
            self.in_flight = 0
            self.peak = 0

        async def send(self, request: NotificationRequest) -> bool:
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
            await asyncio.sleep(0.01)
            self.in_flight -= 1
            return True

    slow = SlowTransport()
    result = dispatch_notifications_sync([_request(n) for n in range(5)], slow)

    assert result.accepted == 5
    assert slow.peak == 5


def test_payload_carries_lead_summary_and_tier() -> None:
    payload = _request(1).payload()

    assert payload["event"] == "lead.assigned"
    assert payload["lead"]["name"] == "Lead 1"
    assert payload["lead"]["intent_tier"] == "warm"
    assert payload["source"] == "marketplace"
    assert payload["channel"] == "email"


def test_workspace_request_needs_no_recipient() -> None:
    request = NotificationRequest(
        channel=NotificationChannel.WORKSPACE,
        tenant_id=TENANT_T,
        lead_id=UUID("00000000-0000-0000-0000-000000000101"),
        source="partner_upload",
    )

    assert request.subscriber_id is None
    assert request.payload()["channel"] == "workspace"


@pytest.mark.parametrize(
    "overrides",
    [
        {"recipient_email": None},
        {"subscriber_id": None},
    ],
)
def test_email_request_requires_subscriber_and_address(overrides) -> None:
    values = {
        "channel": NotificationChannel.EMAIL,
        "tenant_id": TENANT_T,
        "lead_id": UUID("00000000-0000-0000-0000-000000000101"),
        "source": "marketplace",
        "subscriber_id": SUBSCRIBER,
        "recipient_email": "sub@buyer.com",
    }
    values.update(overrides)

    with pytest.raises(ValueError):
        NotificationRequest(**values)
