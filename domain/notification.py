"""
Domain: notification requests produced by routing.

The engine never delivers anything itself. It produces NotificationRequest
values that an external transport turns into messages. There are two channels:

- workspace: one message per (tenant, lead) for the tenant's Slack / Zapier
  integrations, independent of any user's email preference.
- email: one message per (subscriber, lead) for subscribers who opted in and
  have an address on file.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from domain.lead import CanonicalLead


class NotificationChannel(str, Enum):
    WORKSPACE = "workspace"
    EMAIL = "email"


def intent_tier(score: int) -> str:
    if score >= 67:
        return "hot"
    if score >= 34:
        return "warm"
    return "cold"


@dataclass(frozen=True, slots=True)
class NotificationRequest:
    channel: NotificationChannel
    tenant_id: UUID
    lead_id: UUID
    source: str
    subscriber_id: Optional[UUID] = None
    recipient_email: Optional[str] = None
    recipient_name: Optional[str] = None

    # Lead summary
    lead_name: Optional[str] = None
    company_name: Optional[str] = None
    job_title: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    intent_score: Optional[int] = None

    matched_industry: Optional[str] = None
    matched_geo: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.channel, NotificationChannel):
            raise ValueError(f"channel must be a NotificationChannel, got {self.channel!r}")
        if self.channel is NotificationChannel.EMAIL:
            if self.subscriber_id is None:
                raise ValueError("email notifications require subscriber_id")
            if not self.recipient_email:
                raise ValueError("email notifications require recipient_email")

    @classmethod
    def for_match(
        cls,
        *,
        channel: NotificationChannel,
        lead: CanonicalLead,
        tenant_id: UUID,
        matched_industry: Optional[str],
        matched_geo: Optional[str],
        source: str,
        subscriber_id: Optional[UUID] = None,
        recipient_email: Optional[str] = None,
        recipient_name: Optional[str] = None,
    ) -> "NotificationRequest":
        return cls(
            channel=channel,
            tenant_id=tenant_id,
            lead_id=lead.lead_id,
            source=source,
            subscriber_id=subscriber_id,
            recipient_email=recipient_email,
            recipient_name=recipient_name,
            lead_name=lead.full_name,
            company_name=lead.company_name,
            job_title=lead.job_title,
            city=lead.city,
            state=lead.state,
            intent_score=lead.intent_score,
            matched_industry=matched_industry,
            matched_geo=matched_geo,
        )

    @property
    def intent_tier(self) -> Optional[str]:
        if self.intent_score is None:
            return None
        return intent_tier(self.intent_score)

    def payload(self) -> dict[str, Any]:
        """JSON-serializable body handed to the delivery transport."""

        return {
            "event": "lead.assigned",
            "channel": self.channel.value,
            "lead": {
                "id": str(self.lead_id),
                "name": self.lead_name,
                "company_name": self.company_name,
                "title": self.job_title,
                "city": self.city,
                "state": self.state,
                "intent_score": self.intent_score,
                "intent_tier": self.intent_tier,
            },
            "match": {
                "industry": self.matched_industry,
                "geo": self.matched_geo,
            },
            "source": self.source,
        }
