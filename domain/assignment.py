"""
Domain: Assignment of a lead to a subscriber.

Contract excerpts implemented here:
- An Assignment is created when a lead matches a subscriber's targeting profile.
- The pair (lead_id, subscriber_id) is unique. The store enforces it with a
  uniqueness constraint, and a violation on insert means "already assigned"
  (a no-op), never an error.
- New assignments always start in status "new".
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from domain.time import require_utc_timestamp

ASSIGNMENT_STATUS_NEW = "new"


@dataclass(frozen=True, slots=True)
class Assignment:
    lead_id: UUID
    subscriber_id: UUID
    tenant_id: UUID
    source: str
    created_at: datetime
    matched_industry: Optional[str] = None
    matched_geo: Optional[str] = None
    status: str = ASSIGNMENT_STATUS_NEW

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)

    @property
    def key(self) -> tuple[UUID, UUID]:
        """The unique (lead_id, subscriber_id) pair."""
        return (self.lead_id, self.subscriber_id)
