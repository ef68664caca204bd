"""
Domain: CanonicalLead entity.

Contract excerpts implemented here:
- A CanonicalLead is the stored, deduplicated contact; exactly one exists per
  fingerprint (the store enforces the unique key).
- owning_partner_id is the attribution; None means platform-owned inventory.
- After creation only two things change a lead: same-owner merges that fill
  empty fields, and verification-status updates from the verification flow.
- created_at is a UTC timestamp and is authoritative for freshness.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional
from uuid import UUID

from domain.identity import require_fingerprint
from domain.time import require_utc_timestamp


class VerificationStatus(str, Enum):
    VALID = "valid"
    CATCH_ALL = "catch_all"
    INVALID = "invalid"
    UNKNOWN = "unknown"
    RISKY = "risky"

    @property
    def is_listable(self) -> bool:
        """Only valid and catch-all leads are listed on the marketplace."""
        return self in (VerificationStatus.VALID, VerificationStatus.CATCH_ALL)


class SeniorityLevel(str, Enum):
    C_SUITE = "c_suite"
    VP = "vp"
    DIRECTOR = "director"
    MANAGER = "manager"
    IC = "ic"
    UNKNOWN = "unknown"


# Fields a same-owner re-upload may fill in when the stored value is empty.
MERGEABLE_FIELDS: tuple[str, ...] = (
    "first_name",
    "last_name",
    "phone",
    "job_title",
    "company_name",
    "company_domain",
    "industry",
    "city",
    "state",
    "postal_code",
    "linkedin_url",
)


@dataclass(frozen=True, slots=True)
class CanonicalLead:
    """
    Pure domain entity for a deduplicated lead.

    Scores are stored as computed at creation; the marketplace price is a
    Decimal quantized to 4 places.
    """

    lead_id: UUID
    fingerprint: str
    owning_partner_id: Optional[UUID]
    email: str
    created_at: datetime

    # Contact
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    job_title: Optional[str] = None
    seniority: Optional[SeniorityLevel] = None
    linkedin_url: Optional[str] = None

    # Company
    company_name: Optional[str] = None
    company_domain: Optional[str] = None
    industry: Optional[str] = None
    company_size: Optional[str] = None
    employee_count: Optional[int] = None

    # Location
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None

    # Quality
    verification_status: VerificationStatus = VerificationStatus.UNKNOWN
    intent_score: int = 1
    freshness_score: int = 100
    marketplace_price: Decimal = Decimal("0")

    source: str = "partner"
    upload_batch_id: Optional[UUID] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        require_fingerprint(self.fingerprint)
        if not 1 <= self.intent_score <= 100:
            raise ValueError("intent_score must be within [1, 100]")
        if not 1 <= self.freshness_score <= 100:
            raise ValueError("freshness_score must be within [1, 100]")
        if self.marketplace_price < 0:
            raise ValueError("marketplace_price must be >= 0")

    @property
    def is_platform_owned(self) -> bool:
        return self.owning_partner_id is None

    @property
    def is_marketplace_listable(self) -> bool:
        return self.verification_status.is_listable

    @property
    def full_name(self) -> Optional[str]:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) if parts else None

    def fill_empty_fields(self, updates: Mapping[str, Optional[str]]) -> tuple["CanonicalLead", dict[str, str]]:
        """
        Return a copy with empty mergeable fields filled from `updates`.

        Populated fields are never overwritten. The second element holds only
        the fields that actually changed (empty when nothing did).
        """

        changed: dict[str, str] = {}
        for name in MERGEABLE_FIELDS:
            incoming = updates.get(name)
            if not incoming:
                continue
            if getattr(self, name):
                continue
            changed[name] = incoming

        if not changed:
            return self, changed
        return replace(self, **changed), changed

    def with_verification_status(self, status: VerificationStatus) -> "CanonicalLead":
        return replace(self, verification_status=status)
