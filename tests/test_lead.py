"""
Tests for `domain/lead.py`.

Covers contract rules:
- created_at is required and must be a UTC timestamp.
- The fingerprint must be a SHA-256 hex digest; scores stay within [1, 100].
- CanonicalLead is immutable; merges return a new instance.
- Merging fills only empty fields and never overwrites populated ones.
- Only valid and catch_all leads are marketplace listable.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from domain.identity import compute_fingerprint
from domain.lead import CanonicalLead, VerificationStatus

LEAD_ID = UUID("00000000-0000-0000-0000-000000000001")
PARTNER_A = UUID("00000000-0000-0000-0000-00000000000a")
CREATED_AT = datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
FINGERPRINT = compute_fingerprint("jane@acme.com", "acme.com", None)


def _lead(**overrides) -> CanonicalLead:
    values = {
        "lead_id": LEAD_ID,
        "fingerprint": FINGERPRINT,
        "owning_partner_id": PARTNER_A,
        "email": "jane@acme.com",
        "created_at": CREATED_AT,
    }
    values.update(overrides)
    return CanonicalLead(**values)


def test_lead_created_at_required() -> None:
    """Verify created_at is required at instantiation."""

    with pytest.raises(TypeError):
        CanonicalLead(  # type: ignore[call-arg]
            lead_id=LEAD_ID,
            fingerprint=FINGERPRINT,
            owning_partner_id=PARTNER_A,
            email="jane@acme.com",
        )


def test_lead_created_at_must_be_utc() -> None:
    with pytest.raises(ValueError):
        _lead(created_at=datetime(2025, 1, 1, 0, 0, 0))

    with pytest.raises(ValueError):
        _lead(created_at=datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone(timedelta(hours=-5))))


def test_lead_rejects_malformed_fingerprint() -> None:
    with pytest.raises(ValueError):
        _lead(fingerprint="not-a-hash")


@pytest.mark.parametrize("field_name", ["intent_score", "freshness_score"])
@pytest.mark.parametrize("value", [0, 101])
def test_lead_scores_must_be_within_bounds(field_name: str, value: int) -> None:
    with pytest.raises(ValueError):
        _lead(**{field_name: value})


def test_lead_price_must_not_be_negative() -> None:
    with pytest.raises(ValueError):
        _lead(marketplace_price=Decimal("-0.01"))


def test_lead_is_immutable() -> None:
    lead = _lead()

    with pytest.raises(FrozenInstanceError):
        lead.owning_partner_id = None  # type: ignore[misc]


def test_platform_owned_when_no_partner() -> None:
    assert _lead(owning_partner_id=None).is_platform_owned
    assert not _lead().is_platform_owned


def test_fill_empty_fields_never_overwrites_populated_values() -> None:
    lead = _lead(first_name="Jane", city=None, job_title="")

    merged, changes = lead.fill_empty_fields(
        {"first_name": "Janet", "city": "Austin", "job_title": "CTO", "phone": None}
    )

    assert changes == {"city": "Austin", "job_title": "CTO"}
    assert merged.first_name == "Jane"
    assert merged.city == "Austin"
    assert merged.job_title == "CTO"
    assert lead.city is None


def test_fill_empty_fields_returns_same_instance_when_nothing_changes() -> None:
    lead = _lead(first_name="Jane")

    merged, changes = lead.fill_empty_fields({"first_name": "Janet"})

    assert merged is lead
    assert changes == {}


@pytest.mark.parametrize(
    ("status", "listable"),
    [
        (VerificationStatus.VALID, True),
        (VerificationStatus.CATCH_ALL, True),
        (VerificationStatus.RISKY, False),
        (VerificationStatus.INVALID, False),
        (VerificationStatus.UNKNOWN, False),
    ],
)
def test_marketplace_listing_by_verification_status(status: VerificationStatus, listable: bool) -> None:
    assert _lead(verification_status=status).is_marketplace_listable is listable


def test_with_verification_status_returns_new_instance() -> None:
    lead = _lead()
    verified = lead.with_verification_status(VerificationStatus.VALID)

    assert verified.verification_status is VerificationStatus.VALID
    assert lead.verification_status is VerificationStatus.UNKNOWN


def test_full_name_joins_present_parts() -> None:
    assert _lead(first_name="Jane", last_name="Doe").full_name == "Jane Doe"
    assert _lead(first_name="Jane").full_name == "Jane"
    assert _lead().full_name is None
