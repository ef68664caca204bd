"""
Tests for `domain/identity.py`.

Covers contract rules:
- Fingerprints are deterministic and blind to case, Gmail dots and phone formatting.
- Different emails produce different fingerprints.
- Ownership classification matrix (same owner / cross owner / platform owned).
- Same-tenant anti-gaming rule.
"""

from __future__ import annotations

from uuid import UUID

import pytest

from domain.identity import (
    DuplicateClassification,
    classify_ownership,
    compute_fingerprint,
    is_acquisition_allowed,
    normalize_domain,
    normalize_email,
    normalize_phone,
    require_fingerprint,
)

PARTNER_A = UUID("00000000-0000-0000-0000-00000000000a")
PARTNER_B = UUID("00000000-0000-0000-0000-00000000000b")
TENANT_T = UUID("00000000-0000-0000-0000-000000000101")
TENANT_U = UUID("00000000-0000-0000-0000-000000000102")


def test_fingerprint_equivalence_across_superficial_differences() -> None:
    assert compute_fingerprint("J.Doe@gmail.com", None, "(555) 123-4567") == compute_fingerprint(
        "jdoe@GMAIL.com", None, "+1-555-123-4567"
    )


def test_fingerprint_distinct_for_different_emails() -> None:
    a = compute_fingerprint("jane@acme.com", "acme.com", "5551234567")
    b = compute_fingerprint("john@acme.com", "acme.com", "5551234567")
    assert a != b


def test_fingerprint_is_sha256_hex_and_stable_for_email_only_records() -> None:
    first = compute_fingerprint("solo@acme.com", None, None)
    second = compute_fingerprint("  SOLO@acme.com ", "", "")

    assert first == second
    assert len(first) == 64
    require_fingerprint(first)


def test_gmail_dot_blindness_does_not_apply_to_other_domains() -> None:
    assert normalize_email("J.Doe@GoogleMail.com") == "jdoe@googlemail.com"
    assert normalize_email("J.Doe@acme.com") == "j.doe@acme.com"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("(555) 123-4567", "5551234567"),
        ("+1 555 123 4567", "5551234567"),
        ("15551234567", "5551234567"),
        ("25551234567", "25551234567"),
        ("555-1234", "5551234"),
        (None, ""),
        ("n/a", ""),
    ],
)
def test_normalize_phone(raw: str | None, expected: str) -> None:
    assert normalize_phone(raw) == expected


def test_explicit_company_domain_wins_over_email_domain() -> None:
    assert normalize_domain(" Acme.COM ", "jane@other.io") == "acme.com"
    assert normalize_domain(None, "jane@Other.io") == "other.io"
    assert normalize_domain("", "") == ""


def test_require_fingerprint_rejects_malformed_values() -> None:
    with pytest.raises(ValueError):
        require_fingerprint("abc")
    with pytest.raises(ValueError):
        require_fingerprint("A" * 64)


@pytest.mark.parametrize(
    ("existing_owner", "current_partner", "expected"),
    [
        (PARTNER_A, PARTNER_A, DuplicateClassification.SAME_OWNER),
        (PARTNER_A, PARTNER_B, DuplicateClassification.CROSS_OWNER),
        (None, PARTNER_B, DuplicateClassification.PLATFORM_OWNED),
        (None, None, DuplicateClassification.SAME_OWNER),
        (PARTNER_A, None, DuplicateClassification.CROSS_OWNER),
    ],
)
def test_classify_ownership_matrix(
    existing_owner: UUID | None,
    current_partner: UUID | None,
    expected: DuplicateClassification,
) -> None:
    assert classify_ownership(existing_owner, current_partner) is expected


def test_same_tenant_acquisition_blocked() -> None:
    assert not is_acquisition_allowed(TENANT_T, lead_is_platform_owned=False, subscriber_tenant_id=TENANT_T)


def test_other_tenant_acquisition_allowed() -> None:
    assert is_acquisition_allowed(TENANT_U, lead_is_platform_owned=False, subscriber_tenant_id=TENANT_T)


def test_platform_owned_lead_always_acquirable() -> None:
    assert is_acquisition_allowed(None, lead_is_platform_owned=True, subscriber_tenant_id=TENANT_T)
    assert is_acquisition_allowed(TENANT_T, lead_is_platform_owned=True, subscriber_tenant_id=TENANT_T)
