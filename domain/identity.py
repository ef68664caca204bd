"""
Domain: Contact identity normalization and fingerprints.

Rules implemented here:
- Email: lowercase + trim; Gmail/Googlemail local parts are dot-blind
  (j.doe@gmail.com == jdoe@gmail.com).
- Phone: digits only; an 11-digit number starting with 1 drops the US
  long-distance prefix.
- Domain: explicit company domain wins, otherwise the email's domain part;
  lowercase + trim.
- Fingerprint: SHA-256 hex of "<email>|<domain>|<phone>". Empty components
  still participate, so an email-only record gets a stable fingerprint.

Everything in this module is pure; no I/O.
"""

from __future__ import annotations

import hashlib
import re
from enum import Enum
from typing import Optional
from uuid import UUID

_GMAIL_DOMAINS = frozenset({"gmail.com", "googlemail.com"})
_NON_DIGITS = re.compile(r"\D")
_FINGERPRINT_PATTERN = re.compile(r"^[0-9a-f]{64}$")


class DuplicateFingerprintError(ValueError):
    """Raised when storing a lead collides with an existing fingerprint."""

    def __init__(self, fingerprint: str) -> None:
        self.fingerprint = fingerprint
        super().__init__(f"CanonicalLead already exists for fingerprint {fingerprint[:12]}...")


def normalize_email(email: Optional[str]) -> str:
    if not email:
        return ""

    text = email.strip().lower()
    local, sep, domain = text.partition("@")
    if not sep or not local or not domain:
        return text

    if domain in _GMAIL_DOMAINS:
        local = local.replace(".", "")
    return f"{local}@{domain}"


def extract_email_domain(email: Optional[str]) -> str:
    if not email:
        return ""
    _, _, domain = email.strip().lower().partition("@")
    return domain


def normalize_phone(phone: Optional[str]) -> str:
    if not phone:
        return ""

    digits = _NON_DIGITS.sub("", phone)
    if len(digits) == 11 and digits.startswith("1"):
        return digits[1:]
    return digits


def normalize_domain(company_domain: Optional[str], email: Optional[str]) -> str:
    explicit = (company_domain or "").strip()
    if explicit:
        return explicit.lower()
    return extract_email_domain(email)


def compute_fingerprint(
    email: Optional[str],
    company_domain: Optional[str],
    phone: Optional[str],
) -> str:
    """
    Deterministic dedup key for a contact.

    Example:
        compute_fingerprint("J.Doe@gmail.com", None, "(555) 123-4567")
        == compute_fingerprint("jdoe@GMAIL.com", None, "+1-555-123-4567")
    """

    key = "|".join(
        (
            normalize_email(email),
            normalize_domain(company_domain, email),
            normalize_phone(phone),
        )
    )
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def require_fingerprint(value: str) -> None:
    if not _FINGERPRINT_PATTERN.match(value):
        raise ValueError("fingerprint must be a 64-character lowercase SHA-256 hex digest")


class DuplicateClassification(str, Enum):
    NEW = "new"
    SAME_OWNER = "same_owner_duplicate"
    CROSS_OWNER = "cross_owner_duplicate"
    PLATFORM_OWNED = "platform_owned"


def classify_ownership(
    existing_owner_id: Optional[UUID],
    current_partner_id: Optional[UUID],
) -> DuplicateClassification:
    """
    Classify an incoming record against the owner of the stored lead that shares
    its fingerprint.

    Equal owners (including an admin re-upload of platform inventory, where both
    are None) merge; a null stored owner is platform inventory; anything else
    belongs to another partner.
    """

    if existing_owner_id == current_partner_id:
        return DuplicateClassification.SAME_OWNER
    if existing_owner_id is None:
        return DuplicateClassification.PLATFORM_OWNED
    return DuplicateClassification.CROSS_OWNER


def is_acquisition_allowed(
    owner_tenant_id: Optional[UUID],
    *,
    lead_is_platform_owned: bool,
    subscriber_tenant_id: UUID,
) -> bool:
    """
    Same-tenant gaming rule.

    A subscriber may not acquire a lead supplied by a partner scoped to the
    subscriber's own tenant. Platform-owned leads are always acquirable.
    """

    if lead_is_platform_owned:
        return True
    return owner_tenant_id != subscriber_tenant_id
