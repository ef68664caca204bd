"""
Lead repository (persistence).

This module provides *only* persistence operations for the CanonicalLead domain
entity. No business rules (classification, scoring, merge policy) belong here;
the only constraint it surfaces is the database's unique key on fingerprint.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Mapping, Sequence
from uuid import UUID

from postgrest.exceptions import APIError

from domain.identity import DuplicateFingerprintError
from domain.lead import CanonicalLead, SeniorityLevel, VerificationStatus
from domain.time import parse_utc_datetime, to_iso_utc, utc_now
from repositories.client import get_client, is_unique_violation, raise_for_error, rows_of

# Supabase table name for CanonicalLead records.
# Keep this aligned with your database schema.
_LEADS_TABLE: str = "leads"


def _optional_uuid(value: Any) -> UUID | None:
    return UUID(str(value)) if value else None


def _lead_to_row(lead: CanonicalLead) -> dict[str, Any]:
    """Convert a domain CanonicalLead to a Supabase row payload."""

    return {
        "id": str(lead.lead_id),
        "hash_key": lead.fingerprint,
        "partner_id": str(lead.owning_partner_id) if lead.owning_partner_id else None,
        "upload_batch_id": str(lead.upload_batch_id) if lead.upload_batch_id else None,
        "created_at": to_iso_utc(lead.created_at, name="created_at"),
        "source": lead.source,

        # Contact information
        "email": lead.email,
        "first_name": lead.first_name,
        "last_name": lead.last_name,
        "phone": lead.phone,
        "job_title": lead.job_title,
        "seniority_level": lead.seniority.value if lead.seniority else SeniorityLevel.UNKNOWN.value,
        "linkedin_url": lead.linkedin_url,

        # Company
        "company_name": lead.company_name,
        "company_domain": lead.company_domain,
        "company_industry": lead.industry,
        "company_size": lead.company_size,
        "company_employee_count": lead.employee_count,

        # Location
        "city": lead.city,
        "state": lead.state,
        "state_code": lead.state,
        "postal_code": lead.postal_code,

        # Quality
        "verification_status": lead.verification_status.value,
        "intent_score_calculated": lead.intent_score,
        "freshness_score": lead.freshness_score,
        "marketplace_price": str(lead.marketplace_price),
        "is_marketplace_listed": lead.is_marketplace_listable,
    }


def _row_to_lead(row: Mapping[str, Any]) -> CanonicalLead:
    """Convert a Supabase row into a domain CanonicalLead."""

    def get_optional(key: str) -> str | None:
        value = row.get(key)
        return str(value) if value not in (None, "") else None

    seniority = row.get("seniority_level")
    employee_count = row.get("company_employee_count")

    return CanonicalLead(
        lead_id=UUID(str(row["id"])),
        fingerprint=str(row["hash_key"]),
        owning_partner_id=_optional_uuid(row.get("partner_id")),
        email=str(row.get("email") or ""),
        created_at=parse_utc_datetime(row["created_at"]),
        first_name=get_optional("first_name"),
        last_name=get_optional("last_name"),
        phone=get_optional("phone"),
        job_title=get_optional("job_title"),
        seniority=SeniorityLevel(seniority) if seniority else None,
        linkedin_url=get_optional("linkedin_url"),
        company_name=get_optional("company_name"),
        company_domain=get_optional("company_domain"),
        industry=get_optional("company_industry"),
        company_size=get_optional("company_size"),
        employee_count=int(employee_count) if employee_count not in (None, "") else None,
        city=get_optional("city"),
        state=get_optional("state_code") or get_optional("state"),
        postal_code=get_optional("postal_code"),
        verification_status=VerificationStatus(row.get("verification_status") or "unknown"),
        intent_score=int(row.get("intent_score_calculated") or 1),
        freshness_score=int(row.get("freshness_score") or 100),
        marketplace_price=Decimal(str(row.get("marketplace_price") or "0")),
        source=str(row.get("source") or "partner"),
        upload_batch_id=_optional_uuid(row.get("upload_batch_id")),
    )


def insert_lead(lead: CanonicalLead) -> None:
    """
    Insert a single CanonicalLead.

    Raises:
    - DuplicateFingerprintError if the fingerprint already exists.
    - RuntimeError if Supabase returns any other error.
    """

    try:
        response = get_client().table(_LEADS_TABLE).insert(_lead_to_row(lead)).execute()
    except APIError as e:
        if is_unique_violation(e):
            raise DuplicateFingerprintError(lead.fingerprint) from None
        raise RuntimeError(f"Failed to insert lead: {e}") from e
    raise_for_error(response, "insert lead")


def insert_leads_bulk(leads: Sequence[CanonicalLead]) -> None:
    """
    Bulk insert CanonicalLeads in a single request.

    The request is all-or-nothing: one fingerprint collision fails the batch.
    Callers fall back to insert_lead() for error isolation.

    Notes:
        - Empty list is a no-op
        - Supabase typically supports 500-1000 rows per request
    """

    if not leads:
        return

    payloads = [_lead_to_row(lead) for lead in leads]
    try:
        response = get_client().table(_LEADS_TABLE).insert(payloads).execute()
    except APIError as e:
        raise RuntimeError(f"Failed to bulk insert {len(leads)} leads: {e}") from e
    raise_for_error(response, f"bulk insert {len(leads)} leads")


def find_leads_by_fingerprints(fingerprints: Sequence[str]) -> dict[str, CanonicalLead]:
    """
    Look up stored leads for a chunk of fingerprints in one round-trip.

    Soft-deleted leads are ignored. Returns a mapping keyed by fingerprint
    (fingerprints with no stored lead are absent).
    """

    if not fingerprints:
        return {}

    response = (
        get_client()
        .table(_LEADS_TABLE)
        .select("*")
        .in_("hash_key", list(fingerprints))
        .eq("is_deleted", False)
        .execute()
    )
    raise_for_error(response, "look up leads by fingerprint")

    return {str(row["hash_key"]): _row_to_lead(row) for row in rows_of(response)}


def get_leads_by_ids(lead_ids: Sequence[UUID]) -> List[CanonicalLead]:
    if not lead_ids:
        return []

    response = (
        get_client()
        .table(_LEADS_TABLE)
        .select("*")
        .in_("id", [str(lead_id) for lead_id in lead_ids])
        .execute()
    )
    raise_for_error(response, "fetch leads")
    return [_row_to_lead(row) for row in rows_of(response)]


def fill_empty_fields(lead: CanonicalLead, changes: Mapping[str, str]) -> None:
    """
    Persist a same-owner merge.

    `changes` must only contain fields that were empty on the stored lead; the
    domain entity computes it (CanonicalLead.fill_empty_fields).
    """

    if not changes:
        return

    column_names = {"industry": "company_industry"}
    payload: dict[str, Any] = {column_names.get(k, k): v for k, v in changes.items()}
    if "state" in changes:
        payload["state_code"] = changes["state"]
    payload["updated_at"] = to_iso_utc(utc_now(), name="updated_at")

    response = (
        get_client()
        .table(_LEADS_TABLE)
        .update(payload)
        .eq("id", str(lead.lead_id))
        .execute()
    )
    raise_for_error(response, "merge lead fields")


def update_verification_status(lead_id: UUID, status: VerificationStatus) -> None:
    """Write a verification verdict and the listing flag derived from it."""

    now = to_iso_utc(utc_now(), name="verified_at")
    response = (
        get_client()
        .table(_LEADS_TABLE)
        .update(
            {
                "verification_status": status.value,
                "is_marketplace_listed": status.is_listable,
                "verified_at": now,
                "updated_at": now,
            }
        )
        .eq("id", str(lead_id))
        .execute()
    )
    raise_for_error(response, "update verification status")


__all__ = [
    "DuplicateFingerprintError",
    "insert_lead",
    "insert_leads_bulk",
    "find_leads_by_fingerprints",
    "get_leads_by_ids",
    "fill_empty_fields",
    "update_verification_status",
]
