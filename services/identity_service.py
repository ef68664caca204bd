"""
Identity resolution service.

Classifies validated contacts against stored leads by fingerprint and applies
the ownership policy:

- new                   -> returned as a pending lead for scoring and insert
- same-owner duplicate  -> empty stored fields filled in, record reported as
                           DUPLICATE_SAME_PARTNER (merged)
- platform-owned        -> rejected as PLATFORM_OWNED_LEAD; the stored lead
                           stays platform inventory
- cross-owner duplicate -> rejected as DUPLICATE_CROSS_PARTNER

Fingerprints for the whole batch are computed up front and looked up in chunks
(one store round-trip per chunk). A chunk whose lookup fails is rejected with
UNKNOWN_ERROR; the rest of the batch continues.

Also hosts the same-tenant anti-gaming check used at acquisition time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Set
from uuid import UUID

from domain.contact import ValidatedContact
from domain.identity import DuplicateClassification, classify_ownership, is_acquisition_allowed
from domain.lead import CanonicalLead
from domain.rejection import RejectionReason, RejectionRecord

logger = logging.getLogger(__name__)

LOOKUP_CHUNK_SIZE = 100


class LeadStore(Protocol):
    def find_leads_by_fingerprints(self, fingerprints: Sequence[str]) -> Mapping[str, CanonicalLead]: ...

    def fill_empty_fields(self, lead: CanonicalLead, changes: Mapping[str, str]) -> None: ...


class PartnerDirectory(Protocol):
    def get_partner_tenant_ids(self, partner_ids: Sequence[UUID]) -> Mapping[UUID, UUID]: ...


def _default_lead_store() -> LeadStore:
    from repositories import lead_repository

    return lead_repository  # type: ignore[return-value]


def _default_partner_directory() -> PartnerDirectory:
    from repositories import partner_repository

    return partner_repository  # type: ignore[return-value]


@dataclass(frozen=True, slots=True)
class PendingLead:
    """A contact classified as new; becomes a CanonicalLead once scored and stored."""

    contact: ValidatedContact
    fingerprint: str


@dataclass(slots=True)
class ResolutionResult:
    pending: List[PendingLead] = field(default_factory=list)
    merged: List[CanonicalLead] = field(default_factory=list)
    rejections: List[RejectionRecord] = field(default_factory=list)

    @property
    def merged_count(self) -> int:
        return len(self.merged)


def classify_against(existing: Optional[CanonicalLead], partner_id: Optional[UUID]) -> DuplicateClassification:
    if existing is None:
        return DuplicateClassification.NEW
    return classify_ownership(existing.owning_partner_id, partner_id)


def _chunks(items: Sequence[str], size: int) -> Iterable[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _lookup(
    fingerprints: Sequence[str],
    store: LeadStore,
    chunk_size: int,
) -> tuple[Dict[str, CanonicalLead], Set[str]]:
    found: Dict[str, CanonicalLead] = {}
    failed: Set[str] = set()

    for chunk in _chunks(fingerprints, chunk_size):
        try:
            found.update(store.find_leads_by_fingerprints(chunk))
        except Exception as e:
            logger.error(
                "Fingerprint lookup failed for chunk",
                extra={"chunk_size": len(chunk), "error": str(e)},
            )
            failed.update(chunk)

    return found, failed


def _merge_into_contact(pending: ValidatedContact, incoming: ValidatedContact) -> tuple[ValidatedContact, int]:
    updates = {
        name: value
        for name, value in incoming.mergeable_values().items()
        if value and not getattr(pending, name)
    }
    if not updates:
        return pending, 0
    return replace(pending, **updates), len(updates)


def _unknown_error(contact: ValidatedContact, message: str) -> RejectionRecord:
    return RejectionRecord(
        row_number=contact.row_number,
        reason=RejectionReason.UNKNOWN_ERROR,
        message=message,
        field="email",
        value=contact.email,
    )


def _duplicate_rejection(
    contact: ValidatedContact,
    classification: DuplicateClassification,
    existing_lead_id: Optional[UUID],
    existing_partner_id: Optional[UUID],
    *,
    merged_fields: int = 0,
) -> RejectionRecord:
    if classification is DuplicateClassification.SAME_OWNER:
        reason = RejectionReason.DUPLICATE_SAME_PARTNER
        message = f"Duplicate of an existing lead from the same partner; merged {merged_fields} empty field(s)"
    elif classification is DuplicateClassification.PLATFORM_OWNED:
        reason = RejectionReason.PLATFORM_OWNED_LEAD
        message = "Lead already exists in platform inventory"
    else:
        reason = RejectionReason.DUPLICATE_CROSS_PARTNER
        message = "Lead already exists and is owned by another partner"

    return RejectionRecord(
        row_number=contact.row_number,
        reason=reason,
        message=message,
        field="email",
        value=contact.email,
        existing_lead_id=existing_lead_id,
        existing_partner_id=existing_partner_id,
    )


def resolve_batch(
    contacts: Sequence[ValidatedContact],
    *,
    store: Optional[LeadStore] = None,
    chunk_size: int = LOOKUP_CHUNK_SIZE,
) -> ResolutionResult:
    """
    Classify a batch of validated contacts.

    Every contact ends in exactly one of: result.pending (new), or
    result.rejections (duplicates, platform-owned collisions, lookup failures).
    Same-owner duplicates also contribute their updated lead to result.merged.

    Within a batch the first occurrence of a fingerprint wins; later
    occurrences are classified against it.
    """

    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")

    store = store or _default_lead_store()
    result = ResolutionResult()

    fingerprinted = [(contact, contact.fingerprint) for contact in contacts]
    unique = list(dict.fromkeys(fp for _, fp in fingerprinted))
    found, failed = _lookup(unique, store, chunk_size)

    pending: Dict[str, ValidatedContact] = {}
    merged: Dict[UUID, CanonicalLead] = {}

    for contact, fingerprint in fingerprinted:
        if fingerprint in failed:
            result.rejections.append(_unknown_error(contact, "Duplicate check failed; record not stored"))
            continue

        existing = found.get(fingerprint)
        if existing is not None:
            classification = classify_against(existing, contact.partner_id)
            if classification is not DuplicateClassification.SAME_OWNER:
                result.rejections.append(
                    _duplicate_rejection(contact, classification, existing.lead_id, existing.owning_partner_id)
                )
                continue

            updated, changes = existing.fill_empty_fields(contact.mergeable_values())
            if changes:
                try:
                    store.fill_empty_fields(existing, changes)
                except Exception as e:
                    logger.error(
                        "Failed to merge duplicate into existing lead",
                        extra={"lead_id": str(existing.lead_id), "error": str(e)},
                    )
                    result.rejections.append(_unknown_error(contact, "Merge into existing lead failed"))
                    continue
                found[fingerprint] = updated
            merged[updated.lead_id] = updated
            result.rejections.append(
                _duplicate_rejection(
                    contact,
                    classification,
                    existing.lead_id,
                    existing.owning_partner_id,
                    merged_fields=len(changes),
                )
            )
            continue

        first = pending.get(fingerprint)
        if first is None:
            pending[fingerprint] = contact
            continue

        classification = classify_ownership(first.partner_id, contact.partner_id)
        if classification is DuplicateClassification.SAME_OWNER:
            pending[fingerprint], merged_fields = _merge_into_contact(first, contact)
        else:
            merged_fields = 0
        result.rejections.append(
            _duplicate_rejection(contact, classification, None, first.partner_id, merged_fields=merged_fields)
        )

    result.pending.extend(PendingLead(contact=c, fingerprint=fp) for fp, c in pending.items())
    result.merged.extend(merged.values())

    logger.info(
        "Identity resolution complete",
        extra={
            "contacts": len(contacts),
            "new": len(result.pending),
            "merged": len(result.merged),
            "rejected": len(result.rejections),
        },
    )
    return result


def check_acquisition(
    lead: CanonicalLead,
    subscriber_tenant_id: UUID,
    *,
    partners: Optional[PartnerDirectory] = None,
) -> bool:
    """
    Same-tenant gaming check for a single lead.

    Platform-owned leads are always acquirable and need no lookup.
    """

    if lead.owning_partner_id is None:
        return True

    partners = partners or _default_partner_directory()
    owner_tenant = partners.get_partner_tenant_ids([lead.owning_partner_id]).get(lead.owning_partner_id)
    allowed = is_acquisition_allowed(
        owner_tenant,
        lead_is_platform_owned=False,
        subscriber_tenant_id=subscriber_tenant_id,
    )
    if not allowed:
        logger.warning(
            "Blocked same-tenant acquisition",
            extra={"lead_id": str(lead.lead_id), "tenant_id": str(subscriber_tenant_id)},
        )
    return allowed


def filter_acquirable(
    leads: Sequence[CanonicalLead],
    subscriber_tenant_id: UUID,
    *,
    partners: Optional[PartnerDirectory] = None,
) -> tuple[List[CanonicalLead], List[CanonicalLead]]:
    """
    Split leads into (acquirable, blocked) for one subscriber tenant.

    Partner tenants are resolved in a single lookup.
    """

    owner_ids = sorted({lead.owning_partner_id for lead in leads if lead.owning_partner_id}, key=str)
    tenants: Mapping[UUID, UUID] = {}
    if owner_ids:
        partners = partners or _default_partner_directory()
        tenants = partners.get_partner_tenant_ids(owner_ids)

    allowed: List[CanonicalLead] = []
    blocked: List[CanonicalLead] = []
    for lead in leads:
        owner_tenant = tenants.get(lead.owning_partner_id) if lead.owning_partner_id else None
        if is_acquisition_allowed(
            owner_tenant,
            lead_is_platform_owned=lead.is_platform_owned,
            subscriber_tenant_id=subscriber_tenant_id,
        ):
            allowed.append(lead)
        else:
            blocked.append(lead)

    if blocked:
        logger.warning(
            "Blocked same-tenant acquisitions",
            extra={"tenant_id": str(subscriber_tenant_id), "blocked": len(blocked)},
        )
    return allowed, blocked


__all__ = [
    "LOOKUP_CHUNK_SIZE",
    "LeadStore",
    "PartnerDirectory",
    "PendingLead",
    "ResolutionResult",
    "classify_against",
    "resolve_batch",
    "check_acquisition",
    "filter_acquirable",
]
