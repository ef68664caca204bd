"""
Partner batch pipeline.

Runs one uploaded batch through the engine, strictly forward:

    raw records -> validation -> identity resolution -> scoring -> insert
                -> routing -> notification dispatch

Every raw record ends as exactly one created CanonicalLead or exactly one
RejectionRecord (same-owner duplicates are both merged and reported).
Infrastructure failures are contained to the record, pair or chunk they hit;
the batch always completes and can be re-run safely.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Protocol, Sequence
from uuid import UUID, uuid4

from domain.contact import RawContactRecord, ValidatedContact
from domain.identity import DuplicateFingerprintError
from domain.lead import CanonicalLead
from domain.rejection import RejectionReason, RejectionRecord
from domain.targeting import TargetingProfile
from domain.time import utc_now
from services.contact_validation import validate_contact
from services.identity_service import LOOKUP_CHUNK_SIZE, LeadStore, PendingLead, resolve_batch
from services.notification_service import DispatchResult, NotificationTransport, dispatch_notifications_sync
from services.rejection_export_service import RejectionLogUploader, store_rejection_log
from services.routing_service import NotificationLimits, RoutingResult, RoutingStore, route_leads
from services.scoring_service import apply_scores

logger = logging.getLogger(__name__)

DEFAULT_LEAD_SOURCE = "partner"
DEFAULT_ROUTING_SOURCE = "partner_upload"


class PipelineLeadStore(LeadStore, Protocol):
    def insert_leads_bulk(self, leads: Sequence[CanonicalLead]) -> None: ...

    def insert_lead(self, lead: CanonicalLead) -> None: ...


def _default_lead_store() -> PipelineLeadStore:
    from repositories import lead_repository

    return lead_repository  # type: ignore[return-value]


def _load_active_profiles() -> List[TargetingProfile]:
    from repositories.targeting_repository import list_active_profiles

    return list_active_profiles()


@dataclass(slots=True)
class BatchResult:
    batch_id: UUID
    received: int
    created: List[CanonicalLead] = field(default_factory=list)
    merged: List[CanonicalLead] = field(default_factory=list)
    rejections: List[RejectionRecord] = field(default_factory=list)
    routing: Optional[RoutingResult] = None
    notifications: DispatchResult = DispatchResult()
    rejection_log_url: Optional[str] = None

    @property
    def merged_count(self) -> int:
        return len(self.merged)

    @property
    def rejected_count(self) -> int:
        return len(self.rejections)


def _unknown_error(row_number: int, message: str) -> RejectionRecord:
    return RejectionRecord(row_number=row_number, reason=RejectionReason.UNKNOWN_ERROR, message=message)


def build_lead(
    pending: PendingLead,
    *,
    created_at: datetime,
    source: str = DEFAULT_LEAD_SOURCE,
    batch_id: Optional[UUID] = None,
) -> CanonicalLead:
    """Create the scored CanonicalLead for a contact classified as new."""

    contact = pending.contact
    lead = CanonicalLead(
        lead_id=uuid4(),
        fingerprint=pending.fingerprint,
        owning_partner_id=contact.partner_id,
        email=contact.email,
        created_at=created_at,
        first_name=contact.first_name,
        last_name=contact.last_name,
        phone=contact.phone,
        job_title=contact.job_title,
        seniority=contact.seniority,
        linkedin_url=contact.linkedin_url,
        company_name=contact.company_name,
        company_domain=contact.company_domain,
        industry=contact.industry,
        company_size=contact.company_size,
        employee_count=contact.employee_count,
        city=contact.city,
        state=contact.state,
        postal_code=contact.postal_code,
        source=source,
        upload_batch_id=batch_id,
    )
    return apply_scores(lead, created_at)


def _validate(records: Sequence[RawContactRecord], result: BatchResult) -> List[ValidatedContact]:
    validated: List[ValidatedContact] = []
    for record in records:
        try:
            outcome = validate_contact(record)
        except Exception as e:
            logger.error(
                "Unexpected error validating record",
                extra={"row_number": record.row_number, "error": str(e)},
            )
            result.rejections.append(_unknown_error(record.row_number, f"Unexpected error: {e}"))
            continue

        if isinstance(outcome, RejectionRecord):
            result.rejections.append(outcome)
        else:
            validated.append(outcome)
    return validated


def _insert_one(
    pending: PendingLead,
    lead: CanonicalLead,
    store: PipelineLeadStore,
    result: BatchResult,
) -> None:
    try:
        store.insert_lead(lead)
    except DuplicateFingerprintError:
        # Another run stored this fingerprint after our lookup; classify against it.
        retry = resolve_batch([pending.contact], store=store)
        result.merged.extend(retry.merged)
        result.rejections.extend(retry.rejections)
        if retry.pending:
            result.rejections.append(
                _unknown_error(pending.contact.row_number, "Fingerprint collision could not be resolved")
            )
        return
    except Exception as e:
        logger.error(
            "Failed to insert lead",
            extra={"row_number": pending.contact.row_number, "error": str(e)},
        )
        result.rejections.append(_unknown_error(pending.contact.row_number, "Failed to store lead"))
        return

    result.created.append(lead)


def _persist(
    scored: Sequence[tuple[PendingLead, CanonicalLead]],
    store: PipelineLeadStore,
    result: BatchResult,
) -> None:
    if not scored:
        return

    try:
        store.insert_leads_bulk([lead for _, lead in scored])
    except Exception as e:
        logger.warning(
            "Bulk insert failed; falling back to individual inserts",
            extra={"batch_id": str(result.batch_id), "leads": len(scored), "error": str(e)},
        )
    else:
        result.created.extend(lead for _, lead in scored)
        return

    for pending, lead in scored:
        _insert_one(pending, lead, store, result)


def process_contact_batch(
    records: Sequence[RawContactRecord],
    *,
    batch_id: Optional[UUID] = None,
    lead_store: Optional[PipelineLeadStore] = None,
    profiles: Optional[Sequence[TargetingProfile]] = None,
    routing_store: Optional[RoutingStore] = None,
    transport: Optional[NotificationTransport] = None,
    notification_limits: NotificationLimits = NotificationLimits(),
    lead_source: str = DEFAULT_LEAD_SOURCE,
    routing_source: str = DEFAULT_ROUTING_SOURCE,
    chunk_size: int = LOOKUP_CHUNK_SIZE,
    export_rejections: bool = False,
    uploader: Optional[RejectionLogUploader] = None,
    now: Optional[datetime] = None,
) -> BatchResult:
    """
    Process one uploaded batch end to end.

    `profiles` defaults to every active targeting profile in the store. Routing
    only runs for leads created by this batch.
    """

    store = lead_store or _default_lead_store()
    created_at = now or utc_now()
    result = BatchResult(batch_id=batch_id or uuid4(), received=len(records))

    validated = _validate(records, result)

    resolution = resolve_batch(validated, store=store, chunk_size=chunk_size)
    result.merged.extend(resolution.merged)
    result.rejections.extend(resolution.rejections)

    scored: List[tuple[PendingLead, CanonicalLead]] = []
    for pending in resolution.pending:
        try:
            lead = build_lead(pending, created_at=created_at, source=lead_source, batch_id=result.batch_id)
        except Exception as e:
            logger.error(
                "Failed to score lead",
                extra={"row_number": pending.contact.row_number, "error": str(e)},
            )
            result.rejections.append(_unknown_error(pending.contact.row_number, "Failed to score lead"))
            continue
        scored.append((pending, lead))

    _persist(scored, store, result)

    if result.created:
        try:
            active = list(profiles) if profiles is not None else _load_active_profiles()
        except Exception as e:
            logger.error(
                "Failed to load targeting profiles; routing skipped",
                extra={"batch_id": str(result.batch_id), "error": str(e)},
            )
        else:
            result.routing = route_leads(
                result.created,
                active,
                store=routing_store,
                source=routing_source,
                limits=notification_limits,
                now=created_at,
            )
            result.notifications = dispatch_notifications_sync(
                result.routing.notification_candidates,
                transport,
            )

    result.rejections.sort(key=lambda r: r.row_number)

    if export_rejections:
        result.rejection_log_url = store_rejection_log(result.batch_id, result.rejections, uploader)

    logger.info(
        "Batch processed",
        extra={
            "batch_id": str(result.batch_id),
            "received": result.received,
            "created": len(result.created),
            "merged": result.merged_count,
            "rejected": result.rejected_count,
            "routed": result.routing.routed if result.routing else 0,
        },
    )
    return result


__all__ = [
    "BatchResult",
    "PipelineLeadStore",
    "build_lead",
    "process_contact_batch",
]
