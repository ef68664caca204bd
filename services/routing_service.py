"""
Lead routing service.

Matches a batch of canonical leads against every active targeting profile on
the platform (all tenants) and creates Assignment rows.

Per (lead, profile) pair:
1. Skip when any cap is already reached (in-memory CapTracker for this run).
2. Geography filter, if configured, must match (state, city, postal code).
   Industry filter, if configured, must match.
3. A profile with neither filter never matches.
4. Insert the Assignment optimistically. A (lead, subscriber) unique violation
   is an "already assigned" no-op. A new row increments the subscriber's
   counters.

Counters are written back once at the end of the run, and only for
subscribers whose counters changed.

Each new assignment feeds two notification streams:
- workspace: one per (tenant, lead), at most `per_tenant` per tenant.
- email: one per (subscriber, lead) for opted-in subscribers with an address,
  at most `per_run` in total.
Matches beyond the bounds are still assigned.

Infrastructure failures on a single pair are logged and skipped; the run
continues. Re-running a batch is safe because of the unique constraint.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Hashable, List, Optional, Protocol, Sequence, Set
from uuid import UUID

from domain.assignment import Assignment
from domain.lead import CanonicalLead
from domain.notification import NotificationChannel, NotificationRequest
from domain.targeting import CapCounters, CapTracker, TargetingProfile
from domain.time import utc_now

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "marketplace"


class RoutingStore(Protocol):
    def insert_assignment(self, assignment: Assignment) -> bool: ...

    def update_profile_counters(self, profile: TargetingProfile, counters: CapCounters) -> None: ...


class SupabaseRoutingStore:
    """Routing persistence backed by the assignment and targeting repositories."""

    def insert_assignment(self, assignment: Assignment) -> bool:
        from repositories.assignment_repository import insert_assignment

        return insert_assignment(assignment)

    def update_profile_counters(self, profile: TargetingProfile, counters: CapCounters) -> None:
        from repositories.targeting_repository import update_profile_counters

        update_profile_counters(profile, counters)


@dataclass(frozen=True, slots=True)
class NotificationLimits:
    """Workspace notifications are capped per tenant; emails are capped per run."""

    per_tenant: int = 5
    per_run: int = 20

    def __post_init__(self) -> None:
        if self.per_tenant < 0 or self.per_run < 0:
            raise ValueError("notification limits must be >= 0")


@dataclass(slots=True)
class RoutingResult:
    assignments: List[Assignment] = field(default_factory=list)
    already_assigned: int = 0
    failed_pairs: List[tuple[UUID, UUID]] = field(default_factory=list)
    workspace_notifications: List[NotificationRequest] = field(default_factory=list)
    email_notifications: List[NotificationRequest] = field(default_factory=list)
    flushed: List[TargetingProfile] = field(default_factory=list)

    @property
    def routed(self) -> int:
        return len(self.assignments)

    @property
    def notification_candidates(self) -> List[NotificationRequest]:
        return self.workspace_notifications + self.email_notifications


class _CandidateCollector:
    """
    One notification stream: deduplicated on `key`, bounded per group and per run.

    A bound of None means unbounded.
    """

    def __init__(
        self,
        key: Callable[[NotificationRequest], Hashable],
        *,
        per_group: Optional[int] = None,
        per_run: Optional[int] = None,
    ) -> None:
        self._key = key
        self._per_group_limit = per_group
        self._per_run_limit = per_run
        self._per_group: Dict[UUID, int] = defaultdict(int)
        self._seen: Set[Hashable] = set()
        self.candidates: List[NotificationRequest] = []

    def offer(self, request: NotificationRequest) -> bool:
        key = self._key(request)
        if key in self._seen:
            return False
        if self._per_run_limit is not None and len(self.candidates) >= self._per_run_limit:
            return False
        if self._per_group_limit is not None and self._per_group[request.tenant_id] >= self._per_group_limit:
            return False

        self._seen.add(key)
        self._per_group[request.tenant_id] += 1
        self.candidates.append(request)
        return True


def _workspace_collector(limits: NotificationLimits) -> _CandidateCollector:
    return _CandidateCollector(lambda r: (r.tenant_id, r.lead_id), per_group=limits.per_tenant)


def _email_collector(limits: NotificationLimits) -> _CandidateCollector:
    return _CandidateCollector(lambda r: (r.subscriber_id, r.lead_id), per_run=limits.per_run)


def match_profile(lead: CanonicalLead, profile: TargetingProfile) -> Optional[tuple[Optional[str], Optional[str]]]:
    """
    Evaluate the targeting filters for one pair (caps are checked separately).

    Returns (matched_industry, matched_geo) on a match, or None.
    """

    if not profile.has_targeting:
        return None

    matched_geo = None
    if profile.geography.is_configured:
        matched_geo = profile.geography.match(lead)
        if matched_geo is None:
            return None

    matched_industry = None
    if profile.industries.is_configured:
        matched_industry = profile.industries.match(lead)
        if matched_industry is None:
            return None

    return matched_industry, matched_geo


def _seed_tracker(profiles: Sequence[TargetingProfile]) -> CapTracker:
    tracker = CapTracker()
    for profile in profiles:
        if not tracker.seed(profile):
            logger.warning(
                "Subscriber has several targeting profiles; sharing one cap tracker",
                extra={"subscriber_id": str(profile.subscriber_id), "tenant_id": str(profile.tenant_id)},
            )
    return tracker


def _flush_counters(
    tracker: CapTracker,
    profiles: Sequence[TargetingProfile],
    store: RoutingStore,
) -> List[TargetingProfile]:
    by_subscriber: Dict[UUID, List[TargetingProfile]] = defaultdict(list)
    for profile in profiles:
        by_subscriber[profile.subscriber_id].append(profile)

    flushed: List[TargetingProfile] = []
    for subscriber_id, counters in tracker.changed():
        for profile in by_subscriber[subscriber_id]:
            try:
                store.update_profile_counters(profile, counters)
            except Exception as e:
                logger.error(
                    "Failed to write back cap counters",
                    extra={"subscriber_id": str(subscriber_id), "tenant_id": str(profile.tenant_id), "error": str(e)},
                )
                continue
            flushed.append(profile)
    return flushed


def route_leads(
    leads: Sequence[CanonicalLead],
    profiles: Sequence[TargetingProfile],
    *,
    store: Optional[RoutingStore] = None,
    source: str = DEFAULT_SOURCE,
    limits: NotificationLimits = NotificationLimits(),
    now: Optional[datetime] = None,
) -> RoutingResult:
    """
    Route a batch of leads to matching subscribers.

    The cap tracker lives only for this call. Inactive profiles are ignored.
    """

    store = store or SupabaseRoutingStore()
    created_at = now or utc_now()
    active = [p for p in profiles if p.is_active]
    tracker = _seed_tracker(active)
    workspace = _workspace_collector(limits)
    email = _email_collector(limits)
    result = RoutingResult()

    for lead in leads:
        for profile in active:
            if tracker.get(profile.subscriber_id).reached(profile.caps):
                continue

            match = match_profile(lead, profile)
            if match is None:
                continue
            matched_industry, matched_geo = match

            assignment = Assignment(
                lead_id=lead.lead_id,
                subscriber_id=profile.subscriber_id,
                tenant_id=profile.tenant_id,
                source=source,
                created_at=created_at,
                matched_industry=matched_industry,
                matched_geo=matched_geo,
            )

            try:
                created = store.insert_assignment(assignment)
            except Exception as e:
                logger.warning(
                    "Assignment insert failed; skipping pair",
                    extra={"lead_id": str(lead.lead_id), "subscriber_id": str(profile.subscriber_id), "error": str(e)},
                )
                result.failed_pairs.append(assignment.key)
                continue

            if not created:
                result.already_assigned += 1
                continue

            tracker.increment(profile.subscriber_id)
            result.assignments.append(assignment)

            workspace.offer(
                NotificationRequest.for_match(
                    channel=NotificationChannel.WORKSPACE,
                    lead=lead,
                    tenant_id=profile.tenant_id,
                    matched_industry=matched_industry,
                    matched_geo=matched_geo,
                    source=source,
                )
            )

            if profile.email_notifications and profile.subscriber_email:
                email.offer(
                    NotificationRequest.for_match(
                        channel=NotificationChannel.EMAIL,
                        lead=lead,
                        tenant_id=profile.tenant_id,
                        matched_industry=matched_industry,
                        matched_geo=matched_geo,
                        source=source,
                        subscriber_id=profile.subscriber_id,
                        recipient_email=profile.subscriber_email,
                        recipient_name=profile.subscriber_name,
                    )
                )

    result.flushed = _flush_counters(tracker, active, store)
    result.workspace_notifications = workspace.candidates
    result.email_notifications = email.candidates

    logger.info(
        "Routing run complete",
        extra={
            "leads": len(leads),
            "profiles": len(active),
            "routed": result.routed,
            "already_assigned": result.already_assigned,
            "failed_pairs": len(result.failed_pairs),
            "workspace_notifications": len(result.workspace_notifications),
            "email_notifications": len(result.email_notifications),
        },
    )
    return result


__all__ = [
    "DEFAULT_SOURCE",
    "RoutingStore",
    "SupabaseRoutingStore",
    "NotificationLimits",
    "RoutingResult",
    "match_profile",
    "route_leads",
]
