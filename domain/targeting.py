"""
Domain: subscriber targeting profiles and cap accounting.

Contract excerpts implemented here:
- One TargetingProfile per (subscriber, tenant): optional industry allow-list,
  optional geography allow-list (states / cities / postal codes), daily /
  weekly / monthly caps with their current period counters, and a notification
  preference.
- A cap of None or 0 means "no cap" for that period.
- A profile with neither a geography nor an industry filter never matches.
- Counters are reset by an external scheduler; during a routing run they are
  held in a CapTracker scoped to that run and flushed once at the end.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional
from uuid import UUID

from domain.lead import CanonicalLead


@dataclass(frozen=True, slots=True)
class GeographyFilter:
    states: tuple[str, ...] = ()
    cities: tuple[str, ...] = ()
    postal_codes: tuple[str, ...] = ()

    @property
    def is_configured(self) -> bool:
        return bool(self.states or self.cities or self.postal_codes)

    def match(self, lead: CanonicalLead) -> Optional[str]:
        """
        Return the matched geography value, or None.

        Checked in order: state code (case-insensitive), city (case-insensitive),
        exact postal code.
        """

        if lead.state:
            state = lead.state.upper()
            if any(s.upper() == state for s in self.states):
                return lead.state
        if lead.city:
            city = lead.city.lower()
            if any(c.lower() == city for c in self.cities):
                return lead.city
        if lead.postal_code and lead.postal_code in self.postal_codes:
            return lead.postal_code
        return None


@dataclass(frozen=True, slots=True)
class IndustryFilter:
    industries: tuple[str, ...] = ()

    @property
    def is_configured(self) -> bool:
        return bool(self.industries)

    def match(self, lead: CanonicalLead) -> Optional[str]:
        if lead.industry and lead.industry in self.industries:
            return lead.industry
        return None


@dataclass(frozen=True, slots=True)
class CapLimits:
    daily: Optional[int] = None
    weekly: Optional[int] = None
    monthly: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("daily", "weekly", "monthly"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} cap must be >= 0")


@dataclass(frozen=True, slots=True)
class CapCounters:
    daily: int = 0
    weekly: int = 0
    monthly: int = 0

    def reached(self, limits: CapLimits) -> bool:
        """True when any configured cap is already at or above its limit."""

        return any(
            limit and count >= limit
            for count, limit in (
                (self.daily, limits.daily),
                (self.weekly, limits.weekly),
                (self.monthly, limits.monthly),
            )
        )

    def incremented(self) -> "CapCounters":
        return CapCounters(
            daily=self.daily + 1,
            weekly=self.weekly + 1,
            monthly=self.monthly + 1,
        )


@dataclass(frozen=True, slots=True)
class TargetingProfile:
    subscriber_id: UUID
    tenant_id: UUID
    geography: GeographyFilter = GeographyFilter()
    industries: IndustryFilter = IndustryFilter()
    caps: CapLimits = CapLimits()
    counters: CapCounters = CapCounters()
    email_notifications: bool = True
    is_active: bool = True

    # Joined from the subscriber's user record; used for notification requests.
    subscriber_email: Optional[str] = None
    subscriber_name: Optional[str] = None

    @property
    def has_targeting(self) -> bool:
        return self.geography.is_configured or self.industries.is_configured


class CapTracker:
    """
    In-memory cap counters for a single routing run, keyed by subscriber id.

    Created at the start of a run from the profiles' stored counters, passed by
    reference through the run, and discarded afterwards. Never shared between
    runs.
    """

    def __init__(self) -> None:
        self._initial: Dict[UUID, CapCounters] = {}
        self._current: Dict[UUID, CapCounters] = {}

    @classmethod
    def seeded_from(cls, profiles: Iterable[TargetingProfile]) -> "CapTracker":
        tracker = cls()
        for profile in profiles:
            tracker.seed(profile)
        return tracker

    def seed(self, profile: TargetingProfile) -> bool:
        """Seed from a profile; returns False if the subscriber was already seeded."""

        if profile.subscriber_id in self._current:
            return False
        self._initial[profile.subscriber_id] = profile.counters
        self._current[profile.subscriber_id] = profile.counters
        return True

    def __contains__(self, subscriber_id: object) -> bool:
        return subscriber_id in self._current

    def get(self, subscriber_id: UUID) -> CapCounters:
        return self._current[subscriber_id]

    def increment(self, subscriber_id: UUID) -> CapCounters:
        updated = self._current[subscriber_id].incremented()
        self._current[subscriber_id] = updated
        return updated

    def changed(self) -> Iterator[tuple[UUID, CapCounters]]:
        """Subscribers whose counters moved during this run."""

        for subscriber_id, counters in self._current.items():
            if counters != self._initial[subscriber_id]:
                yield subscriber_id, counters

