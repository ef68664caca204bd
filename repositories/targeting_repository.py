"""
Targeting repository (persistence).

Reads active subscriber targeting profiles across all tenants and writes back
period counters after a routing run. Counter resets at period boundaries are
owned by an external scheduler, not by this module.
"""

from __future__ import annotations

from typing import Any, List, Mapping
from uuid import UUID

from domain.targeting import CapCounters, CapLimits, GeographyFilter, IndustryFilter, TargetingProfile
from domain.time import to_iso_utc, utc_now
from repositories.client import get_client, raise_for_error, rows_of

_TARGETING_TABLE: str = "user_targeting"

_PROFILE_COLUMNS = (
    "user_id, workspace_id, target_industries, target_states, target_cities, target_zips, "
    "daily_lead_cap, daily_lead_count, weekly_lead_cap, weekly_lead_count, "
    "monthly_lead_cap, monthly_lead_count, email_notifications, is_active, "
    "users!inner (id, email, full_name)"
)


def _as_tuple(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(str(v) for v in value if v)


def _optional_int(value: Any) -> int | None:
    return int(value) if value not in (None, "") else None


def _joined_user(row: Mapping[str, Any]) -> Mapping[str, Any]:
    # PostgREST returns an embedded object or a single-element list depending on
    # the relationship cardinality.
    users = row.get("users")
    if isinstance(users, list):
        return users[0] if users else {}
    return users or {}


def _row_to_profile(row: Mapping[str, Any]) -> TargetingProfile:
    user = _joined_user(row)
    return TargetingProfile(
        subscriber_id=UUID(str(row["user_id"])),
        tenant_id=UUID(str(row["workspace_id"])),
        geography=GeographyFilter(
            states=_as_tuple(row.get("target_states")),
            cities=_as_tuple(row.get("target_cities")),
            postal_codes=_as_tuple(row.get("target_zips")),
        ),
        industries=IndustryFilter(industries=_as_tuple(row.get("target_industries"))),
        caps=CapLimits(
            daily=_optional_int(row.get("daily_lead_cap")),
            weekly=_optional_int(row.get("weekly_lead_cap")),
            monthly=_optional_int(row.get("monthly_lead_cap")),
        ),
        counters=CapCounters(
            daily=int(row.get("daily_lead_count") or 0),
            weekly=int(row.get("weekly_lead_count") or 0),
            monthly=int(row.get("monthly_lead_count") or 0),
        ),
        email_notifications=bool(row.get("email_notifications", True)),
        is_active=bool(row.get("is_active", True)),
        subscriber_email=user.get("email"),
        subscriber_name=user.get("full_name"),
    )


def list_active_profiles() -> List[TargetingProfile]:
    """All active targeting profiles, platform-wide (every tenant)."""

    response = (
        get_client()
        .table(_TARGETING_TABLE)
        .select(_PROFILE_COLUMNS)
        .eq("is_active", True)
        .execute()
    )
    raise_for_error(response, "list targeting profiles")
    return [_row_to_profile(row) for row in rows_of(response)]


def update_profile_counters(profile: TargetingProfile, counters: CapCounters) -> None:
    """Write a subscriber's counters for one (subscriber, tenant) profile."""

    response = (
        get_client()
        .table(_TARGETING_TABLE)
        .update(
            {
                "daily_lead_count": counters.daily,
                "weekly_lead_count": counters.weekly,
                "monthly_lead_count": counters.monthly,
                "updated_at": to_iso_utc(utc_now(), name="updated_at"),
            }
        )
        .eq("user_id", str(profile.subscriber_id))
        .eq("workspace_id", str(profile.tenant_id))
        .execute()
    )
    raise_for_error(response, "update targeting counters")


__all__ = ["list_active_profiles", "update_profile_counters"]
