"""
Assignment repository (persistence).

Inserts user_lead_assignments rows. The table carries a unique constraint on
(lead_id, user_id); that constraint is the concurrency-control primitive for
routing. Inserts are attempted optimistically and a unique violation is
reported as "already assigned" rather than raised. Do not add a
pre-check-then-insert here: it reopens the race the constraint closes.
"""

from __future__ import annotations

from typing import Any, List, Mapping
from uuid import UUID

from postgrest.exceptions import APIError

from domain.assignment import Assignment
from domain.time import parse_utc_datetime, to_iso_utc
from repositories.client import get_client, is_unique_violation, raise_for_error, rows_of

_ASSIGNMENTS_TABLE: str = "user_lead_assignments"


def _assignment_to_row(assignment: Assignment) -> dict[str, Any]:
    return {
        "lead_id": str(assignment.lead_id),
        "user_id": str(assignment.subscriber_id),
        "workspace_id": str(assignment.tenant_id),
        "matched_industry": assignment.matched_industry,
        "matched_geo": assignment.matched_geo,
        "source": assignment.source,
        "status": assignment.status,
        "created_at": to_iso_utc(assignment.created_at, name="created_at"),
    }


def _row_to_assignment(row: Mapping[str, Any]) -> Assignment:
    return Assignment(
        lead_id=UUID(str(row["lead_id"])),
        subscriber_id=UUID(str(row["user_id"])),
        tenant_id=UUID(str(row["workspace_id"])),
        source=str(row.get("source") or ""),
        created_at=parse_utc_datetime(row["created_at"]),
        matched_industry=row.get("matched_industry"),
        matched_geo=row.get("matched_geo"),
        status=str(row.get("status") or "new"),
    )


def insert_assignment(assignment: Assignment) -> bool:
    """
    Insert an assignment.

    Returns:
    - True if a new row was created
    - False if (lead_id, user_id) was already assigned (unique violation)

    Raises:
    - RuntimeError for any other database failure
    """

    try:
        response = (
            get_client()
            .table(_ASSIGNMENTS_TABLE)
            .insert(_assignment_to_row(assignment))
            .execute()
        )
    except APIError as e:
        if is_unique_violation(e):
            return False
        raise RuntimeError(f"Failed to insert assignment: {e}") from e

    error = getattr(response, "error", None)
    if error:
        if is_unique_violation(error):
            return False
        raise RuntimeError(f"Failed to insert assignment: {error}")
    return True


def list_assignments_for_lead(lead_id: UUID) -> List[Assignment]:
    response = (
        get_client()
        .table(_ASSIGNMENTS_TABLE)
        .select("*")
        .eq("lead_id", str(lead_id))
        .execute()
    )
    raise_for_error(response, "list assignments")
    return [_row_to_assignment(row) for row in rows_of(response)]


__all__ = ["insert_assignment", "list_assignments_for_lead"]
