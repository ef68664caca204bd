"""
Partner repository (persistence).

Resolves which tenant (workspace) a supplying partner is scoped to. Used by the
same-tenant gaming check at acquisition time.
"""

from __future__ import annotations

from typing import Dict, Sequence
from uuid import UUID

from repositories.client import get_client, raise_for_error, rows_of

_PARTNERS_TABLE: str = "partners"


def get_partner_tenant_ids(partner_ids: Sequence[UUID]) -> Dict[UUID, UUID]:
    """
    Map partner id -> tenant id.

    Partners without a tenant are absent from the result.
    """

    if not partner_ids:
        return {}

    response = (
        get_client()
        .table(_PARTNERS_TABLE)
        .select("id, workspace_id")
        .in_("id", sorted({str(p) for p in partner_ids}))
        .execute()
    )
    raise_for_error(response, "fetch partner tenants")

    return {
        UUID(str(row["id"])): UUID(str(row["workspace_id"]))
        for row in rows_of(response)
        if row.get("workspace_id")
    }


__all__ = ["get_partner_tenant_ids"]
