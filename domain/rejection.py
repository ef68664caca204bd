"""
Domain: rejection records.

Every raw record in a batch ends as exactly one CanonicalLead or exactly one
RejectionRecord. Rejections are values, not exceptions; they are collected per
batch and exported as a flat table (row, reason, field, value, message).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional
from uuid import UUID

# Offending values come from partner uploads; keep exports bounded.
MAX_VALUE_LENGTH = 100


class RejectionReason(str, Enum):
    INVALID_EMAIL = "INVALID_EMAIL"
    INVALID_STATE = "INVALID_STATE"
    INVALID_INDUSTRY = "INVALID_INDUSTRY"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    DUPLICATE_SAME_PARTNER = "DUPLICATE_SAME_PARTNER"
    DUPLICATE_CROSS_PARTNER = "DUPLICATE_CROSS_PARTNER"
    PLATFORM_OWNED_LEAD = "PLATFORM_OWNED_LEAD"
    NO_MATCHING_WORKSPACE = "NO_MATCHING_WORKSPACE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass(frozen=True, slots=True)
class RejectionRecord:
    row_number: int
    reason: RejectionReason
    message: str
    field: Optional[str] = None
    value: Optional[str] = None
    existing_lead_id: Optional[UUID] = None
    existing_partner_id: Optional[UUID] = None

    @classmethod
    def for_field(
        cls,
        row_number: int,
        reason: RejectionReason,
        field: str,
        value: Any,
        message: str,
    ) -> "RejectionRecord":
        text = "" if value is None else str(value)
        return cls(
            row_number=row_number,
            reason=reason,
            message=message,
            field=field,
            value=text[:MAX_VALUE_LENGTH],
        )

    def as_row(self) -> tuple[str, str, str, str, str]:
        """Flat export row: row number, reason code, field, value, message."""

        return (
            str(self.row_number),
            self.reason.value,
            self.field or "",
            self.value or "",
            self.message,
        )
