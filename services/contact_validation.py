"""
Raw contact validation.

Turns a partner-supplied RawContactRecord into either a ValidatedContact or a
RejectionRecord. Bad input is the common case here, so nothing in this module
raises for it; every outcome is a value.

Checks, in order:
1. Uploader tenant present                  -> NO_MATCHING_WORKSPACE
2. Required fields present                  -> MISSING_REQUIRED_FIELD
3. Schema constraints (lengths, enums, ints) -> VALIDATION_ERROR
4. Email format                             -> INVALID_EMAIL
5. US state code                            -> INVALID_STATE
6. Known industry                           -> INVALID_INDUSTRY
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from domain.contact import RawContactRecord, ValidatedContact
from domain.lead import SeniorityLevel
from domain.rejection import RejectionReason, RejectionRecord

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: tuple[str, ...] = ("first_name", "last_name", "email", "state", "industry")

VALID_STATES = frozenset({
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
})

INDUSTRY_ALIASES: dict[str, str] = {
    "hvac": "HVAC",
    "roofing": "Roofing",
    "plumbing": "Plumbing",
    "electrical": "Electrical",
    "solar": "Solar",
    "real estate": "Real Estate",
    "real_estate": "Real Estate",
    "realestate": "Real Estate",
    "insurance": "Insurance",
    "landscaping": "Landscaping",
    "pest control": "Pest Control",
    "cleaning": "Cleaning Services",
    "auto": "Auto Services",
    "legal": "Legal Services",
    "financial": "Financial Services",
    "healthcare": "Healthcare",
    "technology": "Technology",
    "manufacturing": "Manufacturing",
    "retail": "Retail",
    "construction": "Construction",
    "education": "Education",
    "hospitality": "Hospitality",
    "transportation": "Transportation",
    "utilities": "Utilities",
    "telecommunications": "Telecommunications",
    "media": "Media & Entertainment",
    "government": "Government",
    "nonprofit": "Non-Profit",
    "professional_services": "Professional Services",
    "consulting": "Consulting",
}

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_THROWAWAY_EMAIL_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^test@",
        r"^fake@",
        r"^example@",
        r"^noreply@",
        r"^no-reply@",
        r"@example\.com$",
        r"@test\.com$",
        r"\.invalid$",
        r"\.(test|local|localhost)$",
    )
)


class ContactRowSchema(BaseModel):
    """Schema constraints for a partner-supplied contact row."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=1, max_length=255)
    state: str = Field(min_length=1, max_length=50)
    industry: str = Field(min_length=1, max_length=100)

    phone: Optional[str] = Field(default=None, max_length=50)
    company_name: Optional[str] = Field(default=None, max_length=200)
    company_domain: Optional[str] = Field(default=None, max_length=200)
    job_title: Optional[str] = Field(default=None, max_length=200)
    seniority_level: Optional[SeniorityLevel] = None
    company_size: Optional[str] = Field(default=None, max_length=50)
    company_employee_count: Optional[int] = Field(default=None, ge=0)
    city: Optional[str] = Field(default=None, max_length=100)
    postal_code: Optional[str] = Field(default=None, max_length=20)
    linkedin_url: Optional[str] = Field(default=None, max_length=500)

    @field_validator(
        "phone",
        "company_name",
        "company_domain",
        "job_title",
        "seniority_level",
        "company_size",
        "company_employee_count",
        "city",
        "postal_code",
        "linkedin_url",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


def is_email_format_valid(email: str) -> bool:
    if not _EMAIL_PATTERN.match(email):
        return False
    return not any(pattern.search(email) for pattern in _THROWAWAY_EMAIL_PATTERNS)


def normalize_state(state: Optional[str]) -> Optional[str]:
    normalized = (state or "").strip().upper()
    return normalized if normalized in VALID_STATES else None


def normalize_industry(industry: Optional[str]) -> Optional[str]:
    return INDUSTRY_ALIASES.get((industry or "").strip().lower())


def _schema_rejection(record: RawContactRecord, error: ValidationError) -> RejectionRecord:
    first = error.errors()[0]
    loc = first.get("loc") or ("",)
    field = str(loc[0])
    return RejectionRecord.for_field(
        record.row_number,
        RejectionReason.VALIDATION_ERROR,
        field,
        record.payload().get(field),
        f"{field}: {first.get('msg', 'validation failed')}",
    )


def validate_contact(record: RawContactRecord) -> Union[ValidatedContact, RejectionRecord]:
    """
    Validate one raw record.

    Returns a ValidatedContact (state and industry canonicalized, email
    lowercased and trimmed) or a RejectionRecord.
    """

    if record.tenant_id is None:
        return RejectionRecord(
            row_number=record.row_number,
            reason=RejectionReason.NO_MATCHING_WORKSPACE,
            message="Upload is not associated with a workspace",
        )

    payload = record.payload()
    for name in REQUIRED_FIELDS:
        value = payload.get(name)
        if value is None or not str(value).strip():
            return RejectionRecord.for_field(
                record.row_number,
                RejectionReason.MISSING_REQUIRED_FIELD,
                name,
                value,
                f"Missing required field: {name}",
            )

    try:
        row = ContactRowSchema.model_validate(payload)
    except ValidationError as e:
        return _schema_rejection(record, e)

    email = row.email.lower()
    if not is_email_format_valid(email):
        return RejectionRecord.for_field(
            record.row_number,
            RejectionReason.INVALID_EMAIL,
            "email",
            row.email,
            f"Invalid email: {row.email}",
        )

    state = normalize_state(row.state)
    if state is None:
        return RejectionRecord.for_field(
            record.row_number,
            RejectionReason.INVALID_STATE,
            "state",
            row.state,
            f"Invalid state: {row.state}",
        )

    industry = normalize_industry(row.industry)
    if industry is None:
        return RejectionRecord.for_field(
            record.row_number,
            RejectionReason.INVALID_INDUSTRY,
            "industry",
            row.industry,
            f"Invalid industry: {row.industry}",
        )

    return ValidatedContact(
        row_number=record.row_number,
        partner_id=record.partner_id,
        tenant_id=record.tenant_id,
        email=email,
        first_name=row.first_name,
        last_name=row.last_name,
        state=state,
        industry=industry,
        phone=row.phone,
        job_title=row.job_title,
        seniority=row.seniority_level,
        company_name=row.company_name,
        company_domain=row.company_domain.lower() if row.company_domain else None,
        company_size=row.company_size,
        employee_count=row.company_employee_count,
        city=row.city,
        postal_code=row.postal_code,
        linkedin_url=row.linkedin_url,
    )


__all__ = [
    "ContactRowSchema",
    "is_email_format_valid",
    "normalize_state",
    "normalize_industry",
    "validate_contact",
]
