"""
Domain: raw and validated contact records.

RawContactRecord is partner-supplied (attacker-controlled) input exactly as it
arrived from ingestion. It is transient and never persisted as-is.
ValidatedContact is the same record after schema validation and state/industry
normalization; only validated contacts reach identity resolution.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

from domain.identity import compute_fingerprint
from domain.lead import SeniorityLevel


@dataclass(frozen=True, slots=True)
class RawContactRecord:
    row_number: int
    partner_id: Optional[UUID]
    tenant_id: Optional[UUID]

    email: Optional[str] = None
    phone: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    job_title: Optional[str] = None
    seniority_level: Optional[str] = None
    company_name: Optional[str] = None
    company_domain: Optional[str] = None
    company_size: Optional[str] = None
    company_employee_count: Optional[Any] = None
    industry: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    linkedin_url: Optional[str] = None

    def payload(self) -> dict[str, Any]:
        """Field values only (no row/attribution metadata), for schema validation."""

        return {
            "email": self.email,
            "phone": self.phone,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "job_title": self.job_title,
            "seniority_level": self.seniority_level,
            "company_name": self.company_name,
            "company_domain": self.company_domain,
            "company_size": self.company_size,
            "company_employee_count": self.company_employee_count,
            "industry": self.industry,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "linkedin_url": self.linkedin_url,
        }


@dataclass(frozen=True, slots=True)
class ValidatedContact:
    row_number: int
    partner_id: Optional[UUID]
    tenant_id: UUID

    email: str
    first_name: str
    last_name: str
    state: str  # two-letter US postal code
    industry: str  # canonical industry label

    phone: Optional[str] = None
    job_title: Optional[str] = None
    seniority: Optional[SeniorityLevel] = None
    company_name: Optional[str] = None
    company_domain: Optional[str] = None
    company_size: Optional[str] = None
    employee_count: Optional[int] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    linkedin_url: Optional[str] = None

    @property
    def fingerprint(self) -> str:
        return compute_fingerprint(self.email, self.company_domain, self.phone)

    def mergeable_values(self) -> dict[str, Optional[str]]:
        """Values offered to an existing same-owner lead (only empty fields take them)."""

        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "job_title": self.job_title,
            "company_name": self.company_name,
            "company_domain": self.company_domain,
            "industry": self.industry,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "linkedin_url": self.linkedin_url,
        }
