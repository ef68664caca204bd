"""
Lead scoring service (pure).

Computes the two quality metrics stored on every CanonicalLead and the
marketplace price derived from them:

- Intent score (1-100): seniority + company size + email quality + phone +
  profile completeness, summed then clamped.
- Freshness score (15-100): sigmoid decay on lead age in days.
- Marketplace price: base price scaled by intent and freshness multipliers,
  plus flat bonuses for a phone number and a verified (exactly "valid") email.

No I/O and no shared state; safe to call from any number of workers.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from domain.identity import extract_email_domain
from domain.lead import CanonicalLead, SeniorityLevel, VerificationStatus
from domain.notification import intent_tier
from domain.seniority import infer_seniority
from domain.time import age_in_days

SENIORITY_POINTS: dict[SeniorityLevel, int] = {
    SeniorityLevel.C_SUITE: 25,
    SeniorityLevel.VP: 20,
    SeniorityLevel.DIRECTOR: 15,
    SeniorityLevel.MANAGER: 10,
    SeniorityLevel.IC: 5,
    SeniorityLevel.UNKNOWN: 5,
}

COMPANY_SIZE_POINTS: dict[str, int] = {
    "1-10": 5,
    "11-50": 10,
    "51-200": 15,
    "201-500": 20,
    "500+": 25,
}
UNKNOWN_COMPANY_SIZE_POINTS = 10

PHONE_POINTS = 20
COMPLETENESS_POINTS_PER_FIELD = 3

NO_EMAIL_POINTS = -10
GENERIC_EMAIL_POINTS = -5
PERSONAL_EMAIL_POINTS = 0
COMPANY_EMAIL_POINTS = 15
WORK_EMAIL_POINTS = 10

MIN_INTENT_SCORE = 1
MAX_INTENT_SCORE = 100

GENERIC_EMAIL_PATTERN = re.compile(
    r"^(info|contact|hello|admin|support|sales|office|mail|inquir\w*|general)@",
    re.IGNORECASE,
)
PERSONAL_EMAIL_DOMAINS = frozenset({
    "gmail.com",
    "yahoo.com",
    "hotmail.com",
    "outlook.com",
    "aol.com",
    "icloud.com",
    "live.com",
    "msn.com",
    "protonmail.com",
})

BASE_PRICE = Decimal("0.05")
PHONE_PRICE_BONUS = Decimal("0.03")
VERIFIED_PRICE_BONUS = Decimal("0.02")
PRICE_QUANTUM = Decimal("0.0001")

_URL_PREFIX = re.compile(r"^(https?://)?(www\.)?", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class FreshnessParams:
    k: float = 0.15
    midpoint_days: float = 30.0
    floor: int = 15


@dataclass(frozen=True, slots=True)
class ScoreFactor:
    name: str
    points: int
    max_points: int
    description: str


@dataclass(frozen=True, slots=True)
class IntentScore:
    total: int
    factors: tuple[ScoreFactor, ...]

    @property
    def tier(self) -> str:
        return intent_tier(self.total)


@dataclass(frozen=True, slots=True)
class LeadScores:
    intent: IntentScore
    freshness: int
    price: Decimal

    @property
    def intent_score(self) -> int:
        return self.intent.total


def _strip_url_prefix(domain: str) -> str:
    return _URL_PREFIX.sub("", domain.strip().lower()).rstrip("/")


def seniority_points(seniority: Optional[SeniorityLevel], job_title: Optional[str]) -> tuple[int, SeniorityLevel]:
    level = seniority
    if level is None:
        level = infer_seniority(job_title)
    return SENIORITY_POINTS[level], level


def company_size_points(company_size: Optional[str], employee_count: Optional[int]) -> int:
    if company_size:
        bracket = COMPANY_SIZE_POINTS.get(company_size.strip())
        if bracket is not None:
            return bracket

    if not employee_count:
        return UNKNOWN_COMPANY_SIZE_POINTS
    if employee_count > 500:
        return 25
    if employee_count > 200:
        return 20
    if employee_count > 50:
        return 15
    if employee_count > 10:
        return 10
    return 5


def email_quality_points(email: Optional[str], company_domain: Optional[str]) -> tuple[int, str]:
    if not email or not email.strip():
        return NO_EMAIL_POINTS, "No email"

    address = email.strip().lower()
    if GENERIC_EMAIL_PATTERN.match(address):
        return GENERIC_EMAIL_POINTS, "Generic inbox"

    domain = extract_email_domain(address)
    if domain in PERSONAL_EMAIL_DOMAINS:
        return PERSONAL_EMAIL_POINTS, "Personal email"

    if company_domain and domain == _strip_url_prefix(company_domain):
        return COMPANY_EMAIL_POINTS, "Email matches company domain"
    return WORK_EMAIL_POINTS, "Work email"


def completeness_points(
    job_title: Optional[str],
    city: Optional[str],
    state: Optional[str],
    company_domain: Optional[str],
    linkedin_url: Optional[str],
) -> tuple[int, int]:
    present = sum(1 for value in (job_title, city, state, company_domain, linkedin_url) if value)
    return present * COMPLETENESS_POINTS_PER_FIELD, present


def calculate_intent_score(
    *,
    email: Optional[str],
    phone: Optional[str] = None,
    job_title: Optional[str] = None,
    seniority: Optional[SeniorityLevel] = None,
    company_domain: Optional[str] = None,
    company_size: Optional[str] = None,
    employee_count: Optional[int] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    linkedin_url: Optional[str] = None,
) -> IntentScore:
    """
    Sum the intent factors and clamp the total to [1, 100].

    The returned breakdown lists every factor, including those that scored 0.
    """

    factors: List[ScoreFactor] = []

    points, level = seniority_points(seniority, job_title)
    factors.append(ScoreFactor("seniority", points, 25, f"Seniority: {level.value}"))

    points = company_size_points(company_size, employee_count)
    factors.append(ScoreFactor("company_size", points, 25, f"Company size: {company_size or employee_count or 'unknown'}"))

    points, description = email_quality_points(email, company_domain)
    factors.append(ScoreFactor("email_quality", points, COMPANY_EMAIL_POINTS, description))

    has_phone = bool(phone and phone.strip())
    factors.append(
        ScoreFactor(
            "phone",
            PHONE_POINTS if has_phone else 0,
            PHONE_POINTS,
            "Phone present" if has_phone else "No phone",
        )
    )

    points, present = completeness_points(job_title, city, state, company_domain, linkedin_url)
    factors.append(ScoreFactor("completeness", points, 5 * COMPLETENESS_POINTS_PER_FIELD, f"{present}/5 profile fields"))

    raw_total = sum(f.points for f in factors)
    total = max(MIN_INTENT_SCORE, min(MAX_INTENT_SCORE, raw_total))
    return IntentScore(total=total, factors=tuple(factors))


def calculate_freshness_score(
    created_at: datetime,
    as_of: datetime,
    params: FreshnessParams = FreshnessParams(),
) -> int:
    """
    100 / (1 + e^(k * (age_days - midpoint))), rounded, never below the floor.

    Non-increasing in age for fixed params.
    """

    age = age_in_days(created_at, as_of)
    # math.exp overflows a float past ~709.
    exponent = min(params.k * (age - params.midpoint_days), 700.0)
    raw = 100.0 / (1.0 + math.exp(exponent))
    score = int(math.floor(raw + 0.5))
    return max(params.floor, min(100, score))


def freshness_label(score: int) -> str:
    if score >= 70:
        return "fresh"
    if score >= 30:
        return "recent"
    return "stale"


def intent_multiplier(intent_score: int) -> Decimal:
    if intent_score >= 67:
        return Decimal("2.5")
    if intent_score >= 34:
        return Decimal("1.5")
    return Decimal("1.0")


def freshness_multiplier(freshness_score: int) -> Decimal:
    if freshness_score >= 80:
        return Decimal("1.5")
    if freshness_score < 30:
        return Decimal("0.5")
    return Decimal("1.0")


def calculate_marketplace_price(
    intent_score: int,
    freshness_score: int,
    *,
    has_phone: bool,
    verification_status: VerificationStatus,
    base_price: Decimal = BASE_PRICE,
) -> Decimal:
    """
    Price a lead for the marketplace.

    Only an exactly-valid email earns the verification bonus; catch_all,
    risky and unknown price the same.
    """

    price = base_price * intent_multiplier(intent_score) * freshness_multiplier(freshness_score)
    if has_phone:
        price += PHONE_PRICE_BONUS
    if verification_status is VerificationStatus.VALID:
        price += VERIFIED_PRICE_BONUS

    price = price.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)
    return max(price, Decimal("0"))


def score_lead(
    lead: CanonicalLead,
    as_of: datetime,
    freshness_params: FreshnessParams = FreshnessParams(),
) -> LeadScores:
    intent = calculate_intent_score(
        email=lead.email,
        phone=lead.phone,
        job_title=lead.job_title,
        seniority=lead.seniority,
        company_domain=lead.company_domain,
        company_size=lead.company_size,
        employee_count=lead.employee_count,
        city=lead.city,
        state=lead.state,
        linkedin_url=lead.linkedin_url,
    )
    freshness = calculate_freshness_score(lead.created_at, as_of, freshness_params)
    price = calculate_marketplace_price(
        intent.total,
        freshness,
        has_phone=bool(lead.phone),
        verification_status=lead.verification_status,
    )
    return LeadScores(intent=intent, freshness=freshness, price=price)


def apply_scores(
    lead: CanonicalLead,
    as_of: datetime,
    freshness_params: FreshnessParams = FreshnessParams(),
) -> CanonicalLead:
    """Return a copy of the lead carrying its computed scores and price."""

    scores = score_lead(lead, as_of, freshness_params)
    seniority = lead.seniority
    if seniority is None:
        seniority = infer_seniority(lead.job_title)
    return replace(
        lead,
        seniority=seniority,
        intent_score=scores.intent_score,
        freshness_score=scores.freshness,
        marketplace_price=scores.price,
    )


__all__ = [
    "FreshnessParams",
    "ScoreFactor",
    "IntentScore",
    "LeadScores",
    "calculate_intent_score",
    "calculate_freshness_score",
    "calculate_marketplace_price",
    "freshness_label",
    "score_lead",
    "apply_scores",
]
