"""
Domain: seniority inference from job titles.

An explicit, ordered rule table (first match wins). Each rule is a word-boundary
keyword pattern mapped to a SeniorityLevel. Titles matching no rule are
individual contributors; a missing title is unknown.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Pattern

from domain.lead import SeniorityLevel


@dataclass(frozen=True, slots=True)
class SeniorityRule:
    pattern: Pattern[str]
    level: SeniorityLevel


def _rule(keywords: str, level: SeniorityLevel) -> SeniorityRule:
    return SeniorityRule(re.compile(rf"\b({keywords})\b"), level)


SENIORITY_RULES: tuple[SeniorityRule, ...] = (
    _rule("ceo|cto|cfo|coo|cmo|cio|chief|(?<!vice[ -])president|founder|owner", SeniorityLevel.C_SUITE),
    _rule("vp|vice[ -]president|evp|svp", SeniorityLevel.VP),
    _rule("director|head of", SeniorityLevel.DIRECTOR),
    _rule("manager|lead|supervisor|team lead", SeniorityLevel.MANAGER),
)


def infer_seniority(
    title: Optional[str],
    rules: tuple[SeniorityRule, ...] = SENIORITY_RULES,
) -> SeniorityLevel:
    if not title:
        return SeniorityLevel.UNKNOWN

    normalized = title.lower()
    for rule in rules:
        if rule.pattern.search(normalized):
            return rule.level
    return SeniorityLevel.IC
