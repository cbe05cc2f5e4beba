"""
Lease assessment metrics shown on the assessment page.

Everything here is a pure function of the reconciled insights; the
renderer only draws what ``compute_assessment`` returns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

from analyzer.app.schemas.analysis import Insight, SeverityTier

SERIOUS_ISSUE_TERMS: Tuple[str, ...] = (
    # liability
    "all injuries regardless of cause",
    "tenant liable for all damage",
    "responsible for all repairs",
    "disclaims all liability",
    "tenant responsible for structural",
    "unlimited liability",
    "liable regardless of fault",
    "all costs regardless of cause",
    # statutory compliance
    "does not comply with",
    "contrary to tenant fees act",
    "violates housing act",
    "illegal clause",
    "prohibited fee",
    "unlawful term",
    "not compliant with",
    "breach of tenant rights",
    "unenforceable clause",
    "deposit not protected",
    "non-compliance with deposit protection",
    # unfair terms
    "tenant waives all rights",
    "tenant cannot claim",
    "no compensation",
    "cannot withhold rent",
    "unreasonable penalty",
    "disproportionate fee",
    "excessive charge",
    "unfair burden",
)

# Extra wording that marks a warning as a legal issue in its own right
LEGAL_ISSUE_TERMS: Tuple[str, ...] = (
    "illegal",
    "unlawful",
    "non-compliant",
    "violates law",
    "breach of law",
)

RISK_TITLE_TERMS: Tuple[str, ...] = (
    "risk",
    "tenant",
    "obligation",
    "unfair",
    "liability",
    "responsib",
    "repair",
    "injury",
    "damage",
    "penalty",
    "clause",
    "breach",
    "default",
)

RISK_CONTENT_TERMS: Tuple[str, ...] = (
    "non-compliant with uk law",
    "illegal clause",
    "violates tenant rights",
    "unfair term",
    "disproportionate liability",
    "excessive fee",
    "prohibited payment",
    "unreasonable responsibility",
    "unenforceable",
    "void clause",
)

SERIOUS_ISSUE_PENALTY = 20
HIGH_RISK_PENALTY = 15
MEDIUM_RISK_PENALTY = 5
MIN_PROTECTION_SCORE = 10

# Counts at which the proportional bars are full
SERIOUS_BAR_FULL = 5
MODERATE_BAR_FULL = 10

_CATEGORIES = (
    (
        85,
        "Tenant-Friendly",
        "This lease contains standard terms with clear protections for tenants.",
    ),
    (
        70,
        "Balanced Standard",
        "A typical UK lease with standard terms and appropriate tenant protections.",
    ),
    (
        50,
        "Attention Required",
        "Some clauses need attention and may require clarification before signing.",
    ),
    (
        0,
        "Legal Review Recommended",
        "Consider having this lease reviewed by a professional before signing.",
    ),
)


@dataclass(frozen=True)
class AssessmentMetrics:
    warning_count: int
    moderate_count: int
    high_risk_count: int
    medium_risk_count: int
    has_serious_issue: bool
    protection_score: int
    category: str
    category_description: str
    serious_bar_percent: int
    moderate_bar_percent: int


def _mentions(text: str, terms: Sequence[str]) -> bool:
    lowered = (text or "").lower()
    return any(term in lowered for term in terms)


def is_risk_insight(insight: Insight) -> bool:
    return _mentions(insight.title, RISK_TITLE_TERMS) or _mentions(
        insight.content, RISK_CONTENT_TERMS
    )


def has_serious_issue(insights: Sequence[Insight]) -> bool:
    for insight in insights:
        if _mentions(insight.content, SERIOUS_ISSUE_TERMS):
            return True
        if insight.severity is SeverityTier.WARNING and _mentions(
            insight.content, LEGAL_ISSUE_TERMS
        ):
            return True
    return False


def protection_category(score: int) -> Tuple[str, str]:
    for floor, name, description in _CATEGORIES:
        if score >= floor:
            return name, description
    return _CATEGORIES[-1][1], _CATEGORIES[-1][2]


def compute_assessment(insights: Sequence[Insight]) -> AssessmentMetrics:
    risk = [i for i in insights if is_risk_insight(i)]
    high = sum(1 for i in risk if i.severity is SeverityTier.WARNING)
    medium = sum(1 for i in risk if i.severity is SeverityTier.MODERATE)
    serious = has_serious_issue(insights)

    score = 100
    if serious:
        score -= SERIOUS_ISSUE_PENALTY
    score -= high * HIGH_RISK_PENALTY
    score -= medium * MEDIUM_RISK_PENALTY
    score = max(MIN_PROTECTION_SCORE, min(100, score))

    category, description = protection_category(score)

    return AssessmentMetrics(
        warning_count=sum(1 for i in insights if i.severity is SeverityTier.WARNING),
        moderate_count=sum(1 for i in insights if i.severity is SeverityTier.MODERATE),
        high_risk_count=high,
        medium_risk_count=medium,
        has_serious_issue=serious,
        protection_score=score,
        category=category,
        category_description=description,
        serious_bar_percent=min(100, round(high / SERIOUS_BAR_FULL * 100)),
        moderate_bar_percent=min(100, round(medium / MODERATE_BAR_FULL * 100)),
    )
