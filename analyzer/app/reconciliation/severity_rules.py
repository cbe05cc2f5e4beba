"""
Severity normalization as an ordered chain of pure rules.

Order matters: the two title rules lock their decision, and the later
rating and keyword rules leave locked decisions alone.

1. protected (critical-issue) titles are pinned to warning
2. summary/overview titles are pinned to informational
3. warnings with a high protection rating drop to moderate
4. warnings mentioning informational keywords drop to moderate
5. non-warnings mentioning serious-issue keywords rise to warning
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from analyzer.app.schemas.analysis import Insight, SeverityTier


class SeverityPolicy(BaseModel):
    """Configured vocabularies for the rule chain.

    Matching is case-insensitive. Titles match as substrings, keywords as
    whole words or phrases.
    """

    critical_issue_titles: Tuple[str, ...] = ()
    non_warning_titles: Tuple[str, ...] = ()
    informational_keywords: Tuple[str, ...] = ()
    serious_issue_keywords: Tuple[str, ...] = ()
    high_rating_threshold: int = Field(85, ge=0, le=100)

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    def is_protected(self, title: str) -> bool:
        return _contains_any(title, self.critical_issue_titles)

    def is_forced_non_warning(self, title: str) -> bool:
        return _contains_any(title, self.non_warning_titles)


@dataclass(frozen=True)
class SeverityDecision:
    severity: SeverityTier
    locked: bool = False


SeverityRule = Callable[[Insight, SeverityDecision, SeverityPolicy], SeverityDecision]


def _contains_any(text: str, needles: Iterable[str]) -> bool:
    haystack = (text or "").lower()
    return any(n.lower() in haystack for n in needles if n)


def _mentions_keyword(text: str, keywords: Iterable[str]) -> bool:
    """Whole-word match: "void" matches "is void." but not "avoid"."""
    haystack = (text or "").lower()
    return any(
        re.search(rf"(?<!\w){re.escape(k.lower())}(?!\w)", haystack)
        for k in keywords
        if k
    )


# ----------------------------------------------------------------------
# Rules
# ----------------------------------------------------------------------

def pin_protected_titles(
    insight: Insight, decision: SeverityDecision, policy: SeverityPolicy
) -> SeverityDecision:
    if policy.is_protected(insight.title):
        return SeverityDecision(SeverityTier.WARNING, locked=True)
    return decision


def pin_non_warning_titles(
    insight: Insight, decision: SeverityDecision, policy: SeverityPolicy
) -> SeverityDecision:
    if decision.locked:
        return decision
    if policy.is_forced_non_warning(insight.title):
        return SeverityDecision(SeverityTier.INFORMATIONAL, locked=True)
    return decision


def downgrade_high_rating(
    insight: Insight, decision: SeverityDecision, policy: SeverityPolicy
) -> SeverityDecision:
    if decision.locked or decision.severity is not SeverityTier.WARNING:
        return decision
    if insight.rating is not None and insight.rating.value >= policy.high_rating_threshold:
        return SeverityDecision(SeverityTier.MODERATE)
    return decision


def downgrade_informational_keywords(
    insight: Insight, decision: SeverityDecision, policy: SeverityPolicy
) -> SeverityDecision:
    if decision.locked or decision.severity is not SeverityTier.WARNING:
        return decision
    if _mentions_keyword(f"{insight.title}\n{insight.content}", policy.informational_keywords):
        return SeverityDecision(SeverityTier.MODERATE)
    return decision


def upgrade_serious_keywords(
    insight: Insight, decision: SeverityDecision, policy: SeverityPolicy
) -> SeverityDecision:
    if decision.locked or decision.severity is SeverityTier.WARNING:
        return decision
    if _mentions_keyword(insight.content, policy.serious_issue_keywords):
        return SeverityDecision(SeverityTier.WARNING)
    return decision


DEFAULT_RULE_CHAIN: Tuple[SeverityRule, ...] = (
    pin_protected_titles,
    pin_non_warning_titles,
    downgrade_high_rating,
    downgrade_informational_keywords,
    upgrade_serious_keywords,
)


# ----------------------------------------------------------------------
# Application
# ----------------------------------------------------------------------

def classify(
    insight: Insight,
    policy: SeverityPolicy,
    rules: Sequence[SeverityRule] = DEFAULT_RULE_CHAIN,
) -> SeverityTier:
    decision = SeverityDecision(insight.severity)
    for rule in rules:
        decision = rule(insight, decision, policy)
    return decision.severity


def normalize_severities(
    insights: Sequence[Insight],
    policy: SeverityPolicy,
    rules: Sequence[SeverityRule] = DEFAULT_RULE_CHAIN,
) -> List[Insight]:
    normalized = []
    for insight in insights:
        severity = classify(insight, policy, rules)
        if severity is not insight.severity:
            insight = insight.model_copy(update={"severity": severity})
        normalized.append(insight)
    return normalized
