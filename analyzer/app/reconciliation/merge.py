"""
Field-level merge of a primary analysis with a secondary one.

The primary analysis is authoritative. The secondary only fills gaps,
adds insights the primary missed, and may raise (never lower) severity.
"""

from __future__ import annotations

from typing import Dict, List, Optional, TypeVar

from analyzer.app.schemas.analysis import (
    AnalysisResult,
    Insight,
    Recommendation,
    SeverityTier,
    StructuredSection,
)

SECONDARY_FINDING_MARKER = " [Secondary validation finding]"
CONFIRMED_CONCERN_MARKER = " [Validation confirmed as concerning]"

SECTION_FIELDS = ("property_details", "financial_terms", "lease_period", "parties")

S = TypeVar("S", bound=StructuredSection)


def _title_key(title: str) -> str:
    return (title or "").strip().lower()


def merge_section(primary: Optional[S], secondary: Optional[S]) -> Optional[S]:
    """Keep ``primary`` unless it is missing or low-confidence and
    ``secondary`` is present and not low-confidence."""
    if primary is not None and not primary.is_low_confidence:
        return primary
    if secondary is not None and not secondary.is_low_confidence:
        return secondary
    return primary


def merge_sections(primary: AnalysisResult, secondary: AnalysisResult) -> Dict[str, object]:
    return {
        name: merge_section(getattr(primary, name), getattr(secondary, name))
        for name in SECTION_FIELDS
    }


def merge_insights(primary: List[Insight], secondary: List[Insight]) -> List[Insight]:
    secondary_by_title: Dict[str, Insight] = {}
    for insight in secondary:
        secondary_by_title.setdefault(_title_key(insight.title), insight)

    merged: List[Insight] = []
    for insight in primary:
        match = secondary_by_title.get(_title_key(insight.title))
        if match is not None:
            insight = _apply_secondary(insight, match)
        merged.append(insight)

    seen = {_title_key(i.title) for i in primary}
    for insight in secondary:
        key = _title_key(insight.title)
        if key in seen:
            continue
        seen.add(key)
        merged.append(
            insight.model_copy(
                update={"content": f"{insight.content}{SECONDARY_FINDING_MARKER}"}
            )
        )
    return merged


def _apply_secondary(insight: Insight, match: Insight) -> Insight:
    if match.severity is SeverityTier.WARNING and insight.severity is not SeverityTier.WARNING:
        return insight.model_copy(
            update={
                "severity": SeverityTier.WARNING,
                "content": f"{insight.content}{CONFIRMED_CONCERN_MARKER}",
            }
        )
    # Ratings are never copied onto warnings
    if (
        match.rating is not None
        and insight.rating is None
        and insight.severity is not SeverityTier.WARNING
    ):
        return insight.model_copy(update={"rating": match.rating})
    return insight


def merge_recommendations(
    primary: List[Recommendation],
    secondary: List[Recommendation],
) -> List[Recommendation]:
    seen = {r.content.strip().lower() for r in primary}
    merged = list(primary)
    for rec in secondary:
        key = rec.content.strip().lower()
        if key not in seen:
            seen.add(key)
            merged.append(rec)
    return merged


def append_missing_insights(
    existing: List[Insight],
    additions: List[Insight],
) -> List[Insight]:
    """Append ``additions`` whose titles are not already present."""
    seen = {_title_key(i.title) for i in existing}
    merged = list(existing)
    for insight in additions:
        key = _title_key(insight.title)
        if key not in seen:
            seen.add(key)
            merged.append(insight)
    return merged
