"""
Resolution of the overall compliance assessment.

Sources are tried in order: the primary's assessment, the secondary's
assessment, a bare score from either side, and finally a band derived
from the normalized insight counts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from analyzer.app.schemas.analysis import (
    AnalysisResult,
    Compliance,
    ComplianceLevel,
    Insight,
    SeverityTier,
)

# Scores below these bounds fall into the lower level
RED_BELOW = 41
YELLOW_BELOW = 75

SCORE_DIVERGENCE_POINTS = 10

FROM_SECONDARY_NOTE = (
    " Compliance assessment provided by secondary validation as primary "
    "specialist analysis was incomplete."
)
FROM_SECONDARY_SCORE_NOTE = " Compliance assessment created from secondary validation score."

_LEVEL_SUMMARY = {
    ComplianceLevel.RED: "This agreement has significant issues with UK housing law compliance.",
    ComplianceLevel.YELLOW: "This agreement has some potential compliance concerns with UK housing laws.",
    ComplianceLevel.GREEN: "This agreement appears to comply with UK housing laws.",
}


@dataclass(frozen=True)
class ComplianceBand:
    score: int
    level: ComplianceLevel
    summary: str

    def to_compliance(self) -> Compliance:
        return Compliance(score=self.score, level=self.level, summary=self.summary)


def band_from_score(score: int) -> ComplianceLevel:
    if score < RED_BELOW:
        return ComplianceLevel.RED
    if score < YELLOW_BELOW:
        return ComplianceLevel.YELLOW
    return ComplianceLevel.GREEN


def compliance_from_score(score: int) -> Compliance:
    score = max(0, min(100, int(score)))
    level = band_from_score(score)
    return Compliance(score=score, level=level, summary=_LEVEL_SUMMARY[level])


def derive_from_counts(insights: Sequence[Insight]) -> ComplianceBand:
    """Fallback band from warning and moderate counts."""
    warnings = sum(1 for i in insights if i.severity is SeverityTier.WARNING)
    moderates = sum(1 for i in insights if i.severity is SeverityTier.MODERATE)

    if warnings >= 3:
        return ComplianceBand(25, ComplianceLevel.RED, _LEVEL_SUMMARY[ComplianceLevel.RED])
    if warnings == 2:
        return ComplianceBand(50, ComplianceLevel.YELLOW, _LEVEL_SUMMARY[ComplianceLevel.YELLOW])
    if warnings == 1:
        return ComplianceBand(
            65,
            ComplianceLevel.YELLOW,
            "This agreement generally complies with UK housing laws, "
            "with one area requiring attention.",
        )
    if moderates >= 2:
        return ComplianceBand(
            75,
            ComplianceLevel.YELLOW,
            "This agreement generally complies with UK housing laws, "
            "with a few consideration points.",
        )
    if moderates == 1:
        return ComplianceBand(
            90,
            ComplianceLevel.GREEN,
            "This agreement generally complies with UK housing laws, "
            "with one minor note.",
        )
    return ComplianceBand(100, ComplianceLevel.GREEN, _LEVEL_SUMMARY[ComplianceLevel.GREEN])


def score_of(result: Optional[AnalysisResult]) -> Optional[int]:
    if result is None:
        return None
    if result.compliance is not None:
        return result.compliance.score
    return result.compliance_score


def resolve_compliance(
    insights: Sequence[Insight],
    primary: AnalysisResult,
    secondary: Optional[AnalysisResult] = None,
) -> Tuple[Compliance, str]:
    """
    Return the resolved assessment and a suffix for the validation note.

    The suffix is empty unless the assessment came from the secondary or
    the two sides disagree by more than ``SCORE_DIVERGENCE_POINTS``.
    """
    note = ""

    primary_score = score_of(primary)
    secondary_score = score_of(secondary)
    if (
        primary_score is not None
        and secondary_score is not None
        and abs(primary_score - secondary_score) > SCORE_DIVERGENCE_POINTS
    ):
        note += (
            f" Secondary validation scored compliance at {secondary_score}%"
            f" against {primary_score}% from the primary analysis."
        )

    if primary.compliance is not None:
        return primary.compliance, note

    if secondary is not None and secondary.compliance is not None:
        return secondary.compliance, note + FROM_SECONDARY_NOTE

    if primary.compliance_score is not None:
        return compliance_from_score(primary.compliance_score), note

    if secondary is not None and secondary.compliance_score is not None:
        return (
            compliance_from_score(secondary.compliance_score),
            note + FROM_SECONDARY_SCORE_NOTE,
        )

    return derive_from_counts(insights).to_compliance(), note
