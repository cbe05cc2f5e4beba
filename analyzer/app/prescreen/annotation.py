"""
Presentation of pre-screen results to the rest of the pipeline.

- ``build_prescreen_annotation`` renders the text block that accompanies the
  final analysis message, so the assistant sees the deterministic hits.
- ``violation_insights`` turns violation findings into Insights for
  reconciliation.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Dict, List, Optional

from analyzer.app.prescreen.rules import ViolationSeverity
from analyzer.app.prescreen.scanner import PrescreenReport, ViolationFinding
from analyzer.app.schemas.analysis import Insight, SeverityTier

DOCUMENT_SEPARATOR = "--- ORIGINAL DOCUMENT FOLLOWS ---"

_SEVERITY_TIER = {
    ViolationSeverity.HIGH: SeverityTier.WARNING,
    ViolationSeverity.MEDIUM: SeverityTier.MODERATE,
}


def build_prescreen_annotation(report: PrescreenReport) -> Optional[str]:
    """Return the annotation block, or ``None`` when nothing was detected."""
    if not report.violations:
        return None

    lines = ["CRITICAL DETECTED ISSUES FOR SPECIAL ATTENTION:"]
    for i, v in enumerate(report.violations, start=1):
        lines.append(
            f'{i}. {v.description}: "{v.matched_text}" - '
            f"{v.severity.value} severity violation of {v.legal_reference}"
        )

    by_clause: Dict[int, List[ViolationFinding]] = OrderedDict()
    for v in report.violations:
        if v.clause_number is not None:
            by_clause.setdefault(v.clause_number, []).append(v)

    if by_clause:
        lines.append("")
        lines.append("ISSUES BY CLAUSE:")
        for number, issues in by_clause.items():
            lines.append(f"CLAUSE {number}:")
            lines.extend(
                f"- {v.description} ({v.severity.value}, {v.legal_reference})"
                for v in issues
            )

    missing = report.missing_requirements
    if missing:
        lines.append("")
        lines.append("MISSING COMPLIANCE REQUIREMENTS:")
        lines.extend(f"- {m.requirement} ({m.legal_reference})" for m in missing)

    if report.checklist_score is not None:
        lines.append("")
        lines.append(f"COMPLIANCE SCORE: {report.checklist_score}%")

    lines.append("")
    lines.append(DOCUMENT_SEPARATOR)
    return "\n".join(lines)


def violation_insights(report: PrescreenReport) -> List[Insight]:
    """
    One Insight per distinct rule description, in first-detection order.

    HIGH findings become warnings and MEDIUM findings become moderate.
    """
    grouped: Dict[str, List[ViolationFinding]] = OrderedDict()
    for v in report.violations:
        grouped.setdefault(v.description, []).append(v)

    insights = []
    for description, hits in grouped.items():
        first = hits[0]
        content = (
            f'The agreement contains wording such as "{first.matched_text}", '
            f"which may conflict with the {first.legal_reference}."
        )
        if len(hits) > 1:
            content += f" This pattern appears {len(hits)} times in the agreement."

        where = (
            f"Found in clause {first.clause_number}"
            if first.clause_number is not None
            else f"Found at position {first.position}"
        )
        insights.append(
            Insight(
                title=description,
                content=content,
                severity=_SEVERITY_TIER[first.severity],
                indicators=[f"Based on {first.legal_reference}", where],
            )
        )
    return insights
