from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from analyzer.app.prescreen.annotation import violation_insights
from analyzer.app.prescreen.scanner import PrescreenReport
from analyzer.app.reconciliation.compliance import resolve_compliance
from analyzer.app.reconciliation.merge import (
    append_missing_insights,
    merge_insights,
    merge_recommendations,
    merge_sections,
)
from analyzer.app.reconciliation.severity_rules import SeverityPolicy, normalize_severities
from analyzer.app.schemas.analysis import AnalysisResult, Insight

logger = logging.getLogger(__name__)

VALIDATED_NOTE = "Analysis verified by specialized UK tenancy assistant with secondary validation."
SINGLE_PASS_NOTE = "Analysis performed by specialized UK tenancy assistant without secondary validation."
MALFORMED_SECONDARY_NOTE = (
    "Secondary validation response could not be used; "
    "results reflect the primary analysis only."
)

SecondaryInput = Union[AnalysisResult, Mapping[str, Any], None]


def _coerce_secondary(secondary: SecondaryInput) -> tuple:
    """Return ``(result_or_None, malformed)``."""
    if secondary is None or isinstance(secondary, AnalysisResult):
        return secondary, False
    try:
        return AnalysisResult.model_validate(dict(secondary)), False
    except (ValidationError, TypeError, ValueError) as exc:
        logger.warning(
            "secondary_result_rejected",
            extra={"error": type(exc).__name__},
        )
        return None, True


def reconcile(
    primary: AnalysisResult,
    secondary: SecondaryInput = None,
    prescreen: Optional[PrescreenReport] = None,
    *,
    policy: SeverityPolicy,
    include_prescreen_insights: bool = True,
) -> AnalysisResult:
    """
    Merge the primary analysis with optional secondary and pre-screen
    evidence into the final result.

    Never raises for data problems: an unusable secondary is dropped and
    recorded in the validation note.

    Reconciling an already reconciled result with no secondary returns an
    equal result.
    """
    second, malformed = _coerce_secondary(secondary)

    prescreen_additions: List[Insight] = []
    if prescreen is not None and include_prescreen_insights:
        prescreen_additions = violation_insights(prescreen)

    if second is not None:
        sections = merge_sections(primary, second)
        insights = merge_insights(primary.insights, second.insights)
        recommendations = merge_recommendations(
            primary.recommendations, second.recommendations
        )
    else:
        sections = {}
        insights = list(primary.insights)
        recommendations = list(primary.recommendations)

    insights = append_missing_insights(insights, prescreen_additions)
    insights = normalize_severities(insights, policy)

    compliance, compliance_note = resolve_compliance(insights, primary, second)

    if second is not None:
        validation_performed = True
        validation_note = VALIDATED_NOTE + compliance_note
    elif malformed:
        validation_performed = primary.validation_performed
        validation_note = MALFORMED_SECONDARY_NOTE + compliance_note
    else:
        validation_performed = primary.validation_performed
        validation_note = primary.validation_note or (SINGLE_PASS_NOTE + compliance_note)

    update: Dict[str, Any] = dict(sections)
    update.update(
        insights=insights,
        recommendations=recommendations,
        compliance=compliance,
        compliance_score=compliance.score,
        validation_performed=validation_performed,
        validation_note=validation_note,
    )

    if prescreen is not None:
        update["compliance_checklist"] = list(prescreen.compliance_findings)
        update["prescreen_score"] = (
            prescreen.weighted_score if include_prescreen_insights else None
        )

    reconciled = primary.model_copy(update=update)

    logger.info(
        "reconciliation_completed",
        extra={
            "insight_count": len(reconciled.insights),
            "compliance_score": compliance.score,
            "validation_performed": validation_performed,
            "secondary_malformed": malformed,
        },
    )
    return reconciled
