from __future__ import annotations

from typing import Optional

from analyzer.app.config import (
    DEFAULT_CRITICAL_ISSUE_TITLES,
    DEFAULT_INFORMATIONAL_KEYWORDS,
    DEFAULT_NON_WARNING_TITLES,
    DEFAULT_SERIOUS_ISSUE_KEYWORDS,
)
from analyzer.app.reconciliation.severity_rules import SeverityPolicy
from analyzer.app.schemas.analysis import (
    AnalysisResult,
    Compliance,
    ComplianceLevel,
    FinancialTerms,
    Insight,
    PropertyDetails,
    Rating,
    Recommendation,
    SeverityTier,
)


def default_policy() -> SeverityPolicy:
    return SeverityPolicy(
        critical_issue_titles=tuple(DEFAULT_CRITICAL_ISSUE_TITLES),
        non_warning_titles=tuple(DEFAULT_NON_WARNING_TITLES),
        informational_keywords=tuple(DEFAULT_INFORMATIONAL_KEYWORDS),
        serious_issue_keywords=tuple(DEFAULT_SERIOUS_ISSUE_KEYWORDS),
    )


def insight(
    title: str,
    severity: SeverityTier = SeverityTier.INFORMATIONAL,
    content: str = "",
    rating: Optional[int] = None,
    indicators=None,
) -> Insight:
    return Insight(
        title=title,
        content=content or f"Details about {title.lower()}.",
        severity=severity,
        rating=Rating(value=rating, label="Protection") if rating is not None else None,
        indicators=indicators,
    )


def sample_result(**overrides) -> AnalysisResult:
    """A plausible, internally consistent primary analysis."""
    fields = dict(
        property_details=PropertyDetails(
            address="12 Acacia Avenue, Leeds LS6 2AB",
            property_type="Two bedroom flat",
            confidence="High Confidence",
        ),
        financial_terms=FinancialTerms(
            monthly_rent="£950",
            total_deposit="£1,096",
            deposit_protection="Deposit Protection Service",
            permitted_fees=["Late rent interest at 3% above base rate"],
            confidence="High Confidence",
        ),
        insights=[
            insight("Rent Review Clause", SeverityTier.MODERATE, "Rent may be reviewed annually."),
            insight("Pets Policy", SeverityTier.INFORMATIONAL, "Pets allowed with consent."),
        ],
        recommendations=[Recommendation(content="Ask for the gas safety certificate.")],
        compliance=Compliance(score=82, level=ComplianceLevel.GREEN, summary="Mostly compliant."),
        compliance_score=82,
    )
    fields.update(overrides)
    return AnalysisResult(**fields)
