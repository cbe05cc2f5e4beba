from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from analyzer.app.report.document import (
    FONT_BOLD,
    FONT_REGULAR,
    GREY,
    NAVY,
    PageGeometry,
    ReportDocument,
)
from analyzer.app.report.metrics import AssessmentMetrics, compute_assessment
from analyzer.app.report.sanitize import sanitize_text
from analyzer.app.report.text_layout import text_width, wrap_text
from analyzer.app.schemas.analysis import (
    AnalysisResult,
    ComplianceLevel,
    Insight,
    SeverityTier,
)

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "Not specified"

COVER_FEATURES = (
    "Comprehensive Lease Term Analysis",
    "Legal Compliance Evaluation",
    "Tenant Risk Assessment",
    "Detailed Property & Financial Details",
    "Actionable Tenant Recommendations",
    "Expert Legal Insights",
)

_TIER_LABEL = {
    SeverityTier.WARNING: "Serious issue",
    SeverityTier.MODERATE: "Consideration",
    SeverityTier.INFORMATIONAL: "Information",
}

_TIER_COLOR = {
    SeverityTier.WARNING: (0.80, 0.20, 0.20),
    SeverityTier.MODERATE: (0.85, 0.55, 0.10),
    SeverityTier.INFORMATIONAL: NAVY,
}

_LEVEL_COLOR = {
    ComplianceLevel.RED: (0.80, 0.20, 0.20),
    ComplianceLevel.YELLOW: (0.85, 0.65, 0.10),
    ComplianceLevel.GREEN: (0.28, 0.73, 0.47),
}


class ReportMetadata(BaseModel):
    document_name: str
    analysis_date: date = Field(default_factory=date.today)

    model_config = ConfigDict(frozen=True)


def _or_not_specified(value: Optional[str]) -> str:
    return value if value and value.strip() else NOT_SPECIFIED


def _join(values: Optional[List[str]]) -> str:
    if not values:
        return NOT_SPECIFIED
    return ", ".join(v for v in values if v) or NOT_SPECIFIED


def order_insights(insights: List[Insight]) -> List[Insight]:
    """Warnings first, then moderate, then informational; stable within a tier."""
    return sorted(insights, key=lambda i: -i.severity.rank)


class ReportRenderer:
    """
    Lays out an ``AnalysisResult`` as a paginated PDF.

    ``layout`` returns the page model; ``render`` serializes it. A fresh
    ``ReportDocument`` is built per call, so one renderer can be shared.
    """

    def __init__(
        self,
        geometry: Optional[PageGeometry] = None,
        *,
        generator_label: str = "Generated by UK Tenancy Agreement Analyzer",
    ) -> None:
        self._geometry = geometry or PageGeometry()
        self._generator_label = generator_label

    def render(self, result: AnalysisResult, metadata: ReportMetadata) -> bytes:
        doc = self.layout(result, metadata)
        pdf = doc.to_pdf_bytes(title=f"Tenancy Agreement Analysis - {metadata.document_name}")
        logger.info(
            "report_rendered",
            extra={"pages": len(doc.pages), "bytes": len(pdf)},
        )
        return pdf

    def layout(self, result: AnalysisResult, metadata: ReportMetadata) -> ReportDocument:
        doc = ReportDocument(self._geometry)
        self._cover(doc, result, metadata)
        self._property_and_financial(doc, result)
        self._lease_and_parties(doc, result)
        self._assessment(doc, result, compute_assessment(result.insights))
        self._insights(doc, result.insights)
        self._recommendations(doc, result)
        doc.stamp_footers(self._generator_label)
        return doc

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _start_section(doc: ReportDocument, title: str, continuation: str) -> None:
        doc.continuation_header = None
        doc.new_page()
        doc.heading(title)
        doc.continuation_header = continuation

    def _centered(
        self,
        doc: ReportDocument,
        text: str,
        *,
        font: str,
        size: float,
        leading: float,
        color=NAVY,
    ) -> None:
        g = self._geometry
        lines = wrap_text(sanitize_text(text), font, size, g.width - 2 * g.margin) or [""]
        for i, line in enumerate(lines):
            # Only the last line carries the extra spacing below the block
            line_leading = leading if i == len(lines) - 1 else size * 1.3
            x = max(g.margin, (g.width - text_width(line, font, size)) / 2)
            doc.text_line(line, x=x, font=font, size=size, leading=line_leading, color=color)

    @staticmethod
    def _subheading(doc: ReportDocument, text: str) -> None:
        doc.skip(6)
        doc.text_line(text, font=FONT_BOLD, size=13, leading=20, color=NAVY)

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _cover(self, doc: ReportDocument, result: AnalysisResult, metadata: ReportMetadata) -> None:
        doc.new_page()
        doc.skip(120)
        self._centered(doc, "TENANCY AGREEMENT ANALYSIS", font=FONT_BOLD, size=24, leading=36)
        self._centered(doc, "COMPREHENSIVE REPORT", font=FONT_BOLD, size=16, leading=40)
        self._centered(
            doc,
            f"Document: {metadata.document_name}",
            font=FONT_REGULAR,
            size=12,
            leading=20,
            color=(0, 0, 0),
        )
        self._centered(
            doc,
            f"Analysis Date: {metadata.analysis_date.strftime('%d %B %Y')}",
            font=FONT_REGULAR,
            size=12,
            leading=40,
            color=(0, 0, 0),
        )
        if result.compliance is not None:
            self._centered(
                doc,
                f"Compliance Score: {result.compliance.score}%",
                font=FONT_BOLD,
                size=14,
                leading=40,
                color=_LEVEL_COLOR[result.compliance.level],
            )

        self._centered(doc, "REPORT INCLUDES", font=FONT_BOLD, size=16, leading=30)
        x = self._geometry.width / 2 - 150
        for feature in COVER_FEATURES:
            doc.text_line(f"- {feature}", x=x, size=14, leading=30)

    def _property_and_financial(self, doc: ReportDocument, result: AnalysisResult) -> None:
        self._start_section(doc, "PROPERTY & FINANCIAL DETAILS", "FINANCIAL DETAILS")

        self._subheading(doc, "Property")
        prop = result.property_details
        if prop is None:
            doc.text_line("Property details were not identified in this agreement.", color=GREY)
        else:
            doc.labelled_value("Address:", _or_not_specified(prop.address))
            doc.labelled_value("Property Type:", _or_not_specified(prop.property_type))
            doc.labelled_value("Size:", _or_not_specified(prop.size))
            if prop.confidence:
                doc.labelled_value("Confidence:", prop.confidence)

        self._subheading(doc, "Financial Terms")
        fin = result.financial_terms
        if fin is None:
            doc.text_line("Financial terms were not identified in this agreement.", color=GREY)
            return
        doc.labelled_value("Monthly Rent:", _or_not_specified(fin.monthly_rent))
        doc.labelled_value("Total Deposit:", _or_not_specified(fin.total_deposit))
        doc.labelled_value("Deposit Protection:", _or_not_specified(fin.deposit_protection))
        doc.labelled_value("Permitted Fees:", _join(fin.permitted_fees))
        if fin.prohibited_fees:
            doc.labelled_value("Prohibited Fees:", _join(fin.prohibited_fees))
        if fin.confidence:
            doc.labelled_value("Confidence:", fin.confidence)

    def _lease_and_parties(self, doc: ReportDocument, result: AnalysisResult) -> None:
        self._start_section(doc, "LEASE PERIOD & PARTIES", "PARTIES")

        self._subheading(doc, "Lease Period")
        lease = result.lease_period
        if lease is None:
            doc.text_line("Lease period details were not identified in this agreement.", color=GREY)
        else:
            doc.labelled_value("Start Date:", _or_not_specified(lease.start_date))
            doc.labelled_value("End Date:", _or_not_specified(lease.end_date))
            doc.labelled_value("Tenancy Type:", _or_not_specified(lease.tenancy_type))
            doc.labelled_value("Notice Period:", _or_not_specified(lease.notice_period))

        self._subheading(doc, "Parties")
        parties = result.parties
        if parties is None:
            doc.text_line("The parties to this agreement were not identified.", color=GREY)
            return
        doc.labelled_value("Landlord:", _or_not_specified(parties.landlord))
        doc.labelled_value("Tenant:", _or_not_specified(parties.tenant))
        if parties.guarantor:
            doc.labelled_value("Guarantor:", parties.guarantor)
        if parties.agent:
            doc.labelled_value("Agent:", parties.agent)

    def _assessment(
        self,
        doc: ReportDocument,
        result: AnalysisResult,
        metrics: AssessmentMetrics,
    ) -> None:
        self._start_section(doc, "LEASE ASSESSMENT", "LEASE ASSESSMENT")

        doc.labelled_value("Lease Category:", metrics.category, size=12)
        doc.paragraph(metrics.category_description, color=GREY)
        doc.skip(6)
        doc.labelled_value("Legal Protection Score:", f"{metrics.protection_score}/100", size=12)
        doc.skip(6)
        doc.bar("Serious issues", metrics.serious_bar_percent, color=_TIER_COLOR[SeverityTier.WARNING])
        doc.bar("Moderate concerns", metrics.moderate_bar_percent, color=_TIER_COLOR[SeverityTier.MODERATE])
        doc.labelled_value("Warnings:", str(metrics.warning_count))
        doc.labelled_value("Moderate Concerns:", str(metrics.moderate_count))
        doc.labelled_value("High Risk Clauses:", str(metrics.high_risk_count))
        doc.labelled_value("Medium Risk Clauses:", str(metrics.medium_risk_count))

        self._subheading(doc, "Compliance")
        if result.compliance is not None:
            doc.labelled_value(
                "Compliance Score:",
                f"{result.compliance.score}% ({result.compliance.level.value.upper()})",
            )
            if result.compliance.summary:
                doc.paragraph(result.compliance.summary)
        else:
            doc.text_line("No compliance assessment is available.", color=GREY)

        if result.prescreen_score is not None:
            doc.labelled_value("Pre-screen Weighted Score:", str(result.prescreen_score))

        if result.compliance_checklist:
            self._subheading(doc, "Statutory Checklist")
            for finding in result.compliance_checklist:
                mark = "Found" if finding.found else "Missing"
                doc.paragraph(
                    f"[{mark}] {finding.requirement} ({finding.legal_reference})",
                    x=self._geometry.margin + 10,
                    size=10,
                    leading=14,
                )

        if result.validation_note:
            doc.skip(6)
            doc.paragraph(result.validation_note, size=9, leading=13, color=GREY)

    def _insights(self, doc: ReportDocument, insights: List[Insight]) -> None:
        self._start_section(doc, "TENANCY AGREEMENT INSIGHTS", "TENANCY AGREEMENT INSIGHTS")
        if not insights:
            doc.text_line("No insights were produced for this agreement.", color=GREY)
            return

        indent = self._geometry.margin + 15
        width = self._geometry.content_width
        for number, insight in enumerate(order_insights(insights), start=1):
            doc.skip(4)
            doc.paragraph(
                f"{number}. {insight.title}",
                font=FONT_BOLD,
                size=12,
                leading=17,
                max_width=width,
            )
            doc.text_line(
                _TIER_LABEL[insight.severity],
                x=indent,
                font=FONT_BOLD,
                size=9,
                leading=14,
                color=_TIER_COLOR[insight.severity],
            )
            if insight.content:
                doc.paragraph(insight.content, x=indent, max_width=width)
            for indicator in insight.indicators or []:
                doc.paragraph(f"- {indicator}", x=indent + 10, size=10, leading=14, max_width=width - 10)
            if insight.rating is not None:
                rating = insight.rating
                doc.text_line(
                    f"Rating: {rating.label} ({rating.value}%)"
                    if rating.label
                    else f"Rating: {rating.value}%",
                    x=indent,
                    size=10,
                    leading=14,
                    color=GREY,
                )

    def _recommendations(self, doc: ReportDocument, result: AnalysisResult) -> None:
        self._start_section(doc, "TENANT RECOMMENDATIONS", "TENANT RECOMMENDATIONS")
        if not result.recommendations:
            doc.text_line("No specific recommendations were produced for this agreement.", color=GREY)
            return

        indent = self._geometry.margin + 15
        for number, rec in enumerate(result.recommendations, start=1):
            doc.skip(4)
            doc.text_line(f"Recommendation {number}:", font=FONT_BOLD, size=12, leading=17)
            doc.paragraph(rec.content, x=indent, max_width=self._geometry.content_width)
