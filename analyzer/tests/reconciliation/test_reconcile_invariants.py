from analyzer.app.prescreen.scanner import RuleEngine
from analyzer.app.reconciliation.merge import CONFIRMED_CONCERN_MARKER, SECONDARY_FINDING_MARKER
from analyzer.app.reconciliation.reconciler import (
    MALFORMED_SECONDARY_NOTE,
    SINGLE_PASS_NOTE,
    VALIDATED_NOTE,
    reconcile,
)
from analyzer.app.schemas.analysis import (
    AnalysisResult,
    Compliance,
    ComplianceLevel,
    LeasePeriod,
    PropertyDetails,
    Recommendation,
    SeverityTier,
)
from analyzer.tests.helpers import default_policy, insight, sample_result

POLICY = default_policy()

AGREEMENT = """\
1. The rent is 950 pounds per calendar month.
2. The deposit will be protected with the Deposit Protection Service.
3. The tenant must pay an administration fee of 150 pounds.
4. The landlord may enter the property at any time without notice.
"""


def _secondary() -> AnalysisResult:
    return AnalysisResult(
        property_details=PropertyDetails(address="12 Acacia Ave", confidence="Low Confidence"),
        lease_period=LeasePeriod(start_date="1 March 2024", tenancy_type="Assured shorthold"),
        insights=[
            insight("rent review clause", SeverityTier.WARNING, "Uncapped increases."),
            insight("Pets Policy", SeverityTier.INFORMATIONAL, "Pets allowed.", rating=70),
            insight("Inventory Missing", SeverityTier.MODERATE, "No inventory is attached."),
        ],
        recommendations=[
            Recommendation(content="ask for the gas safety certificate."),
            Recommendation(content="Request an inventory."),
        ],
        compliance_score=60,
    )


def test_single_pass_keeps_primary_except_note():
    primary = sample_result()

    result = reconcile(primary, policy=POLICY)

    assert result.compliance_score == primary.compliance_score
    assert result.compliance == primary.compliance
    assert result.insights == primary.insights
    assert result.property_details == primary.property_details
    assert result.validation_performed is False
    assert result.validation_note == SINGLE_PASS_NOTE


def test_existing_note_is_kept_without_secondary():
    primary = sample_result(validation_note="Checked by a reviewer.")

    assert reconcile(primary, policy=POLICY).validation_note == "Checked by a reviewer."


def test_secondary_fills_gaps_and_adds_findings():
    primary = sample_result()

    result = reconcile(primary, _secondary(), policy=POLICY)

    # high-confidence primary section wins over low-confidence secondary
    assert result.property_details == primary.property_details
    # missing primary section is filled
    assert result.lease_period.tenancy_type == "Assured shorthold"

    titles = [i.title for i in result.insights]
    assert titles == ["Rent Review Clause", "Pets Policy", "Inventory Missing"]
    added = result.insights[2]
    assert added.content.endswith(SECONDARY_FINDING_MARKER)

    rent = result.insights[0]
    assert rent.severity is SeverityTier.WARNING
    assert rent.content.endswith(CONFIRMED_CONCERN_MARKER)

    pets = result.insights[1]
    assert pets.rating.value == 70

    assert [r.content for r in result.recommendations] == [
        "Ask for the gas safety certificate.",
        "Request an inventory.",
    ]
    assert result.validation_performed is True
    assert result.validation_note.startswith(VALIDATED_NOTE)


def test_score_divergence_is_noted():
    result = reconcile(sample_result(), _secondary(), policy=POLICY)

    assert result.compliance.score == 82
    assert "60%" in result.validation_note
    assert "82%" in result.validation_note


def test_reconcile_is_idempotent():
    prescreen = RuleEngine(enable_violation_scan=True).scan(AGREEMENT)

    once = reconcile(sample_result(), _secondary(), prescreen, policy=POLICY)
    twice = reconcile(once, None, prescreen, policy=POLICY)

    assert twice == once


def test_secondary_never_lowers_severity():
    primary = sample_result(
        insights=[
            insight("Guarantor Liability", SeverityTier.WARNING, "Guarantor covers all arrears."),
            insight("Notice Period", SeverityTier.MODERATE, "One month notice for tenant."),
        ]
    )
    secondary = AnalysisResult(
        insights=[
            insight("Guarantor Liability", SeverityTier.INFORMATIONAL, "Fine.", rating=95),
            insight("Notice Period", SeverityTier.INFORMATIONAL, "Fine."),
        ]
    )

    alone = {i.title: i.severity for i in reconcile(primary, policy=POLICY).insights}
    merged = {i.title: i.severity for i in reconcile(primary, secondary, policy=POLICY).insights}

    for title, severity in alone.items():
        assert merged[title].rank >= severity.rank


def test_protected_titles_end_as_warning():
    primary = sample_result(
        insights=[insight("Unfair Tenant Liability Clause", SeverityTier.INFORMATIONAL, "Meets requirements.")]
    )
    secondary = AnalysisResult(
        insights=[insight("Repair Responsibility Transfer", SeverityTier.MODERATE, "Summary.", rating=99)]
    )

    result = reconcile(primary, secondary, policy=POLICY)

    assert all(i.severity is SeverityTier.WARNING for i in result.insights)


def test_malformed_secondary_degrades_to_primary():
    primary = sample_result()

    result = reconcile(primary, {"insights": "not-a-list"}, policy=POLICY)

    assert result.validation_performed is False
    assert result.validation_note == MALFORMED_SECONDARY_NOTE
    assert result.insights == primary.insights


def test_secondary_mapping_uses_wire_names():
    payload = {
        "insights": [{"title": "Smoke Alarms", "content": "Not mentioned.", "type": "accent"}],
        "compliance": {"score": 55, "level": "Yellow", "summary": "Some gaps."},
    }

    result = reconcile(sample_result(compliance=None, compliance_score=None), payload, policy=POLICY)

    assert result.compliance == Compliance(score=55, level=ComplianceLevel.YELLOW, summary="Some gaps.")
    assert result.compliance_score == 55
    assert "secondary validation" in result.validation_note
    assert result.insights[-1].title == "Smoke Alarms"


def test_prescreen_insights_and_checklist_are_attached():
    prescreen = RuleEngine(enable_violation_scan=True).scan(AGREEMENT)

    result = reconcile(sample_result(), None, prescreen, policy=POLICY)

    titles = {i.title for i in result.insights}
    assert "Possible prohibited fee" in titles
    assert result.prescreen_score == prescreen.weighted_score
    assert len(result.compliance_checklist) == 5


def test_prescreen_insights_skipped_when_scan_disabled():
    prescreen = RuleEngine().scan(AGREEMENT)

    result = reconcile(
        sample_result(), None, prescreen, policy=POLICY, include_prescreen_insights=False
    )

    assert len(result.insights) == 2
    assert result.prescreen_score is None
    assert len(result.compliance_checklist) == 5
