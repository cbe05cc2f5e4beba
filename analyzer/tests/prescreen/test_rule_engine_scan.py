import pytest

from analyzer.app.errors import RuleConfigurationError
from analyzer.app.prescreen.annotation import (
    DOCUMENT_SEPARATOR,
    build_prescreen_annotation,
    violation_insights,
)
from analyzer.app.prescreen.rules import ViolationRule, ViolationSeverity
from analyzer.app.prescreen.scanner import RuleEngine, segment_clauses
from analyzer.app.schemas.analysis import SeverityTier

AGREEMENT = """\
1. The rent is 950 pounds per calendar month.
2. The deposit will be protected with the Deposit Protection Service.
3. The tenant must pay an administration fee of 150 pounds.
4. The landlord may enter the property at any time without notice.
5. The notice period is two months for the landlord.
"""


def test_violation_scan_is_disabled_by_default():
    report = RuleEngine().scan(AGREEMENT)

    assert report.violations == []
    assert report.weighted_score == 0
    assert build_prescreen_annotation(report) is None


def test_checklist_runs_by_default():
    report = RuleEngine().scan(AGREEMENT)

    found = {f.requirement: f.found for f in report.compliance_findings}
    assert found["Deposit protection scheme"] is True
    assert found["Safety certification"] is False
    assert report.checklist_score == round(
        sum(found.values()) / len(found) * 100
    )


def test_violation_scan_finds_clauses_and_weights():
    engine = RuleEngine(enable_violation_scan=True)

    report = engine.scan(AGREEMENT)

    descriptions = {v.description for v in report.violations}
    assert "Possible prohibited fee" in descriptions
    assert "Unreasonable landlord access clause" in descriptions
    assert report.clauses_examined == 5
    assert report.weighted_score == sum(v.weight for v in report.violations)

    access = next(v for v in report.violations if v.description == "Unreasonable landlord access clause")
    assert access.clause_number == 4


def test_scanner_does_not_segment_with_few_markers():
    spans = segment_clauses("1. Only one clause here.")

    assert len(spans) == 1
    assert spans[0].number is None


def test_annotation_lists_issues_before_document_separator():
    report = RuleEngine(enable_violation_scan=True).scan(AGREEMENT)

    annotation = build_prescreen_annotation(report)

    assert annotation.startswith("CRITICAL DETECTED ISSUES FOR SPECIAL ATTENTION:")
    assert "ISSUES BY CLAUSE:" in annotation
    assert annotation.endswith(DOCUMENT_SEPARATOR)


def test_violation_insights_map_severity():
    report = RuleEngine(enable_violation_scan=True).scan(AGREEMENT)

    insights = {i.title: i for i in violation_insights(report)}

    assert insights["Possible prohibited fee"].severity is SeverityTier.WARNING
    assert any("Tenant Fees Act 2019" in ind for ind in insights["Possible prohibited fee"].indicators)


def test_malformed_rule_fails_at_construction():
    bad = ViolationRule("(unclosed", "Broken", ViolationSeverity.HIGH, "None", 1)

    with pytest.raises(RuleConfigurationError):
        RuleEngine(rules=[bad])
