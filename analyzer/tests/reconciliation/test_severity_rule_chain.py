from analyzer.app.reconciliation.severity_rules import (
    SeverityDecision,
    classify,
    normalize_severities,
    pin_protected_titles,
    upgrade_serious_keywords,
)
from analyzer.app.schemas.analysis import SeverityTier
from analyzer.tests.helpers import default_policy, insight

POLICY = default_policy()


def test_protected_title_is_always_warning():
    item = insight(
        "Illegal Fee for Referencing",
        SeverityTier.INFORMATIONAL,
        "Overall compliance summary of fees.",
        rating=95,
    )

    assert classify(item, POLICY) is SeverityTier.WARNING


def test_summary_titles_are_pinned_informational():
    item = insight(
        "Overall Compliance",
        SeverityTier.WARNING,
        "This clause is unenforceable in places.",
    )

    assert classify(item, POLICY) is SeverityTier.INFORMATIONAL


def test_high_rating_downgrades_warning():
    item = insight("Guarantor Obligations", SeverityTier.WARNING, "Guarantor covers arrears.", rating=90)

    assert classify(item, POLICY) is SeverityTier.MODERATE


def test_rating_below_threshold_keeps_warning():
    item = insight("Guarantor Obligations", SeverityTier.WARNING, "Guarantor covers arrears.", rating=60)

    assert classify(item, POLICY) is SeverityTier.WARNING


def test_informational_keyword_downgrades_warning():
    item = insight("Break Clause", SeverityTier.WARNING, "The break clause meets requirements.")

    assert classify(item, POLICY) is SeverityTier.MODERATE


def test_serious_keyword_upgrades_non_warning():
    item = insight(
        "Pet Damage",
        SeverityTier.MODERATE,
        "This term is unenforceable and places an excessive financial burden on the tenant.",
    )

    assert classify(item, POLICY) is SeverityTier.WARNING


def test_matching_is_case_insensitive():
    item = insight("SECURITY DEPOSIT VIOLATION", SeverityTier.MODERATE, "Deposit held by agent.")

    assert classify(item, POLICY) is SeverityTier.WARNING


def test_locked_decision_skips_later_rules():
    item = insight("Lease Overview", SeverityTier.MODERATE, "Clearly non-compliant in one place.")
    locked = SeverityDecision(SeverityTier.INFORMATIONAL, locked=True)

    assert upgrade_serious_keywords(item, locked, POLICY) is locked
    assert pin_protected_titles(item, locked, POLICY) is locked


def test_normalization_is_idempotent():
    items = [
        insight("Unfair Eviction Clause", SeverityTier.MODERATE),
        insight("Agreement Summary", SeverityTier.WARNING),
        insight("Rent Increase", SeverityTier.WARNING, "Standard terms apply.", rating=88),
        insight("Repairs", SeverityTier.MODERATE, "Tenant responsible for structural repairs."),
        insight("Utilities", SeverityTier.INFORMATIONAL),
    ]

    once = normalize_severities(items, POLICY)
    twice = normalize_severities(once, POLICY)

    assert once == twice
    assert [i.severity for i in once] == [
        SeverityTier.WARNING,
        SeverityTier.INFORMATIONAL,
        SeverityTier.MODERATE,
        SeverityTier.WARNING,
        SeverityTier.INFORMATIONAL,
    ]


def test_unchanged_insights_are_returned_as_is():
    item = insight("Utilities", SeverityTier.INFORMATIONAL)

    assert normalize_severities([item], POLICY)[0] is item


def test_keywords_match_whole_words_only():
    advice = insight("Receipts", SeverityTier.INFORMATIONAL, "Keep receipts to avoid disputes.")
    void = insight("Receipts", SeverityTier.INFORMATIONAL, "This clause is void.")

    assert classify(advice, POLICY) is SeverityTier.INFORMATIONAL
    assert classify(void, POLICY) is SeverityTier.WARNING


def test_overviews_keyword_does_not_downgrade():
    item = insight("Access Rights", SeverityTier.WARNING, "See the overviews attached to the lease.")

    assert classify(item, POLICY) is SeverityTier.WARNING


def test_serious_wording_outranks_earlier_downgrades():
    item = insight(
        "Repair Obligations",
        SeverityTier.WARNING,
        "Presented as standard terms, but the clause is unenforceable.",
        rating=92,
    )

    once = normalize_severities([item], POLICY)

    assert once[0].severity is SeverityTier.WARNING
    assert normalize_severities(once, POLICY) == once
