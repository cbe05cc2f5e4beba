import pytest

from analyzer.app.errors import MalformedResponseError
from analyzer.app.orchestrator.json_extract import extract_json_object, find_balanced_object


def test_extracts_object_wrapped_in_markdown_fence():
    text = 'Here is the analysis:\n```json\n{"insights": [], "complianceScore": 80}\n```\nThanks.'

    assert extract_json_object(text) == {"insights": [], "complianceScore": 80}


def test_braces_inside_strings_do_not_confuse_matching():
    text = 'prefix {"title": "Clause {7} \\"quoted\\" }", "n": 1} suffix {"other": 2}'

    payload = extract_json_object(text)

    assert payload == {"title": 'Clause {7} "quoted" }', "n": 1}


def test_unclosed_leading_brace_is_skipped():
    text = 'note { not closed ... {"ok": true}'

    span = find_balanced_object(text)

    assert span is not None
    assert text[span[0]:span[1]] == '{"ok": true}'


def test_missing_object_raises_with_excerpt():
    text = "I could not analyse this document. " * 40

    with pytest.raises(MalformedResponseError) as excinfo:
        extract_json_object(text)

    assert len(excinfo.value.excerpt) == 500


def test_invalid_json_raises_malformed():
    with pytest.raises(MalformedResponseError):
        extract_json_object("{'single': 'quotes'}")


def test_many_unclosed_braces_before_object():
    text = "{ " * 20_000 + '{"insights": [], "complianceScore": 55} trailing {'

    span = find_balanced_object(text)

    assert span == (40_000, text.index(" trailing"))
    assert extract_json_object(text) == {"insights": [], "complianceScore": 55}


def test_outer_object_wins_over_nested_one():
    text = 'x {"a": {"b": 1}, "c": 2} y'

    assert extract_json_object(text) == {"a": {"b": 1}, "c": 2}


def test_stray_closing_brace_is_ignored():
    assert extract_json_object('} } {"ok": 1}') == {"ok": 1}
