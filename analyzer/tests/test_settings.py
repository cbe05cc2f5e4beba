import pytest
from pydantic import ValidationError

from analyzer.app.config import Settings


def test_defaults_build_policies():
    settings = Settings(_env_file=None)

    policy = settings.polling_policy()
    assert (policy.base_seconds, policy.growth, policy.cap_seconds) == (1.0, 1.5, 15.0)
    assert policy.max_retries == 30
    assert settings.severity_policy().high_rating_threshold == 85
    assert settings.page_geometry().safe_bottom_margin == 80
    assert settings.enable_violation_scan is False
    assert settings.enable_compliance_checklist is True


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("ANALYZER_MAX_POLL_RETRIES", "3")
    monkeypatch.setenv("ANALYZER_ENABLE_VIOLATION_SCAN", "true")
    monkeypatch.setenv("ANALYZER_CRITICAL_ISSUE_TITLES", '["Illegal Fee"]')
    monkeypatch.setenv("ANALYZER_OPENAI_API_KEY", "sk-test")

    settings = Settings(_env_file=None)

    assert settings.polling_policy().max_retries == 3
    assert settings.enable_violation_scan is True
    assert settings.severity_policy().critical_issue_titles == ("Illegal Fee",)
    assert "sk-test" not in repr(settings)


def test_cap_below_base_is_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, poll_backoff_base_seconds=10, poll_backoff_cap_seconds=5)


def test_settings_are_frozen():
    settings = Settings(_env_file=None)

    with pytest.raises(ValidationError):
        settings.max_chunk_chars = 10
