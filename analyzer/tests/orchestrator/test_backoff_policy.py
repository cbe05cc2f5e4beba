import pytest
from pydantic import ValidationError

from analyzer.app.config import Settings
from analyzer.app.orchestrator.polling import PollingPolicy


def test_default_schedule_grows_geometrically():
    policy = PollingPolicy()

    assert list(policy.schedule())[:4] == [1.0, 1.5, 2.25, 3.375]


def test_delays_never_decrease_and_are_capped():
    policy = PollingPolicy(base_seconds=1.0, growth=1.5, cap_seconds=15.0, max_retries=30)

    delays = list(policy.schedule())

    assert len(delays) == 29
    assert delays == sorted(delays)
    assert max(delays) == 15.0
    assert delays[-1] == 15.0


def test_growth_of_one_is_constant():
    policy = PollingPolicy(base_seconds=2.0, growth=1.0, cap_seconds=2.0, max_retries=4)

    assert list(policy.schedule()) == [2.0, 2.0, 2.0]


def test_cap_below_base_is_rejected():
    with pytest.raises(ValidationError):
        PollingPolicy(base_seconds=10.0, cap_seconds=5.0)


def test_settings_reject_inconsistent_polling_bounds():
    with pytest.raises(ValidationError):
        Settings(poll_backoff_base_seconds=20.0, poll_backoff_cap_seconds=5.0)


def test_settings_derive_polling_policy():
    settings = Settings(max_poll_retries=7, poll_backoff_growth=2.0)

    policy = settings.polling_policy()

    assert policy.max_retries == 7
    assert policy.growth == 2.0
    assert policy.transport_error_delay_seconds == 5.0
