import pytest

from adops.core.config import Config
from adops.core.errors import ConfigError
from adops.refresh.policy import DEFAULT_INTERVAL_SECONDS, RefreshOptions, next_delay, validate_interval


def test_next_delay_without_failures_is_interval():
    assert next_delay(5.0, 0) == 5.0


def test_next_delay_doubles_and_caps():
    assert next_delay(5.0, 1) == 10.0
    assert next_delay(5.0, 3) == 40.0
    assert next_delay(5.0, 20, max_backoff=60) == 60


def test_next_delay_never_below_interval():
    assert next_delay(120.0, 2, max_backoff=60) == 120.0


def test_validate_interval():
    assert validate_interval("2.5") == 2.5
    with pytest.raises(ConfigError):
        validate_interval(0)
    with pytest.raises(ConfigError) as excinfo:
        validate_interval("soon")
    assert excinfo.value.details == {"key": "interval_seconds", "section": "refresh"}


def test_options_from_empty_config():
    Config.reset({})
    options = RefreshOptions.from_config()
    assert options.interval == DEFAULT_INTERVAL_SECONDS
    assert options.immediate is True
    assert options.discard_stale is True
    assert options.backoff is False


def test_options_from_config():
    Config.reset({"refresh": {"interval_seconds": 2, "immediate": False, "backoff": True, "max_backoff_seconds": 30}})
    options = RefreshOptions.from_config()
    assert options.interval == 2.0
    assert options.immediate is False
    assert options.backoff is True
    assert options.max_backoff == 30.0
