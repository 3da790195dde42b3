from adops.core.errors import AdOpsError, ConfigError, FetchOperationError


def test_wrap_preserves_message_and_cause():
    original = RuntimeError("network error")
    wrapped = FetchOperationError.wrap(original, source="telemetry")
    assert str(wrapped) == "network error"
    assert wrapped.__cause__ is original
    assert wrapped.as_dict() == {
        "error_type": "FetchOperationError",
        "message": "network error",
        "source": "telemetry",
        "details": {"cause": "RuntimeError"},
    }


def test_wrap_keeps_existing_fetch_errors():
    error = FetchOperationError("HTTP 500", status_code=500)
    assert FetchOperationError.wrap(error) is error


def test_wrap_names_silent_exceptions():
    assert str(FetchOperationError.wrap(TimeoutError())) == "TimeoutError"


def test_config_error_details():
    error = ConfigError("bad", key="interval_seconds", section="refresh")
    assert isinstance(error, AdOpsError)
    assert error.details == {"key": "interval_seconds", "section": "refresh"}
