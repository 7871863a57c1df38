"""Tests for the error hierarchy and user-facing messages."""

import pytest

from lifereveal.errors import (
    CancellationFailedError,
    ConfigurationError,
    InvalidSettingsError,
    InvalidTimeOfDayError,
    LifeRevealError,
    NotificationError,
    PermissionDeniedError,
    RegistrationFailedError,
    SnoozeDisabledError,
    format_error_for_cli,
    format_error_for_ui,
    handle_error,
    is_recoverable,
)
from lifereveal.errors.user_messages import ERROR_MESSAGES, RECOVERY_SUGGESTIONS


def test_every_code_has_message_and_suggestion():
    assert set(ERROR_MESSAGES) == set(RECOVERY_SUGGESTIONS)


@pytest.mark.parametrize(
    "error_cls",
    [
        NotificationError,
        PermissionDeniedError,
        SnoozeDisabledError,
        InvalidTimeOfDayError,
        ConfigurationError,
        InvalidSettingsError,
    ],
)
def test_codes_are_catalogued(error_cls):
    assert error_cls.code in ERROR_MESSAGES
    assert issubclass(error_cls, LifeRevealError)


def test_default_message_and_user_message():
    error = PermissionDeniedError()

    assert error.message == "Notification permission not granted"
    assert error.user_message == "Notifications are disabled."
    assert "permission --grant" in error.recovery_suggestion


def test_user_message_override():
    error = SnoozeDisabledError(user_message="Snooze is off.")

    assert error.user_message == "Snooze is off."


def test_registration_failed_carries_role():
    error = RegistrationFailedError("hourly-log-9")

    assert error.role == "hourly-log-9"
    assert error.details == {"role": "hourly-log-9"}
    assert "hourly-log-9" in error.message


def test_cancellation_failed_carries_external_id():
    error = CancellationFailedError("job-1")

    assert error.to_dict()["details"] == {"external_id": "job-1"}
    assert error.to_dict()["code"] == "CANCELLATION_FAILED"


def test_value_error_compatibility():
    with pytest.raises(ValueError):
        raise InvalidTimeOfDayError("hour must be in 0..23, got 24")


def test_format_error_for_cli_includes_code_and_details():
    output = format_error_for_cli(RegistrationFailedError("weekly-review"))

    assert output.startswith("Error [REGISTRATION_FAILED]:")
    assert "Suggestion:" in output
    assert "role: weekly-review" in output


def test_format_error_for_ui():
    data = format_error_for_ui(InvalidTimeOfDayError())

    assert data["code"] == "INVALID_TIME_OF_DAY"
    assert data["recoverable"] is False


def test_handle_error_for_unknown_exception():
    message = handle_error(RuntimeError("boom"))

    assert message.startswith(ERROR_MESSAGES["UNKNOWN_ERROR"])
    assert not is_recoverable(RuntimeError("boom"))
    assert is_recoverable(PermissionDeniedError())
