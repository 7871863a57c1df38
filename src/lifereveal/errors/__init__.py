"""Centralized error definitions for Life Reveal.

Usage:
    from lifereveal.errors import LifeRevealError, handle_error

    try:
        await coordinator.start()
    except LifeRevealError as e:
        print(handle_error(e))
"""

from __future__ import annotations

from lifereveal.errors.user_messages import (
    format_error_for_cli,
    format_error_for_ui,
    format_error_for_user,
    get_recovery_suggestion,
    get_user_message,
)


# =============================================================================
# Base Error
# =============================================================================


class LifeRevealError(Exception):
    """Root of every error the engine raises on purpose.

    Subclasses only set ``code``, ``default_message`` and ``recoverable``;
    the user-facing text and suggestion are looked up by ``code`` in
    :mod:`lifereveal.errors.user_messages`. ``details`` carries context such
    as the role key or trigger id and is shown by the CLI formatter.
    """

    code: str = "LIFEREVEAL_ERROR"
    default_message: str = "Unexpected Life Reveal failure"
    recoverable: bool = True

    def __init__(
        self,
        message: str | None = None,
        *,
        user_message: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = dict(details or {})
        self._override = user_message
        super().__init__(self.message)

    @property
    def user_message(self) -> str:
        return self._override or get_user_message(self)

    @property
    def recovery_suggestion(self) -> str:
        return get_recovery_suggestion(self)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "user_message": self.user_message,
            "suggestion": self.recovery_suggestion,
            "recoverable": self.recoverable,
            "details": self.details,
        }


# =============================================================================
# Notification Errors
# =============================================================================


class NotificationError(LifeRevealError):
    """Base error for notification scheduling."""

    code = "NOTIFICATION_ERROR"
    default_message = "Notification scheduling failed"


class PermissionDeniedError(NotificationError):
    """The host platform refused notification permission."""

    code = "PERMISSION_DENIED"
    default_message = "Notification permission not granted"


class RegistrationFailedError(NotificationError):
    """A single logical notification could not be registered."""

    code = "REGISTRATION_FAILED"
    default_message = "Notification registration failed"

    def __init__(self, role: str, *, message: str | None = None) -> None:
        self.role = role
        super().__init__(
            message or f"Could not register notification {role}",
            details={"role": role},
        )


class CancellationFailedError(NotificationError):
    """A previously registered trigger could not be cancelled."""

    code = "CANCELLATION_FAILED"
    default_message = "Notification cancellation failed"

    def __init__(self, external_id: str, *, message: str | None = None) -> None:
        self.external_id = external_id
        super().__init__(
            message or f"Could not cancel trigger {external_id}",
            details={"external_id": external_id},
        )


class InvalidTimeOfDayError(NotificationError, ValueError):
    """Hour or minute outside the 24-hour clock."""

    code = "INVALID_TIME_OF_DAY"
    default_message = "Invalid time of day"
    recoverable = False


class SnoozeDisabledError(NotificationError):
    """Snooze requested while the user has it turned off."""

    code = "SNOOZE_DISABLED"
    default_message = "Snooze is disabled"


class InvalidStateTransitionError(NotificationError, ValueError):
    """Raised when the coordinator lifecycle is asked for an illegal move.

    Example:
        Updating the schedule of a stopped coordinator would move it from
        STOPPED to LOADING, which the transition table forbids.
    """

    code = "INVALID_STATE_TRANSITION"
    default_message = "Invalid coordinator state transition"
    recoverable = False


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(LifeRevealError):
    """Engine configuration file or environment override is unusable."""

    code = "CONFIGURATION_ERROR"
    default_message = "Engine configuration is invalid"


class InvalidSettingsError(ConfigurationError):
    """Persisted settings exist but do not validate."""

    code = "INVALID_SETTINGS"
    default_message = "Invalid notification settings"


# =============================================================================
# Helpers
# =============================================================================


def handle_error(error: Exception) -> str:
    """Text to show the user for any exception, engine-raised or not."""
    return format_error_for_user(error)


def is_recoverable(error: Exception) -> bool:
    return isinstance(error, LifeRevealError) and error.recoverable


__all__ = [
    "LifeRevealError",
    "NotificationError",
    "PermissionDeniedError",
    "RegistrationFailedError",
    "CancellationFailedError",
    "InvalidTimeOfDayError",
    "SnoozeDisabledError",
    "InvalidStateTransitionError",
    "ConfigurationError",
    "InvalidSettingsError",
    "handle_error",
    "is_recoverable",
    "format_error_for_cli",
    "format_error_for_ui",
]
