"""User-friendly error messages for Life Reveal.

Human-readable messages and recovery suggestions for every error code, so
the app never shows raw scheduler or storage errors to the user.
"""

from __future__ import annotations

from typing import Any


# =============================================================================
# Error Message Catalog
# =============================================================================

ERROR_MESSAGES: dict[str, str] = {
    # Notification errors
    "NOTIFICATION_ERROR": "Something went wrong with your reminders.",
    "PERMISSION_DENIED": "Notifications are disabled.",
    "REGISTRATION_FAILED": "Some reminders may not have been scheduled.",
    "CANCELLATION_FAILED": "An old reminder could not be removed and may fire once more.",
    "INVALID_TIME_OF_DAY": "That time isn't valid. Use a 24-hour HH:MM time.",
    "SNOOZE_DISABLED": "Snooze is turned off in your notification settings.",
    "INVALID_STATE_TRANSITION": "The reminder scheduler is in an unexpected state.",
    # Configuration errors
    "CONFIGURATION_ERROR": "There's a configuration issue.",
    "INVALID_SETTINGS": "Your notification settings couldn't be read.",
    # Generic
    "LIFEREVEAL_ERROR": "An unexpected error occurred. Please try again.",
    "UNKNOWN_ERROR": "Something went wrong. Please try again.",
}


# =============================================================================
# Recovery Suggestions
# =============================================================================

RECOVERY_SUGGESTIONS: dict[str, str] = {
    "NOTIFICATION_ERROR": "Check the schedule: lifereveal notifications plan",
    "PERMISSION_DENIED": "Allow notifications: lifereveal notifications permission --grant",
    "REGISTRATION_FAILED": "Save your settings again to retry scheduling.",
    "CANCELLATION_FAILED": "It will be replaced on the next successful reschedule.",
    "INVALID_TIME_OF_DAY": "Hours go from 00 to 23 and minutes from 00 to 59.",
    "SNOOZE_DISABLED": "Enable it: lifereveal notifications set-snooze --allow",
    "INVALID_STATE_TRANSITION": "Restart the scheduler: lifereveal notifications run",
    "CONFIGURATION_ERROR": "Check config: lifereveal config show",
    "INVALID_SETTINGS": "Reset to defaults: lifereveal notifications reset",
    "LIFEREVEAL_ERROR": "If this persists, please report the issue.",
    "UNKNOWN_ERROR": "Try restarting Life Reveal. Report if the issue continues.",
}


# =============================================================================
# Lookups and formatting
# =============================================================================


def _error_code(error: Any) -> str:
    if isinstance(error, str):
        return error
    return getattr(error, "code", None) or type(error).__name__.upper()


def _lookup(table: dict[str, str], error: Any) -> str:
    return table.get(_error_code(error)) or table["UNKNOWN_ERROR"]


def get_user_message(error: Any) -> str:
    """Message for an exception or a bare error code."""
    return _lookup(ERROR_MESSAGES, error)


def get_recovery_suggestion(error: Any) -> str:
    return _lookup(RECOVERY_SUGGESTIONS, error)


def format_error_for_user(error: Any) -> str:
    """Message plus suggestion, separated by a blank line."""
    return "\n\n".join(
        (get_user_message(error), f"Suggestion: {get_recovery_suggestion(error)}")
    )


def format_error_for_cli(error: Any) -> str:
    """Multi-line CLI rendering: ``Error [CODE]``, suggestion, then any details.

    Details (role keys, paths, transition states) are listed one per line so
    failed reschedules can be traced back to a specific reminder.
    """
    code = getattr(error, "code", "ERROR")
    out = [
        f"Error [{code}]: {get_user_message(error)}",
        "",
        f"Suggestion: {get_recovery_suggestion(error)}",
    ]
    details = getattr(error, "details", None) or {}
    if details:
        out += ["", "Details:"]
        out += [f"  {name}: {detail}" for name, detail in details.items()]
    return "\n".join(out)


def format_error_for_ui(error: Any) -> dict:
    """Payload for the settings screen banner."""
    return {
        "code": getattr(error, "code", "UNKNOWN_ERROR"),
        "message": get_user_message(error),
        "suggestion": get_recovery_suggestion(error),
        "recoverable": bool(getattr(error, "recoverable", False)),
    }


__all__ = [
    "ERROR_MESSAGES",
    "RECOVERY_SUGGESTIONS",
    "get_user_message",
    "get_recovery_suggestion",
    "format_error_for_user",
    "format_error_for_cli",
    "format_error_for_ui",
]
