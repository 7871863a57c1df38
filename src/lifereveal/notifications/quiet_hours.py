"""Quiet-hours window evaluation.

All comparisons happen on minutes since midnight. A window is half-open:
the start minute is quiet, the end minute is not. When ``start > end`` the
window wraps past midnight; when ``start == end`` the window is empty.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from lifereveal.notifications.config import MINUTES_PER_DAY, QuietHours


@dataclass(frozen=True)
class QuietWindow:
    """Quiet hours reduced to minute-of-day bounds."""

    enabled: bool
    start_minute: int
    end_minute: int

    @classmethod
    def from_quiet_hours(cls, quiet_hours: QuietHours) -> "QuietWindow":
        return cls(
            enabled=quiet_hours.enabled,
            start_minute=quiet_hours.start.minute_of_day,
            end_minute=quiet_hours.end.minute_of_day,
        )


def is_within_quiet_hours(candidate_minute: int, window: QuietWindow) -> bool:
    """Return True if ``candidate_minute`` falls inside the quiet window.

    Args:
        candidate_minute: Minutes since midnight of the candidate trigger
        window: Quiet window to test against

    Returns:
        False when the window is disabled; otherwise ``start <= c < end`` for
        same-day windows and ``c >= start or c < end`` for windows that
        span midnight.
    """
    if not window.enabled:
        return False

    candidate = candidate_minute % MINUTES_PER_DAY
    start = window.start_minute % MINUTES_PER_DAY
    end = window.end_minute % MINUTES_PER_DAY

    if start <= end:
        return start <= candidate < end
    return candidate >= start or candidate < end


def is_quiet_at(quiet_hours: QuietHours, moment: datetime) -> bool:
    """Check the window against a wall-clock moment."""
    return is_within_quiet_hours(
        moment.hour * 60 + moment.minute, QuietWindow.from_quiet_hours(quiet_hours)
    )


def is_quiet_now(quiet_hours: QuietHours, now: Optional[datetime] = None) -> bool:
    """Check whether quiet hours are active right now (local time)."""
    return is_quiet_at(quiet_hours, now or datetime.now())


def suppressed_hours(quiet_hours: QuietHours) -> List[int]:
    """Hours whose on-the-hour check-in would be skipped."""
    window = QuietWindow.from_quiet_hours(quiet_hours)
    return [hour for hour in range(24) if is_within_quiet_hours(hour * 60, window)]
