"""Notification copy for scheduled reminders.

Everything here is deterministic: the same hour or role always yields the
same title and body, across runs.
"""

from __future__ import annotations

from typing import Dict, Tuple

from lifereveal.notifications.models import (
    NotificationContent,
    NotificationRole,
    NotificationType,
    RoleKind,
)


HOURLY_BODIES: Tuple[str, ...] = (
    "How are you feeling right now?",
    "Take a moment to check in with yourself",
    "Log this hour in your journey",
    "Quick reflection: How's this hour going?",
    "Capture this moment in your life reveal",
)

MORNING_CONTENT = NotificationContent(
    title="🌅 Good Morning!",
    body="How are you feeling today? Take a moment to log your morning thoughts.",
)
EVENING_CONTENT = NotificationContent(
    title="🌙 Evening Reflection",
    body="Take a moment to reflect on your day. How did it go?",
)
WEEKLY_REVIEW_CONTENT = NotificationContent(
    title="📊 Weekly Review",
    body="Time to review your week! See your patterns and insights.",
)
SNOOZED_CONTENT = NotificationContent(
    title="⏰ Snoozed Reminder",
    body="Time to log your micro-entry!",
)

TEST_CONTENT: Dict[NotificationType, NotificationContent] = {
    NotificationType.HOURLY_MICRO_LOG: NotificationContent(
        "⏰ Hourly Check-in (Test)", "This is a test of your hourly notification."
    ),
    NotificationType.MORNING_MICRO_LOG: NotificationContent(
        "🌅 Good Morning! (Test)", "This is a test of your morning notification."
    ),
    NotificationType.EVENING_MICRO_LOG: NotificationContent(
        "🌙 Evening Reflection (Test)", "This is a test of your evening notification."
    ),
    NotificationType.WEEKLY_SUMMARY: NotificationContent(
        "📊 Weekly Review (Test)", "This is a test of your weekly review notification."
    ),
    NotificationType.REMINDER: NotificationContent(
        "🔔 Reminder (Test)", "This is a test reminder notification."
    ),
    NotificationType.MONTHLY_REVIEW: NotificationContent(
        "📅 Monthly Review (Test)", "This is a test of your monthly review notification."
    ),
}


def title_for_hour(hour: int) -> str:
    if 5 <= hour < 12:
        return "🌅 Morning Check-in"
    if 12 <= hour < 17:
        return "☀️ Afternoon Pulse"
    if 17 <= hour < 21:
        return "🌆 Evening Reflection"
    return "🌙 Night Review"


def content_for_hour(hour: int) -> NotificationContent:
    """Title by period of day, body rotating through :data:`HOURLY_BODIES`."""
    return NotificationContent(
        title=title_for_hour(hour),
        body=HOURLY_BODIES[hour % len(HOURLY_BODIES)],
    )


def content_for_role(role: NotificationRole) -> NotificationContent:
    if role.kind is RoleKind.HOURLY_SLOT:
        return content_for_hour(role.hour)
    return {
        RoleKind.MORNING_LOG: MORNING_CONTENT,
        RoleKind.EVENING_LOG: EVENING_CONTENT,
        RoleKind.WEEKLY_REVIEW: WEEKLY_REVIEW_CONTENT,
        RoleKind.SNOOZED: SNOOZED_CONTENT,
    }[role.kind]


def content_for_test_notification(notification_type: NotificationType) -> NotificationContent:
    """Copy for the "send test notification" button."""
    return TEST_CONTENT[NotificationType(notification_type)]
