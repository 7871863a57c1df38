"""Notification scheduling engine.

Turns the user's notification preferences into a set of registered
reminders (hourly check-ins outside quiet hours, morning/evening logs,
the weekly review) and keeps that set in step with every settings change.
"""

from lifereveal.notifications.config import (
    DEFAULT_NOTIFICATION_SETTINGS,
    JsonSettingsStore,
    MemorySettingsStore,
    NotificationSettings,
    QuietHours,
    SettingsStore,
    TimeOfDay,
    update_quiet_hours,
    update_settings,
)
from lifereveal.notifications.coordinator import SettingsChangeCoordinator
from lifereveal.notifications.models import (
    NotificationContent,
    NotificationRole,
    NotificationType,
    ScheduledNotification,
    ScheduleResult,
)
from lifereveal.notifications.policy import SchedulingPolicy, build_schedule
from lifereveal.notifications.quiet_hours import QuietWindow, is_within_quiet_hours
from lifereveal.notifications.registry import ScheduleRegistry
from lifereveal.notifications.triggers import (
    APSchedulerTriggerRegistry,
    FilePermissionGate,
    PermissionGate,
    StaticPermissionGate,
    TriggerRegistry,
)

__all__ = [
    "DEFAULT_NOTIFICATION_SETTINGS",
    "JsonSettingsStore",
    "MemorySettingsStore",
    "NotificationSettings",
    "QuietHours",
    "SettingsStore",
    "TimeOfDay",
    "update_quiet_hours",
    "update_settings",
    "SettingsChangeCoordinator",
    "NotificationContent",
    "NotificationRole",
    "NotificationType",
    "ScheduledNotification",
    "ScheduleResult",
    "SchedulingPolicy",
    "build_schedule",
    "QuietWindow",
    "is_within_quiet_hours",
    "ScheduleRegistry",
    "APSchedulerTriggerRegistry",
    "FilePermissionGate",
    "PermissionGate",
    "StaticPermissionGate",
    "TriggerRegistry",
]
