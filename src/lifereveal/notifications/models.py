"""Domain models for the notification scheduling engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from lifereveal.notifications.config import TimeOfDay


WEEKDAY_NAMES: Tuple[str, ...] = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)


class NotificationType(str, Enum):
    """Category carried in every notification payload."""

    HOURLY_MICRO_LOG = "HOURLY_MICRO_LOG"
    MORNING_MICRO_LOG = "MORNING_MICRO_LOG"
    EVENING_MICRO_LOG = "EVENING_MICRO_LOG"
    REMINDER = "REMINDER"
    WEEKLY_SUMMARY = "WEEKLY_SUMMARY"
    MONTHLY_REVIEW = "MONTHLY_REVIEW"


class RoleKind(str, Enum):
    HOURLY_SLOT = "hourly-log"
    MORNING_LOG = "morning-log"
    EVENING_LOG = "evening-log"
    WEEKLY_REVIEW = "weekly-review"
    SNOOZED = "snoozed-log"


_ROLE_TYPES: Dict[RoleKind, NotificationType] = {
    RoleKind.HOURLY_SLOT: NotificationType.HOURLY_MICRO_LOG,
    RoleKind.MORNING_LOG: NotificationType.MORNING_MICRO_LOG,
    RoleKind.EVENING_LOG: NotificationType.EVENING_MICRO_LOG,
    RoleKind.WEEKLY_REVIEW: NotificationType.WEEKLY_SUMMARY,
    RoleKind.SNOOZED: NotificationType.HOURLY_MICRO_LOG,
}


@dataclass(frozen=True, order=True)
class NotificationRole:
    """Stable logical identity of a scheduled notification.

    The role is independent of the handle the trigger registry assigns, so
    two passes with the same settings produce equal roles even when the
    physical identifiers differ.
    """

    kind: RoleKind
    hour: Optional[int] = None

    def __post_init__(self) -> None:
        if self.kind is RoleKind.HOURLY_SLOT:
            if self.hour is None or not 0 <= self.hour <= 23:
                raise ValueError(f"Hourly slot needs an hour in 0..23, got {self.hour!r}")
        elif self.hour is not None:
            raise ValueError(f"{self.kind.value} does not take an hour")

    @classmethod
    def hourly(cls, hour: int) -> "NotificationRole":
        return cls(RoleKind.HOURLY_SLOT, hour)

    @classmethod
    def from_key(cls, key: str) -> "NotificationRole":
        """Parse a role key such as ``hourly-log-14`` or ``weekly-review``."""
        prefix = RoleKind.HOURLY_SLOT.value + "-"
        if key.startswith(prefix):
            return cls.hourly(int(key[len(prefix):]))
        return cls(RoleKind(key))

    @property
    def key(self) -> str:
        if self.kind is RoleKind.HOURLY_SLOT:
            return f"{self.kind.value}-{self.hour}"
        return self.kind.value

    @property
    def notification_type(self) -> NotificationType:
        return _ROLE_TYPES[self.kind]

    def __str__(self) -> str:
        return self.key


MORNING_LOG = NotificationRole(RoleKind.MORNING_LOG)
EVENING_LOG = NotificationRole(RoleKind.EVENING_LOG)
WEEKLY_REVIEW = NotificationRole(RoleKind.WEEKLY_REVIEW)
SNOOZED = NotificationRole(RoleKind.SNOOZED)


@dataclass(frozen=True)
class NotificationContent:
    title: str
    body: str


@dataclass(frozen=True)
class DailyAt:
    """Fires every day at the given wall-clock time."""

    time: TimeOfDay

    def describe(self) -> str:
        return f"daily at {self.time}"


@dataclass(frozen=True)
class WeeklyAt:
    """Fires every week on ``day`` (0 = Sunday) at the given time."""

    day: int
    time: TimeOfDay

    def __post_init__(self) -> None:
        if not 0 <= self.day <= 6:
            raise ValueError(f"day must be in 0..6, got {self.day}")

    def describe(self) -> str:
        return f"every {WEEKDAY_NAMES[self.day]} at {self.time}"


@dataclass(frozen=True)
class OnceAfter:
    """Fires once, ``minutes`` after registration."""

    minutes: int

    def __post_init__(self) -> None:
        if self.minutes <= 0:
            raise ValueError(f"minutes must be positive, got {self.minutes}")

    def describe(self) -> str:
        return f"once in {self.minutes} min"


Recurrence = Union[DailyAt, WeeklyAt, OnceAfter]


@dataclass(frozen=True)
class ScheduledNotification:
    """One logical notification a scheduling pass wants registered."""

    role: NotificationRole
    content: NotificationContent
    fires_at: Recurrence

    def payload(self) -> Dict[str, object]:
        """Data attached to the trigger and echoed back on activation."""
        data: Dict[str, object] = {
            "role": self.role.key,
            "type": self.role.notification_type.value,
        }
        if self.role.hour is not None:
            data["hour"] = self.role.hour
        if self.role.kind is RoleKind.SNOOZED:
            data["snoozed"] = True
        return data


@dataclass
class ScheduleResult:
    """Outcome of one ``apply_schedule`` pass.

    Attributes:
        requested_roles: Roles the pass tried to register, in order
        scheduled: Role to external identifier for every success
        failed: Roles whose registration failed
        cancellation_failures: Old identifiers that could not be cancelled
    """

    requested_roles: List[NotificationRole] = field(default_factory=list)
    scheduled: Dict[NotificationRole, str] = field(default_factory=dict)
    failed: List[NotificationRole] = field(default_factory=list)
    cancellation_failures: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def user_summary(self) -> Optional[str]:
        """Message for the user when reminders went missing, else None."""
        if self.ok:
            return None
        return (
            f"Some reminders may not have been scheduled "
            f"({len(self.failed)} of {len(self.requested_roles)})."
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "requested": [role.key for role in self.requested_roles],
            "scheduled": {role.key: ext_id for role, ext_id in self.scheduled.items()},
            "failed": [role.key for role in self.failed],
            "cancellation_failures": list(self.cancellation_failures),
        }
