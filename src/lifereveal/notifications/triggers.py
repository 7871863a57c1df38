"""Trigger registry and permission gate interfaces, with host implementations.

The scheduling engine only talks to :class:`TriggerRegistry` and
:class:`PermissionGate`. :class:`APSchedulerTriggerRegistry` backs the
registry with an APScheduler ``AsyncIOScheduler``; fired jobs are delivered
to the configured notification channels.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
from uuid import uuid4

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from lifereveal.errors import CancellationFailedError
from lifereveal.notifications.channels import DeliveredNotification, NotificationChannel
from lifereveal.notifications.models import (
    DailyAt,
    NotificationContent,
    OnceAfter,
    Recurrence,
    WeeklyAt,
)

logger = logging.getLogger(__name__)

# Index 0 is Sunday, matching NotificationSettings.weekly_review_day.
CRON_DAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


class TriggerRegistry(ABC):
    """Host capability for registering future notifications.

    ``register`` and ``cancel`` raise on failure; the scheduling policy turns
    those exceptions into per-item failures.
    """

    @abstractmethod
    async def register(
        self,
        rule: Recurrence,
        content: NotificationContent,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """Register a trigger and return its opaque identifier."""

    @abstractmethod
    async def cancel(self, external_id: str) -> None:
        """Cancel a previously registered trigger."""

    @abstractmethod
    async def enumerate(self) -> List[str]:
        """Identifiers of every trigger still registered; fired one-shots are gone."""

    @abstractmethod
    async def send_now(
        self,
        content: NotificationContent,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """Deliver one notification immediately, bypassing the schedule."""


class PermissionGate(ABC):
    """Host notification permission."""

    @abstractmethod
    async def has_permission(self) -> bool:
        """Whether permission is currently granted."""

    @abstractmethod
    async def request_permission(self) -> bool:
        """Ask for permission; return the resulting decision."""


# ============================================================================
# APScheduler-backed registry
# ============================================================================


def build_trigger(rule: Recurrence, *, tz: Any = None, now: Optional[datetime] = None):
    """Translate a recurrence rule into an APScheduler trigger."""
    if isinstance(rule, DailyAt):
        return CronTrigger(hour=rule.time.hour, minute=rule.time.minute, timezone=tz)
    if isinstance(rule, WeeklyAt):
        return CronTrigger(
            day_of_week=CRON_DAY_NAMES[rule.day],
            hour=rule.time.hour,
            minute=rule.time.minute,
            timezone=tz,
        )
    if isinstance(rule, OnceAfter):
        start = now or datetime.now(timezone.utc)
        return DateTrigger(run_date=start + timedelta(minutes=rule.minutes))
    raise TypeError(f"Unsupported recurrence rule: {rule!r}")


class APSchedulerTriggerRegistry(TriggerRegistry):
    """Trigger registry on top of an ``AsyncIOScheduler``.

    Every registration becomes one job with a fresh UUID id. When a job
    fires, a :class:`DeliveredNotification` built from the registered content is
    handed to each channel.
    """

    def __init__(
        self,
        scheduler: Optional[AsyncIOScheduler] = None,
        *,
        channels: Sequence[NotificationChannel] = (),
        timezone: Optional[str] = None,
        misfire_grace_seconds: int = 300,
    ) -> None:
        if scheduler is None:
            scheduler = AsyncIOScheduler(timezone=timezone) if timezone else AsyncIOScheduler()
        self._scheduler = scheduler
        self._channels = list(channels)
        self._timezone = timezone
        self._misfire_grace_seconds = misfire_grace_seconds

    @property
    def scheduler(self) -> AsyncIOScheduler:
        return self._scheduler

    async def register(
        self,
        rule: Recurrence,
        content: NotificationContent,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> str:
        job_id = str(uuid4())
        data = dict(payload or {})
        self._scheduler.add_job(
            self._fire,
            trigger=build_trigger(rule, tz=self._timezone),
            id=job_id,
            name=str(data.get("role", content.title)),
            args=[content.title, content.body, data],
            misfire_grace_time=self._misfire_grace_seconds,
            coalesce=True,
        )
        logger.debug(f"Registered trigger {job_id} ({rule.describe()})")
        return job_id

    async def cancel(self, external_id: str) -> None:
        try:
            self._scheduler.remove_job(external_id)
        except JobLookupError as exc:
            raise CancellationFailedError(external_id) from exc
        logger.debug(f"Cancelled trigger {external_id}")

    async def enumerate(self) -> List[str]:
        return [job.id for job in self._scheduler.get_jobs()]

    def describe_jobs(self) -> List[Dict[str, Any]]:
        """Job id, name, trigger and next run time for every registered job."""
        rows = []
        for job in self._scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            rows.append({
                "id": job.id,
                "name": job.name,
                "trigger": str(job.trigger),
                "next_run_time": next_run.isoformat() if next_run else None,
            })
        return rows

    async def send_now(
        self,
        content: NotificationContent,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> str:
        notification = DeliveredNotification.from_content(content, payload)
        self._deliver(notification)
        return notification.id

    def _fire(self, title: str, body: str, payload: Dict[str, Any]) -> None:
        self._deliver(DeliveredNotification(title=title, body=body, payload=dict(payload)))

    def _deliver(self, notification: DeliveredNotification) -> None:
        if not self._channels:
            logger.info(f"Notification fired with no channels: {notification.title[:50]}")
            return
        for channel in self._channels:
            if not channel.deliver(notification):
                logger.warning(
                    "Channel delivery failed",
                    extra={
                        "channel": type(channel).__name__,
                        "notification_id": notification.id,
                    },
                )


# ============================================================================
# Permission gates
# ============================================================================


class StaticPermissionGate(PermissionGate):
    """Fixed answer, for hosts that manage permission elsewhere."""

    def __init__(self, granted: bool = True) -> None:
        self.granted = granted
        self.requests = 0

    async def has_permission(self) -> bool:
        return self.granted

    async def request_permission(self) -> bool:
        self.requests += 1
        return self.granted


class FilePermissionGate(PermissionGate):
    """Permission decision persisted in ``permission.json``.

    ``request_permission`` asks through ``prompt`` when no grant is on
    record and stores the answer.
    """

    FILENAME = "permission.json"

    def __init__(self, directory: Path, *, prompt: Optional[Callable[[], bool]] = None) -> None:
        self._path = Path(directory).expanduser() / self.FILENAME
        self._prompt = prompt

    def _read(self) -> bool:
        if not self._path.exists():
            return False
        try:
            return bool(json.loads(self._path.read_text(encoding="utf-8")).get("granted", False))
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read notification permission: {e}")
            return False

    def _write(self, granted: bool) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps({
                "granted": granted,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }, indent=2),
            encoding="utf-8",
        )

    def grant(self) -> None:
        self._write(True)
        logger.info("Notification permission granted")

    def revoke(self) -> None:
        self._write(False)
        logger.info("Notification permission revoked")

    async def has_permission(self) -> bool:
        return self._read()

    async def request_permission(self) -> bool:
        if self._read():
            return True
        if self._prompt is None:
            return False
        granted = bool(self._prompt())
        self._write(granted)
        return granted
