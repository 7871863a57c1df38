"""Scheduling policy: settings in, registered notification generation out.

A pass is always a full rebuild. The previous generation is cancelled
before anything new is registered, so old and new triggers for the same
hour never coexist. Registrations are awaited one at a time; a failure
only removes that role from the resulting generation.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, List, Optional, TypeVar

from lifereveal.errors import RegistrationFailedError
from lifereveal.notifications.config import NotificationSettings, TimeOfDay
from lifereveal.notifications.content import SNOOZED_CONTENT, content_for_hour, content_for_role
from lifereveal.notifications.models import (
    EVENING_LOG,
    MORNING_LOG,
    SNOOZED,
    WEEKLY_REVIEW,
    DailyAt,
    NotificationRole,
    OnceAfter,
    ScheduledNotification,
    ScheduleResult,
    WeeklyAt,
)
from lifereveal.notifications.quiet_hours import QuietWindow, is_within_quiet_hours
from lifereveal.notifications.registry import ScheduleRegistry
from lifereveal.notifications.triggers import TriggerRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_schedule(settings: NotificationSettings) -> List[ScheduledNotification]:
    """Compute the notifications that should exist for ``settings``.

    Hourly check-ins and the morning/evening logs are alternatives: only
    one branch contributes. The weekly review is added independently.
    Snoozes are never part of a settings-driven schedule.
    """
    schedule: List[ScheduledNotification] = []

    if settings.hourly_enabled:
        window = QuietWindow.from_quiet_hours(settings.quiet_hours)
        for hour in range(24):
            if is_within_quiet_hours(hour * 60, window):
                continue
            schedule.append(
                ScheduledNotification(
                    role=NotificationRole.hourly(hour),
                    content=content_for_hour(hour),
                    fires_at=DailyAt(TimeOfDay(hour=hour, minute=0)),
                )
            )
    else:
        if settings.morning_enabled:
            schedule.append(
                ScheduledNotification(
                    role=MORNING_LOG,
                    content=content_for_role(MORNING_LOG),
                    fires_at=DailyAt(settings.morning_time),
                )
            )
        if settings.evening_enabled:
            schedule.append(
                ScheduledNotification(
                    role=EVENING_LOG,
                    content=content_for_role(EVENING_LOG),
                    fires_at=DailyAt(settings.evening_time),
                )
            )

    if settings.weekly_review_enabled:
        schedule.append(
            ScheduledNotification(
                role=WEEKLY_REVIEW,
                content=content_for_role(WEEKLY_REVIEW),
                fires_at=WeeklyAt(settings.weekly_review_day, settings.weekly_review_time),
            )
        )

    return schedule


class SchedulingPolicy:
    """Drives the trigger registry from settings.

    Not safe for overlapping ``apply_schedule`` calls; the settings change
    coordinator serializes them.

    Args:
        triggers: Host trigger registry
        registry: Schedule registry owning the current generation
        call_timeout: Optional seconds allowed per register/cancel call; a
            timeout counts as a failure of that single item
    """

    def __init__(
        self,
        triggers: TriggerRegistry,
        registry: Optional[ScheduleRegistry] = None,
        *,
        call_timeout: Optional[float] = None,
    ) -> None:
        self._triggers = triggers
        self._registry = registry if registry is not None else ScheduleRegistry()
        self._call_timeout = call_timeout

    @property
    def registry(self) -> ScheduleRegistry:
        return self._registry

    @property
    def triggers(self) -> TriggerRegistry:
        return self._triggers

    def build_schedule(self, settings: NotificationSettings) -> List[ScheduledNotification]:
        return build_schedule(settings)

    async def apply_schedule(self, settings: NotificationSettings) -> ScheduleResult:
        """Replace the current generation with the one ``settings`` call for.

        Never raises for registry-layer failures; they are reported in the
        returned :class:`ScheduleResult`.
        """
        cancellation_failures = await self._registry.cancel_all(
            self._triggers, timeout=self._call_timeout
        )

        planned = build_schedule(settings)
        result = ScheduleResult(
            requested_roles=[item.role for item in planned],
            cancellation_failures=cancellation_failures,
        )

        for item in planned:
            try:
                external_id = await self._call(
                    self._triggers.register(item.fires_at, item.content, item.payload())
                )
            except Exception as exc:
                failure = RegistrationFailedError(item.role.key)
                logger.warning(
                    f"{failure.message}: {exc}",
                    extra={"role": item.role.key, "rule": item.fires_at.describe()},
                )
                result.failed.append(item.role)
                continue

            self._registry.record_active(item.role, external_id)
            result.scheduled[item.role] = external_id
            logger.debug(f"Scheduled {item.role.key} ({item.fires_at.describe()})")

        logger.info(
            f"Schedule applied: {len(result.scheduled)}/{len(planned)} notifications registered"
            + (f", {len(result.failed)} failed" if result.failed else "")
            + (
                f", {len(cancellation_failures)} stale triggers not cancelled"
                if cancellation_failures
                else ""
            )
        )
        return result

    async def snooze(self, minutes: int) -> str:
        """Register a one-shot reminder ``minutes`` from now.

        Leaves the current generation untouched; several snoozes may be
        pending at once.

        Raises:
            ValueError: If ``minutes`` is not positive
            RegistrationFailedError: If the trigger registry refuses it
        """
        if minutes <= 0:
            raise ValueError(f"Snooze minutes must be positive, got {minutes}")

        await self._forget_fired_snoozes()

        item = ScheduledNotification(
            role=SNOOZED, content=SNOOZED_CONTENT, fires_at=OnceAfter(minutes)
        )
        try:
            external_id = await self._call(
                self._triggers.register(item.fires_at, item.content, item.payload())
            )
        except Exception as exc:
            logger.warning(f"Error snoozing notification: {exc}")
            raise RegistrationFailedError(SNOOZED.key) from exc

        self._registry.record_snoozed(external_id)
        logger.info(f"Snoozed notification for {minutes} minutes")
        return external_id

    async def cancel_everything(self) -> List[str]:
        """Cancel the generation and every pending snooze."""
        await self._forget_fired_snoozes()
        failures = await self._registry.cancel_all(self._triggers, timeout=self._call_timeout)
        failures += await self._registry.cancel_snoozes(self._triggers, timeout=self._call_timeout)
        return failures

    async def _forget_fired_snoozes(self) -> None:
        if not self._registry.snoozed_ids():
            return
        try:
            live = await self._call(self._triggers.enumerate())
        except Exception as exc:
            logger.warning(f"Could not list registered triggers: {exc}")
            return
        self._registry.forget_fired_snoozes(live)

    async def _call(self, awaitable: Awaitable[T]) -> T:
        if self._call_timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, self._call_timeout)
