"""Tests for the schedule registry bookkeeping."""

from __future__ import annotations

import asyncio

import pytest

from lifereveal.notifications.models import WEEKLY_REVIEW, NotificationRole
from lifereveal.notifications.registry import ScheduleRegistry


def test_record_active_replaces_role_mapping() -> None:
    registry = ScheduleRegistry()
    registry.record_active(WEEKLY_REVIEW, "a")
    registry.record_active(WEEKLY_REVIEW, "b")

    assert len(registry) == 1
    assert registry.external_id_for(WEEKLY_REVIEW) == "b"


@pytest.mark.asyncio()
async def test_cancel_all_clears_map(triggers) -> None:
    registry = ScheduleRegistry()
    for hour in (8, 9):
        role = NotificationRole.hourly(hour)
        registry.record_active(role, f"id-{hour}")

    failures = await registry.cancel_all(triggers)

    assert failures == []
    assert registry.active_roles() == frozenset()
    assert triggers.calls == [("cancel", "id-8"), ("cancel", "id-9")]


@pytest.mark.asyncio()
async def test_cancel_all_swallows_individual_failures(triggers) -> None:
    """A failed cancel is reported but does not stop the rest."""
    registry = ScheduleRegistry()
    registry.record_active(NotificationRole.hourly(8), "id-8")
    registry.record_active(NotificationRole.hourly(9), "id-9")
    triggers.fail_cancel.add("id-8")

    failures = await registry.cancel_all(triggers)

    assert failures == ["id-8"]
    assert ("cancel", "id-9") in triggers.calls
    assert len(registry) == 0


@pytest.mark.asyncio()
async def test_cancel_all_timeout_counts_as_failure(triggers) -> None:
    class SlowCancel(type(triggers)):
        async def cancel(self, external_id: str) -> None:
            await asyncio.sleep(1)

    registry = ScheduleRegistry()
    registry.record_active(WEEKLY_REVIEW, "slow")

    failures = await registry.cancel_all(SlowCancel(), timeout=0.01)

    assert failures == ["slow"]
    assert len(registry) == 0


@pytest.mark.asyncio()
async def test_snoozes_are_tracked_apart_from_generation(triggers) -> None:
    registry = ScheduleRegistry()
    registry.record_active(WEEKLY_REVIEW, "weekly")
    registry.record_snoozed("snooze-1")

    await registry.cancel_all(triggers)

    assert registry.snoozed_ids() == ["snooze-1"]

    await registry.cancel_snoozes(triggers)

    assert registry.snoozed_ids() == []
    assert triggers.calls == [("cancel", "weekly"), ("cancel", "snooze-1")]


def test_forget_fired_snoozes_keeps_live_ids() -> None:
    registry = ScheduleRegistry()
    registry.record_snoozed("snooze-1")
    registry.record_snoozed("snooze-2")

    dropped = registry.forget_fired_snoozes(["snooze-2", "weekly"])

    assert dropped == ["snooze-1"]
    assert registry.snoozed_ids() == ["snooze-2"]
