"""Shared fakes for notification engine tests."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

import pytest

from lifereveal.notifications.models import NotificationContent, Recurrence
from lifereveal.notifications.triggers import TriggerRegistry


class FakeTriggerRegistry(TriggerRegistry):
    """In-memory trigger registry recording every call.

    Attributes:
        fail_roles: Role keys whose registration raises
        fail_cancel: External ids whose cancellation raises
        register_delay: Seconds each registration sleeps (to interleave passes)
    """

    def __init__(self) -> None:
        self.active: Dict[str, Tuple[Recurrence, NotificationContent, Dict[str, Any]]] = {}
        self.calls: List[Tuple[str, str]] = []
        self.sent: List[Tuple[NotificationContent, Dict[str, Any]]] = []
        self.fail_roles: Set[str] = set()
        self.fail_cancel: Set[str] = set()
        self.register_delay: float = 0.0
        self._counter = 0

    async def register(
        self,
        rule: Recurrence,
        content: NotificationContent,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> str:
        data = dict(payload or {})
        role = str(data.get("role"))
        self.calls.append(("register", role))
        if self.register_delay:
            await asyncio.sleep(self.register_delay)
        if role in self.fail_roles:
            raise RuntimeError(f"host refused {role}")
        self._counter += 1
        external_id = f"trigger-{self._counter}"
        self.active[external_id] = (rule, content, data)
        return external_id

    async def cancel(self, external_id: str) -> None:
        self.calls.append(("cancel", external_id))
        if external_id in self.fail_cancel:
            raise RuntimeError(f"cannot cancel {external_id}")
        self.active.pop(external_id, None)

    async def enumerate(self) -> List[str]:
        return list(self.active)

    async def send_now(
        self,
        content: NotificationContent,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> str:
        self.sent.append((content, dict(payload or {})))
        return f"sent-{len(self.sent)}"

    def roles(self) -> List[str]:
        return sorted(str(data.get("role")) for _, _, data in self.active.values())


@pytest.fixture
def triggers() -> FakeTriggerRegistry:
    return FakeTriggerRegistry()
