"""Tests for notification delivery channels."""

from __future__ import annotations

from pathlib import Path

from lifereveal.notifications.channels import DeliveredNotification, DesktopChannel, InboxChannel
from lifereveal.notifications.content import WEEKLY_REVIEW_CONTENT


def test_delivered_notification_dict_round_trip() -> None:
    notification = DeliveredNotification.from_content(WEEKLY_REVIEW_CONTENT, {"role": "weekly-review"})

    restored = DeliveredNotification.from_dict(notification.to_dict())

    assert restored.id == notification.id
    assert restored.role_key == "weekly-review"
    assert restored.fired_at == notification.fired_at
    assert restored.delivered_at is None


def test_inbox_persists_between_instances(tmp_path: Path) -> None:
    inbox = InboxChannel(tmp_path)
    inbox.deliver(DeliveredNotification(title="first", body="x"))
    inbox.deliver(DeliveredNotification(title="second", body="y"))

    reopened = InboxChannel(tmp_path)

    assert [n.title for n in reopened.recent()] == ["second", "first"]
    assert all(n.delivered_at is not None for n in reopened.recent())


def test_inbox_acknowledge_and_clear(tmp_path: Path) -> None:
    inbox = InboxChannel(tmp_path)
    notification = DeliveredNotification(title="hello", body="x")
    inbox.deliver(notification)

    assert inbox.acknowledge(notification.id)
    assert not inbox.acknowledge("missing")
    assert inbox.recent(unread_only=True) == []
    assert inbox.clear() == 1
    assert InboxChannel(tmp_path).recent() == []


def test_inbox_keeps_most_recent(tmp_path: Path) -> None:
    inbox = InboxChannel(tmp_path)
    for i in range(InboxChannel.CAPACITY + 5):
        inbox.deliver(DeliveredNotification(title=f"n{i}", body=""))

    titles = [n.title for n in InboxChannel(tmp_path).recent(limit=1000)]

    assert len(titles) == InboxChannel.CAPACITY
    assert titles[0] == f"n{InboxChannel.CAPACITY + 4}"
    assert titles[-1] == "n5"


def test_inbox_ignores_corrupt_file(tmp_path: Path) -> None:
    (tmp_path / InboxChannel.FILENAME).write_text("[{", encoding="utf-8")

    assert InboxChannel(tmp_path).recent() == []


def test_desktop_channel_hands_off_files(tmp_path: Path) -> None:
    handoff = tmp_path / "pending"
    channel = DesktopChannel(handoff)
    assert not channel.is_available()

    notification = DeliveredNotification(title="desk", body="x", payload={"role": "morning-log"})
    assert channel.deliver(notification)

    assert channel.is_available()
    assert channel.pending() == [handoff / f"{notification.id}.json"]
    drained = channel.drain()
    assert [n.role_key for n in drained] == ["morning-log"]
    assert channel.pending() == []
