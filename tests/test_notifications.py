# tests/test_notifications.py

from __future__ import annotations

import asyncio

import pytest

from taskkeeper.tasks.notifications import (
    LocalNotificationHost,
    NotificationScheduler,
    reminder_key,
    run_reminder_loop,
)
from taskkeeper.tasks.task_models import ScheduleOutcome, Task

from .fakes import DAY, HOUR, NOW, FakeMessenger, ManualClock, RecordingNotificationHost


def _task(task_id: str = "t1", **kw) -> Task:
    kw.setdefault("title", "Call the dentist")
    kw.setdefault("created_at", NOW - DAY)
    return Task(id=task_id, **kw)


def test_no_reminder_without_due_past_due_or_completed(notifier, host) -> None:
    assert notifier.schedule_for_task(_task("a")) == ScheduleOutcome.SKIPPED
    assert notifier.schedule_for_task(_task("b", due_at=NOW - HOUR)) == ScheduleOutcome.SKIPPED
    assert (
        notifier.schedule_for_task(_task("c", due_at=NOW + HOUR, completed=True, completed_at=NOW))
        == ScheduleOutcome.SKIPPED
    )
    assert host.scheduled == {}
    assert notifier.pending() == {}


def test_schedule_creates_exactly_one_reminder_keyed_by_id(notifier, host) -> None:
    task = _task(due_at=NOW + HOUR, notes="bring insurance card")

    assert notifier.schedule_for_task(task) == ScheduleOutcome.SCHEDULED
    assert host.scheduled == {reminder_key("t1"): ("Call the dentist", "bring insurance card", NOW + HOUR)}
    assert notifier.pending() == {"t1": NOW + HOUR}

    # Rescheduling replaces rather than duplicates.
    notifier.schedule_for_task(_task(due_at=NOW + 2 * HOUR))
    assert list(host.scheduled) == [reminder_key("t1")]
    assert host.scheduled[reminder_key("t1")][2] == NOW + 2 * HOUR


def test_cancel_is_a_noop_when_nothing_is_pending(notifier, host) -> None:
    assert notifier.cancel_for_task("ghost") == ScheduleOutcome.CANCELLED

    notifier.schedule_for_task(_task(due_at=NOW + HOUR))
    notifier.cancel_for_task("t1")
    assert host.scheduled == {}
    assert notifier.pending() == {}


def test_permission_is_requested_once_and_denial_silences_scheduling(clock: ManualClock) -> None:
    host = RecordingNotificationHost(permission=False)
    notifier = NotificationScheduler(host, clock)

    assert notifier.request_permission() is False
    assert notifier.request_permission() is False
    assert notifier.schedule_for_task(_task(due_at=NOW + HOUR)) == ScheduleOutcome.DENIED
    assert host.permission_requests == 1
    assert host.scheduled == {}


def test_permission_request_that_raises_counts_as_denied(clock: ManualClock) -> None:
    class ExplodingHost(RecordingNotificationHost):
        def request_permission(self) -> bool:
            raise RuntimeError("no notification service")

    notifier = NotificationScheduler(ExplodingHost(), clock)
    assert notifier.request_permission() is False
    assert notifier.schedule_for_task(_task(due_at=NOW + HOUR)) == ScheduleOutcome.DENIED


def test_host_errors_are_swallowed(clock: ManualClock) -> None:
    host = RecordingNotificationHost(fail=True)
    notifier = NotificationScheduler(host, clock)

    assert notifier.schedule_for_task(_task(due_at=NOW + HOUR)) == ScheduleOutcome.FAILED
    assert notifier.cancel_for_task("t1") == ScheduleOutcome.FAILED
    assert notifier.pending() == {}


def test_reconcile_follows_resulting_task_state(notifier, host) -> None:
    notifier.reconcile(_task(due_at=NOW + HOUR))
    assert reminder_key("t1") in host.scheduled

    notifier.reconcile(_task(due_at=None))
    assert host.scheduled == {}


def test_reschedule_all_rebuilds_from_collection(notifier, host, clock: ManualClock) -> None:
    notifier.schedule_for_task(_task("gone", due_at=NOW + HOUR))
    notifier.schedule_for_task(_task("soon", due_at=NOW + HOUR))

    # The app was closed for two hours: "soon" is now in the past.
    clock.advance(2 * HOUR)
    tasks = [
        _task("soon", due_at=NOW + HOUR),
        _task("later", due_at=NOW + DAY),
        _task("undated"),
    ]

    assert notifier.reschedule_all(tasks) == 1
    assert notifier.pending() == {"later": NOW + DAY}
    assert set(host.scheduled) == {reminder_key("later")}


def test_pending_forgets_reminders_once_their_time_passes(notifier, clock: ManualClock) -> None:
    notifier.schedule_for_task(_task("t", due_at=NOW + HOUR))
    notifier.schedule_for_task(_task("later", due_at=NOW + DAY))

    clock.advance(2 * HOUR)

    assert notifier.pending() == {"later": NOW + DAY}
    clock.advance(DAY)
    assert notifier.pending() == {}


def test_pending_is_empty_after_local_host_delivers(clock: ManualClock) -> None:
    host = LocalNotificationHost()
    notifier = NotificationScheduler(host, clock)
    notifier.schedule_for_task(_task("t", due_at=NOW + HOUR))

    clock.advance(2 * HOUR)
    assert [r.task_id for r in host.pop_due(clock.now())] == ["t"]

    assert notifier.pending() == {}


def test_local_host_pops_only_due_reminders() -> None:
    host = LocalNotificationHost()
    host.schedule("task:a", title="A", body="a", fire_at=NOW + 10)
    host.schedule("task:b", title="B", body="b", fire_at=NOW - 10)

    due = host.pop_due(NOW)
    assert [r.task_id for r in due] == ["b"]
    assert [r.key for r in host.pending()] == ["task:a"]


def test_local_host_permission_follows_setting() -> None:
    assert LocalNotificationHost(enabled=True).request_permission() is True
    assert LocalNotificationHost(enabled=False).request_permission() is False


@pytest.mark.asyncio
async def test_reminder_loop_delivers_due_reminder_once(clock: ManualClock) -> None:
    host = LocalNotificationHost()
    messenger = FakeMessenger()
    host.schedule("task:t1", title="Stretch", body="stand up", fire_at=NOW - 1)
    host.schedule("task:t2", title="Later", body="not yet", fire_at=NOW + DAY)

    runner = asyncio.create_task(run_reminder_loop(host, messenger, clock, interval_seconds=0.01))

    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert len(messenger.sent) == 1
    assert "Stretch" in messenger.sent[0]
    assert [r.key for r in host.pending()] == ["task:t2"]
