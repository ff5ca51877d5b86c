# tests/test_dispatcher.py

from __future__ import annotations

import pytest

from taskbell.core.state import AppState
from taskbell.notifications.dispatcher import MAX_DELIVERIES
from taskbell.notifications.notification_models import (
    DeliveryChannel,
    DispatchState,
    MarkDone,
    Snooze,
    ToastKind,
)
from taskbell.tasks import task_api
from taskbell.tasks.task_models import TaskDraft

from .fakes import NOW, FakeChime, FakePlatform, FakeTaskApi, ManualTimers, RecordingToastSink

MIN = 60.0


async def _task_with_reminder(state: AppState, api: FakeTaskApi, *, due_in: float, lead: int):
    seeded = api.seed("Water plants", NOW + due_in)
    assert await task_api.load_tasks(state)
    task = task_api.set_reminder(state, seeded.id, lead)
    assert task is not None
    return task


@pytest.mark.asyncio
async def test_reminder_fires_exactly_once_at_fire_time(
    state: AppState, api: FakeTaskApi, timers: ManualTimers, platform: FakePlatform
) -> None:
    platform.permission = "granted"
    task = await _task_with_reminder(state, api, due_in=10 * MIN, lead=5)
    assert task.reminder.fire_at == task.due_at - 5 * MIN

    timers.advance(5 * MIN - 1)
    assert len(state.dispatcher.deliveries) == 0

    timers.advance(1)
    assert len(state.dispatcher.deliveries) == 1
    assert state.dispatcher.deliveries[0].fire_at == task.reminder.fire_at

    timers.advance(60 * MIN)
    assert len(state.dispatcher.deliveries) == 1
    assert len(platform.shown) == 1


@pytest.mark.asyncio
async def test_native_delivery_carries_actions_and_body(
    state: AppState, api: FakeTaskApi, timers: ManualTimers, platform: FakePlatform, chime: FakeChime
) -> None:
    platform.permission = "granted"
    await _task_with_reminder(state, api, due_in=10 * MIN, lead=5)
    timers.advance(5 * MIN)

    delivery = state.dispatcher.deliveries[0]
    assert delivery.channel == DeliveryChannel.NATIVE
    assert delivery.state == DispatchState.DELIVERED_NATIVE
    assert delivery.history[:3] == [DispatchState.ARMED, DispatchState.FIRED, DispatchState.DELIVERED_NATIVE]

    request = platform.shown[0].request
    assert request.title == "Task reminder"
    assert request.body.startswith("Water plants - ")
    assert request.actions == (MarkDone(), Snooze(5))
    assert request.require_interaction is True
    assert chime.plays == 1


@pytest.mark.asyncio
async def test_permission_denied_falls_back_to_toast_dismissed_after_5s(
    state: AppState,
    api: FakeTaskApi,
    timers: ManualTimers,
    platform: FakePlatform,
    toast_sink: RecordingToastSink,
) -> None:
    platform.permission = "denied"
    await _task_with_reminder(state, api, due_in=10 * MIN, lead=5)
    timers.advance(5 * MIN)

    delivery = state.dispatcher.deliveries[0]
    assert delivery.channel == DeliveryChannel.TOAST
    assert delivery.handle is None
    assert platform.shown == []
    assert delivery.toast is not None
    assert delivery.toast.kind == ToastKind.WARNING
    assert delivery.toast.title == "Reminder!"

    timers.advance(4.5)
    assert not delivery.toast.dismissed

    timers.advance(0.5)
    assert delivery.toast.dismissed
    assert delivery.toast.dismiss_reason == "timeout"
    assert delivery.state == DispatchState.TIMED_OUT
    assert delivery.toast in toast_sink.hidden


@pytest.mark.asyncio
async def test_native_failure_falls_back_to_toast(
    state: AppState, api: FakeTaskApi, timers: ManualTimers, platform: FakePlatform
) -> None:
    platform.permission = "granted"
    platform.fail_on_show = True
    await _task_with_reminder(state, api, due_in=10 * MIN, lead=5)
    timers.advance(5 * MIN)

    assert state.dispatcher.deliveries[0].channel == DeliveryChannel.TOAST


@pytest.mark.asyncio
async def test_audio_failure_does_not_block_delivery(
    state: AppState, api: FakeTaskApi, timers: ManualTimers, platform: FakePlatform, chime: FakeChime
) -> None:
    platform.permission = "granted"
    chime.fail = True
    await _task_with_reminder(state, api, due_in=10 * MIN, lead=5)
    timers.advance(5 * MIN)

    assert chime.plays == 1
    assert state.dispatcher.deliveries[0].state == DispatchState.DELIVERED_NATIVE


@pytest.mark.asyncio
async def test_mark_done_action_completes_task_and_clears_timer(
    state: AppState, api: FakeTaskApi, timers: ManualTimers, platform: FakePlatform
) -> None:
    platform.permission = "granted"
    task = await _task_with_reminder(state, api, due_in=10 * MIN, lead=5)
    timers.advance(5 * MIN)

    handle = platform.shown[0]
    await handle.click(MarkDone())

    assert state.store.get(task.id).completed
    assert api.rows[task.id].completed
    assert not state.scheduler.has_pending(task.id)
    assert handle.closed
    assert state.dispatcher.deliveries[0].state == DispatchState.ACTIONED


@pytest.mark.asyncio
async def test_snooze_action_rearms_at_old_fire_time_plus_n(
    state: AppState, api: FakeTaskApi, timers: ManualTimers, platform: FakePlatform
) -> None:
    platform.permission = "granted"
    task = await _task_with_reminder(state, api, due_in=10 * MIN, lead=5)
    old_fire = task.reminder.fire_at
    timers.advance(5 * MIN)

    await platform.shown[0].click(Snooze(5))

    snoozed = state.store.get(task.id)
    assert snoozed.due_at == task.due_at + 5 * MIN
    assert snoozed.reminder.fire_at == old_fire + 5 * MIN
    assert state.scheduler.pending_ids == [task.id]
    assert state.scheduler.fire_at(task.id) == old_fire + 5 * MIN

    timers.advance(5 * MIN)
    assert len(state.dispatcher.deliveries) == 2


@pytest.mark.asyncio
async def test_completing_task_before_fire_suppresses_notification(
    state: AppState, api: FakeTaskApi, timers: ManualTimers, platform: FakePlatform
) -> None:
    platform.permission = "granted"
    task = await _task_with_reminder(state, api, due_in=10 * MIN, lead=5)

    await task_api.toggle_task(state, task.id)
    assert not state.scheduler.has_pending(task.id)

    timers.advance(30 * MIN)
    assert len(state.dispatcher.deliveries) == 0
    assert platform.shown == []


@pytest.mark.asyncio
async def test_editing_task_keeps_a_single_timer(
    state: AppState, api: FakeTaskApi, timers: ManualTimers, platform: FakePlatform
) -> None:
    platform.permission = "granted"
    task = await _task_with_reminder(state, api, due_in=10 * MIN, lead=5)

    await task_api.update_task(state, task.id, TaskDraft(title="Water plants", due_at=NOW + 20 * MIN))
    await task_api.update_task(state, task.id, TaskDraft(title="Water plants", due_at=NOW + 30 * MIN))

    assert state.scheduler.pending_ids == [task.id]

    timers.advance(60 * MIN)
    assert len(state.dispatcher.deliveries) == 1
    assert state.dispatcher.deliveries[0].fire_at == NOW + 25 * MIN


@pytest.mark.asyncio
async def test_toast_action_via_act(
    state: AppState, api: FakeTaskApi, timers: ManualTimers, platform: FakePlatform
) -> None:
    platform.permission = "denied"
    task = await _task_with_reminder(state, api, due_in=10 * MIN, lead=5)
    timers.advance(5 * MIN)

    result = await state.dispatcher.act(MarkDone())
    assert result is not None
    assert state.store.get(task.id).completed
    assert state.dispatcher.latest_open() is None


@pytest.mark.asyncio
async def test_action_on_finished_delivery_is_ignored(
    state: AppState, api: FakeTaskApi, timers: ManualTimers, platform: FakePlatform
) -> None:
    platform.permission = "granted"
    task = await _task_with_reminder(state, api, due_in=10 * MIN, lead=5)
    timers.advance(5 * MIN)

    handle = platform.shown[0]
    await handle.click(MarkDone())
    assert await state.dispatcher.handle_action(state.dispatcher.deliveries[0], Snooze(5)) is None
    assert state.store.get(task.id).due_at == task.due_at


@pytest.mark.asyncio
async def test_fire_for_deleted_task_delivers_nothing(state: AppState, api: FakeTaskApi) -> None:
    assert state.dispatcher.on_reminder_fired(123, NOW) is None
    assert len(state.dispatcher.deliveries) == 0


@pytest.mark.asyncio
async def test_delivery_log_is_capped(state: AppState, api: FakeTaskApi, platform: FakePlatform) -> None:
    platform.permission = "denied"
    task = await _task_with_reminder(state, api, due_in=60 * MIN, lead=5)

    for n in range(MAX_DELIVERIES + 5):
        state.dispatcher.on_reminder_fired(task.id, NOW + n)

    assert len(state.dispatcher.deliveries) == MAX_DELIVERIES
    assert state.dispatcher.deliveries[0].fire_at == NOW + 5
    assert state.dispatcher.latest_open().fire_at == NOW + MAX_DELIVERIES + 4
