# tests/test_task_store.py

from __future__ import annotations

import pytest

from taskbell.core.errors import PersistenceError, TaskValidationError
from taskbell.tasks.task_models import CancelReminder, ScheduleReminder, TaskDraft
from taskbell.tasks.task_store import TaskStore

from .fakes import NOW, FakeClock, FakeTaskApi

HOUR = 3600.0


@pytest.fixture()
def store(api: FakeTaskApi, clock: FakeClock) -> TaskStore:
    return TaskStore(api, clock=clock, auth_token="tester")


@pytest.mark.asyncio
async def test_load_orders_by_due_and_failure_empties_state(store: TaskStore, api: FakeTaskApi) -> None:
    api.seed("later", NOW + 2 * HOUR)
    api.seed("sooner", NOW + HOUR)

    tasks = await store.load()
    assert [t.title for t in tasks] == ["sooner", "later"]

    api.fail_with = ConnectionError("network down")
    with pytest.raises(PersistenceError):
        await store.load()
    assert store.tasks == []


@pytest.mark.asyncio
async def test_create_validates_before_calling_api(store: TaskStore, api: FakeTaskApi) -> None:
    with pytest.raises(TaskValidationError):
        await store.create(TaskDraft(title="", due_at=NOW + HOUR))
    assert api.calls == []

    result = await store.create(TaskDraft(title=" Buy milk ", due_at=NOW + HOUR))
    assert result.task is not None
    assert result.task.title == "Buy milk"
    assert result.commands == ()
    assert store.get(result.task.id) == result.task


@pytest.mark.asyncio
async def test_failed_mutation_leaves_memory_untouched(store: TaskStore, api: FakeTaskApi) -> None:
    task = api.seed("keep me", NOW + HOUR)
    await store.load()

    api.fail_with = PersistenceError("500")
    with pytest.raises(PersistenceError):
        await store.update(task.id, TaskDraft(title="changed", due_at=NOW + 2 * HOUR))
    with pytest.raises(PersistenceError):
        await store.remove(task.id)

    assert store.get(task.id).title == "keep me"


@pytest.mark.asyncio
async def test_unknown_task_raises_key_error(store: TaskStore) -> None:
    with pytest.raises(KeyError):
        await store.toggle_complete(99)
    with pytest.raises(KeyError):
        store.set_reminder(99, 10)


@pytest.mark.asyncio
async def test_set_reminder_emits_schedule(store: TaskStore, api: FakeTaskApi) -> None:
    task = api.seed("meeting", NOW + HOUR)
    await store.load()

    result = store.set_reminder(task.id, 15)
    assert result.task.reminder.fire_at == NOW + HOUR - 15 * 60
    assert result.commands == (ScheduleReminder(result.task),)
    assert store.get(task.id).reminder == result.task.reminder


@pytest.mark.asyncio
async def test_stale_set_reminder_warns_and_cancels_previous(store: TaskStore, api: FakeTaskApi) -> None:
    task = api.seed("soon", NOW + 20 * 60)
    await store.load()
    store.set_reminder(task.id, 10)

    result = store.set_reminder(task.id, 30)
    assert result.task.reminder is None
    assert result.commands == (CancelReminder(task.id),)
    assert result.warnings


@pytest.mark.asyncio
async def test_update_moves_reminder_with_due_time(store: TaskStore, api: FakeTaskApi) -> None:
    task = api.seed("report", NOW + HOUR)
    await store.load()
    store.set_reminder(task.id, 10)

    result = await store.update(task.id, TaskDraft(title="report", due_at=NOW + 3 * HOUR))
    assert result.task.reminder.fire_at == NOW + 3 * HOUR - 600
    assert result.commands == (ScheduleReminder(result.task),)


@pytest.mark.asyncio
async def test_update_drops_reminder_that_became_stale(store: TaskStore, api: FakeTaskApi) -> None:
    task = api.seed("report", NOW + HOUR)
    await store.load()
    store.set_reminder(task.id, 30)

    result = await store.update(task.id, TaskDraft(title="report", due_at=NOW + 20 * 60))
    assert result.task.reminder is None
    assert result.commands == (CancelReminder(task.id),)
    assert result.warnings


@pytest.mark.asyncio
async def test_toggle_complete_cancels_and_reopen_does_not_rearm(store: TaskStore, api: FakeTaskApi) -> None:
    task = api.seed("gym", NOW + HOUR)
    await store.load()
    store.set_reminder(task.id, 10)

    done = await store.toggle_complete(task.id)
    assert done.task.completed
    assert done.task.reminder is None
    assert done.commands == (CancelReminder(task.id),)

    reopened = await store.toggle_complete(task.id)
    assert not reopened.task.completed
    assert reopened.commands == ()


@pytest.mark.asyncio
async def test_remove_emits_cancel(store: TaskStore, api: FakeTaskApi) -> None:
    task = api.seed("trash", NOW + HOUR)
    await store.load()
    store.set_reminder(task.id, 10)

    result = await store.remove(task.id)
    assert result.task is None
    assert result.commands == (CancelReminder(task.id),)
    assert store.get(task.id) is None
    assert task.id not in api.rows


@pytest.mark.asyncio
async def test_mark_done_is_idempotent(store: TaskStore, api: FakeTaskApi) -> None:
    task = api.seed("done already", NOW + HOUR, completed=True)
    await store.load()

    result = await store.mark_done(task.id)
    assert result.task.completed
    assert result.commands == (CancelReminder(task.id),)
    assert [name for name, _ in api.calls] == ["list_tasks"]


@pytest.mark.asyncio
async def test_snooze_shifts_due_and_fire_time(store: TaskStore, api: FakeTaskApi) -> None:
    task = api.seed("call mom", NOW + HOUR)
    await store.load()
    store.set_reminder(task.id, 10)

    result = await store.snooze(task.id, 5)
    assert result.task.due_at == NOW + HOUR + 300
    assert result.task.reminder.fire_at == NOW + HOUR - 600 + 300
    assert result.commands == (ScheduleReminder(result.task),)
    assert api.rows[task.id].due_at == NOW + HOUR + 300


@pytest.mark.asyncio
async def test_snooze_rejects_non_positive_minutes(store: TaskStore, api: FakeTaskApi) -> None:
    task = api.seed("x", NOW + HOUR)
    await store.load()
    with pytest.raises(TaskValidationError):
        await store.snooze(task.id, 0)


@pytest.mark.asyncio
async def test_snooze_drops_reminder_still_in_the_past(
    store: TaskStore, api: FakeTaskApi, clock: FakeClock
) -> None:
    task = api.seed("standup", NOW + HOUR)
    await store.load()
    store.set_reminder(task.id, 10)
    clock.current = NOW + HOUR - 600 + 1800

    result = await store.snooze(task.id, 5)
    assert result.task.reminder is None
    assert store.get(task.id).reminder is None
    assert result.commands == (CancelReminder(task.id),)
    assert result.warnings == ("Reminder removed: its time has already passed.",)
    assert result.task.due_at == NOW + HOUR + 300


@pytest.mark.asyncio
async def test_reminders_survive_reload(store: TaskStore, api: FakeTaskApi) -> None:
    keep = api.seed("keep", NOW + HOUR)
    gone = api.seed("gone", NOW + HOUR)
    await store.load()
    store.set_reminder(keep.id, 10)
    store.set_reminder(gone.id, 10)

    del api.rows[gone.id]
    await store.load()

    assert store.get(keep.id).reminder is not None
    assert store.get(gone.id) is None

    # The vanished task's reminder is not resurrected if the id shows up again.
    api.rows[gone.id] = gone
    await store.load()
    assert store.get(gone.id).reminder is None


@pytest.mark.asyncio
async def test_clear_reminder(store: TaskStore, api: FakeTaskApi) -> None:
    task = api.seed("x", NOW + HOUR)
    await store.load()
    store.set_reminder(task.id, 10)

    result = store.clear_reminder(task.id)
    assert result.task.reminder is None
    assert result.commands == (CancelReminder(task.id),)
