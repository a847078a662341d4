# tests/test_task_api.py

from __future__ import annotations

import asyncio
import datetime as dt

import pytest

from cadence_planner.core.state import AppState
from cadence_planner.notifications.notification_models import CalendarTrigger
from cadence_planner.tasks import task_api
from cadence_planner.tasks.task_models import DEFAULT_CATEGORIES, Cadence, NotFoundError, Task, ValidationError

from .fakes import FakeClock, FakeNotificationCenter, at


@pytest.mark.asyncio
async def test_create_defaults_to_weekly(state: AppState, clock: FakeClock) -> None:
    task = await task_api.create_task(state, title="  clean gutters  ")
    assert task.cadence is Cadence.WEEKLY
    assert task.title == "clean gutters"
    assert task.created_at == clock()
    assert (task.is_completed, task.completed_at, task.deadline) == (False, None, None)
    assert state.task_store.get_task(task.id) == task


@pytest.mark.asyncio
@pytest.mark.parametrize("title", ["", "   ", None])
async def test_create_rejects_empty_title_before_writing(
    state: AppState, center: FakeNotificationCenter, title: str | None
) -> None:
    with pytest.raises(ValidationError):
        await task_api.create_task(state, title=title)  # type: ignore[arg-type]
    assert state.task_store.list_tasks() == []
    assert center.calls == []


@pytest.mark.asyncio
async def test_create_rejects_unknown_cadence_and_category(state: AppState) -> None:
    with pytest.raises(ValidationError):
        await task_api.create_task(state, title="x", cadence="yearly")
    with pytest.raises(ValidationError):
        await task_api.create_task(state, title="x", category_id="nope")
    assert state.task_store.list_tasks() == []


@pytest.mark.asyncio
async def test_naive_deadline_is_read_on_the_app_calendar(state: AppState) -> None:
    task = await task_api.create_task(state, title="dentist", deadline=dt.datetime(2026, 1, 20, 15, 0))
    assert task.deadline == at(2026, 1, 20, 15)


@pytest.mark.asyncio
async def test_toggle_twice_restores_task(state: AppState, clock: FakeClock) -> None:
    for cadence in Cadence:
        original = await task_api.create_task(state, title=f"{cadence} chore", cadence=cadence)

        done = await task_api.toggle_task(state, original.id)
        assert done is not None
        assert done.is_completed and done.completed_at == clock()

        clock.advance(hours=1)
        reopened = await task_api.toggle_task(state, original.id)
        assert reopened == original
        assert state.task_store.get_task(original.id) == original


@pytest.mark.asyncio
async def test_missing_ids_are_no_ops(state: AppState) -> None:
    assert await task_api.toggle_task(state, "missing") is None
    assert await task_api.edit_task(state, "missing", title="x") is None
    assert await task_api.delete_task(state, "missing") is False


@pytest.mark.asyncio
async def test_edit_changes_fields_and_validates(state: AppState) -> None:
    task = await task_api.create_task(state, title="plan trip", cadence=Cadence.MONTHLY, notes="Lisbon")

    updated = await task_api.edit_task(state, task.id, title="plan summer trip", cadence="weekly", notes="")
    assert updated is not None
    assert (updated.title, updated.cadence, updated.notes) == ("plan summer trip", Cadence.WEEKLY, None)
    assert updated.created_at == task.created_at

    with pytest.raises(ValidationError):
        await task_api.edit_task(state, task.id, title=" ")
    assert state.task_store.get_task(task.id) == updated


@pytest.mark.asyncio
async def test_edit_without_reminder_change_skips_reconcile(
    state: AppState, center: FakeNotificationCenter
) -> None:
    task = await task_api.create_task(state, title="read book")
    center.calls.clear()

    await task_api.edit_task(state, task.id, notes="chapter 3")
    assert center.calls == []

    await task_api.edit_task(state, task.id, notes="chapter 3")
    assert center.calls == []


@pytest.mark.asyncio
async def test_delete_cancels_reminder_even_if_row_is_gone(
    state: AppState, center: FakeNotificationCenter, clock: FakeClock
) -> None:
    task = await task_api.create_task(state, title="renew lease", deadline=clock() + dt.timedelta(days=4))
    assert task.id in center.pending

    state.task_store.delete_task(task.id)
    assert await task_api.delete_task(state, task.id) is False
    assert task.id not in center.pending


def test_resolve_task_by_prefix(state: AppState) -> None:
    task = asyncio.run(task_api.create_task(state, title="x"))
    assert task_api.resolve_task(state, task.short_id) == task
    assert task_api.resolve_task(state, task.id) == task
    with pytest.raises(NotFoundError):
        task_api.resolve_task(state, "zzzz")


def test_seed_default_categories_runs_once(state: AppState) -> None:
    assert task_api.seed_default_categories(state) == len(DEFAULT_CATEGORIES)
    names = {c.name for c in state.task_store.list_categories()}
    assert names == {name for name, _ in DEFAULT_CATEGORIES}

    health = next(c for c in state.task_store.list_categories() if c.name == "Health")
    task_api.delete_category(state, health.id)
    assert task_api.seed_default_categories(state) == 0
    assert len(state.task_store.list_categories()) == len(DEFAULT_CATEGORIES) - 1


def test_category_crud(state: AppState) -> None:
    cat = task_api.create_category(state, "Garden", "#00FF00")
    renamed = task_api.update_category(state, cat.id, name="Garden & Yard")
    assert renamed is not None and renamed.name == "Garden & Yard"
    assert renamed.color_hex == "#00FF00"
    assert task_api.update_category(state, "missing", name="x") is None

    with pytest.raises(ValidationError):
        task_api.create_category(state, "  ")
    assert task_api.delete_category(state, cat.id) is True


@pytest.mark.asyncio
async def test_startup_rebuilds_notifications(state: AppState, center: FakeNotificationCenter) -> None:
    # Rows written by an earlier session: nothing is registered for them yet.
    state.task_store.add_task(Task(id="a1", title="stretch", cadence=Cadence.DAILY, created_at=at(2026, 1, 1)))
    state.task_store.add_task(Task(id="b2", title="vacuum", cadence=Cadence.WEEKLY, created_at=at(2026, 1, 1)))
    assert center.pending == {}

    await task_api.startup(state)
    assert set(center.pending) == {"daily-reminder", "weekly-reminder"}
    assert len(state.task_store.list_categories()) == len(DEFAULT_CATEGORIES)


@pytest.mark.asyncio
async def test_deadline_is_stored_on_app_calendar(state: AppState, center: FakeNotificationCenter) -> None:
    deadline = dt.datetime(2026, 1, 16, 12, 0, tzinfo=dt.timezone.utc)
    task = await task_api.create_task(state, title="call the bank", cadence=Cadence.WEEKLY, deadline=deadline)

    assert task.deadline == deadline
    assert task.deadline is not None and task.deadline.utcoffset() == dt.timedelta(hours=2)
    assert (task.deadline.day, task.deadline.hour) == (16, 14)
    assert state.task_store.get_task(task.id) == task
    assert center.pending[task.id].trigger == CalendarTrigger.at(at(2026, 1, 15, 14))
