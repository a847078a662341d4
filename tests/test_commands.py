# tests/test_commands.py

from __future__ import annotations

from cadence_planner.cli.commands import CommandRegistry, registry
from cadence_planner.notifications.notification_models import CalendarTrigger
from cadence_planner.tasks.task_models import Cadence

from .fakes import FakeNotificationCenter, at


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}

    def h2(state, args):
        called["h2"] += 1
        return "h2"

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b", aliases=["bee"])

    notes: list[str] = []
    assert reg.handle(state, "/a x") == "h2"
    assert reg.handle(state, "/BEE y", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_add_and_daily_view(state, center: FakeNotificationCenter) -> None:
    reply = registry.handle(state, "/add daily water plants notes=south_window")
    assert reply is not None and reply.startswith("Added [ ] water plants  (daily)")

    (task,) = state.task_store.list_tasks()
    assert task.cadence is Cadence.DAILY
    assert task.notes == "south window"
    assert "daily-reminder" in center.pending

    view = registry.handle(state, "/daily")
    assert view is not None
    assert view.splitlines()[0] == "Daily: Wednesday, Jan 14"
    assert f"#{task.short_id}" in view


def test_done_and_weekly_view_with_deadline(state) -> None:
    registry.handle(state, "/add weekly file taxes due=2026-01-16")
    (task,) = state.task_store.list_tasks()

    view = registry.handle(state, "/weekly")
    assert view is not None and "[ ] file taxes  (weekly, Due in 2 days)" in view

    registry.handle(state, f"/done {task.short_id}")
    view = registry.handle(state, "/w") or ""
    assert "Completed:" in view
    assert "[x] file taxes" in view


def test_navigation_commands(state) -> None:
    assert (registry.handle(state, "/monthly") or "").startswith("Monthly: January 2026")
    assert (registry.handle(state, "/next") or "").startswith("Monthly: February 2026")
    assert (registry.handle(state, "/prev") or "").startswith("Monthly: January 2026")
    assert (registry.handle(state, "/prev") or "").startswith("Monthly: December 2025")
    assert (registry.handle(state, "/today") or "").startswith("Monthly: January 2026")


def test_errors_are_reported_not_raised(state) -> None:
    assert registry.handle(state, "/add") == "Error: title is required"
    assert (registry.handle(state, "/done deadbeef") or "").startswith("Error: no task matches")
    assert (registry.handle(state, "/add x due=tomorrow") or "").startswith("Error: bad date")
    assert state.task_store.list_tasks() == []


def test_edit_and_remove(state, center: FakeNotificationCenter) -> None:
    registry.handle(state, "/add monthly tidy garage due=2026-01-30")
    (task,) = state.task_store.list_tasks()
    assert task.id in center.pending

    reply = registry.handle(state, f"/edit {task.short_id} due=none title=tidy_shed")
    assert reply is not None and reply.startswith("Updated [ ] tidy shed")
    assert set(center.pending) == {"monthly-reminder"}

    assert registry.handle(state, f"/rm {task.short_id}") == "Deleted tidy shed."
    assert center.pending == {}


def test_notify_off_and_on(state, center: FakeNotificationCenter) -> None:
    registry.handle(state, "/add daily stretch")
    assert registry.handle(state, "/notify off") == "Notifications OFF."
    assert center.pending == {}
    assert registry.handle(state, "/notify") == "Notifications: OFF (system permission: authorized)"

    assert registry.handle(state, "/notify on") == "Notifications ON."
    assert set(center.pending) == {"daily-reminder"}


def test_categories_commands(state) -> None:
    assert registry.handle(state, "/cats") == "No categories."
    assert registry.handle(state, "/cats add Home Office #123456") == "Category added: Home Office"
    assert registry.handle(state, "/cats rename home_office Study") == "Category renamed: Study"

    registry.handle(state, "/add weekly read cat=study")
    (task,) = state.task_store.list_tasks()
    assert task.category_id is not None

    assert registry.handle(state, "/cats rm Study") == "Category deleted."
    reloaded = state.task_store.get_task(task.id)
    assert reloaded is not None and reloaded.category_id is None


def test_due_with_explicit_offset_is_converted(state, center: FakeNotificationCenter) -> None:
    registry.handle(state, "/add weekly call the bank due=2026-01-16T12:00+00:00")
    (task,) = state.task_store.list_tasks()
    assert task.deadline == at(2026, 1, 16, 14)
    assert center.pending[task.id].trigger == CalendarTrigger.at(at(2026, 1, 15, 14))
