# src/cadence_planner/cli/commands.py

from __future__ import annotations

import asyncio
import datetime as dt
import inspect
import logging
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar, cast

from ..core.state import AppState
from ..tasks import task_api
from ..tasks.calendar_utils import ensure_aware, format_deadline, period_label
from ..tasks.task_models import Cadence, PlannerError, Task, ValidationError
from ..tasks.task_visibility import sort_for_display

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

T = TypeVar("T")

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except PlannerError as e:
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def run_async(state: AppState, coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine on the notification loop (or a fresh loop when none is running)."""
    if state.runner is not None:
        return state.runner.call(coro)
    return asyncio.run(coro)


def _parse_when(raw: str, state: AppState) -> dt.datetime | None:
    """YYYY-MM-DD or YYYY-MM-DDTHH:MM; "none" clears. Date-only means 09:00."""
    if raw.lower() in ("none", "-", ""):
        return None
    try:
        parsed = dt.datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"bad date {raw!r} (use YYYY-MM-DD or YYYY-MM-DDTHH:MM)") from None
    if len(raw) == 10:
        parsed = parsed.replace(hour=9)
    tz = state.clock().tzinfo
    return ensure_aware(parsed, tz).astimezone(tz)


def _split_options(args: list[str]) -> tuple[list[str], dict[str, str]]:
    words: list[str] = []
    opts: dict[str, str] = {}
    for a in args:
        key, sep, value = a.partition("=")
        if sep and key in ("due", "cat", "notes", "cadence", "title"):
            opts[key] = value.replace("_", " ") if key in ("notes", "title") else value
        else:
            words.append(a)
    return words, opts


def _category_id(state: AppState, name_or_id: str) -> str | None:
    if name_or_id.lower() in ("none", "-"):
        return None
    needle = name_or_id.replace("_", " ").lower()
    for c in state.task_store.list_categories():
        if c.id.startswith(name_or_id) or c.name.lower() == needle:
            return c.id
    raise ValidationError(f"unknown category: {name_or_id}")


def _render_task(task: Task, state: AppState) -> str:
    box = "[x]" if task.is_completed else "[ ]"
    bits = [task.cadence.value]
    if task.deadline is not None:
        bits.append(format_deadline(task.deadline, state.clock()))
    return f"{box} {task.title}  ({', '.join(bits)})  #{task.short_id}"


def _render_view(state: AppState) -> str:
    vm = state.view()
    visible = vm.refresh()
    lines = [f"{vm.cadence.info.display_name}: {period_label(vm.reference_date, vm.cadence)}"]
    if visible.is_empty:
        lines.append("  (no tasks)")
        return "\n".join(lines)
    for task in sort_for_display(visible.incomplete):
        lines.append("  " + _render_task(task, state))
    if visible.completed:
        lines.append("  Completed:")
        for task in sort_for_display(visible.completed):
            lines.append("  " + _render_task(task, state))
    return "\n".join(lines)


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_add(state: AppState, args: list[str]) -> str:
    """/add [daily|weekly|monthly] <title...> [due=YYYY-MM-DD[THH:MM]] [cat=<name>] [notes=...]"""
    words, opts = _split_options(args)
    cadence: Cadence | str = Cadence.WEEKLY
    if words and words[0].lower() in {c.value for c in Cadence}:
        cadence = words.pop(0)
    if "cadence" in opts:
        cadence = opts["cadence"]

    task = run_async(
        state,
        task_api.create_task(
            state,
            title=" ".join(words),
            cadence=cadence,
            category_id=_category_id(state, opts["cat"]) if "cat" in opts else None,
            deadline=_parse_when(opts["due"], state) if "due" in opts else None,
            notes=opts.get("notes"),
        ),
    )
    return "Added " + _render_task(task, state)


def cmd_edit(state: AppState, args: list[str]) -> str:
    """/edit <id> [title=...] [cadence=...] [due=...|none] [cat=...|none] [notes=...]"""
    if not args:
        return "Usage: /edit <id> title=... cadence=... due=... cat=... notes=..."
    task = task_api.resolve_task(state, args[0])
    _, opts = _split_options(args[1:])
    if not opts:
        return "Nothing to change."

    kwargs: dict[str, Any] = {}
    if "title" in opts:
        kwargs["title"] = opts["title"]
    if "cadence" in opts:
        kwargs["cadence"] = opts["cadence"]
    if "due" in opts:
        kwargs["deadline"] = _parse_when(opts["due"], state)
    if "cat" in opts:
        kwargs["category_id"] = _category_id(state, opts["cat"])
    if "notes" in opts:
        kwargs["notes"] = opts["notes"]

    updated = run_async(state, task_api.edit_task(state, task.id, **kwargs))
    if updated is None:
        return "Task no longer exists."
    return "Updated " + _render_task(updated, state)


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <id>"
    task = task_api.resolve_task(state, args[0])
    updated = run_async(state, task_api.toggle_task(state, task.id))
    if updated is None:
        return "Task no longer exists."
    return _render_task(updated, state)


def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <id>"
    task = task_api.resolve_task(state, args[0])
    run_async(state, task_api.delete_task(state, task.id))
    return f"Deleted {task.title}."


def _view_command(cadence: Cadence) -> CommandHandler2:
    def handler(state: AppState, args: list[str]) -> str:
        state.active_cadence = cadence
        if args:
            when = _parse_when(args[0], state)
            if when is not None:
                state.view().go_to(when)
        return _render_view(state)

    return handler


def cmd_prev(state: AppState, args: list[str]) -> str:
    state.view().previous()
    return _render_view(state)


def cmd_next(state: AppState, args: list[str]) -> str:
    state.view().next()
    return _render_view(state)


def cmd_today(state: AppState, args: list[str]) -> str:
    state.view().today()
    return _render_view(state)


def cmd_cats(state: AppState, args: list[str]) -> str:
    """
    /cats                    -> list
    /cats add <name> [#hex]  -> create
    /cats rename <id> <name> -> rename
    /cats rm <id>            -> delete (tasks become uncategorized)
    """
    if not args:
        cats = state.task_store.list_categories()
        if not cats:
            return "No categories."
        return "\n".join(f"  {c.name} {c.color_hex}  #{c.id[:8]}" for c in cats)

    sub = args[0].lower()
    if sub == "add" and len(args) >= 2:
        color = args[-1] if args[-1].startswith("#") and len(args) > 2 else None
        name_parts = args[1:-1] if color else args[1:]
        cat = task_api.create_category(state, " ".join(name_parts), color)
        return f"Category added: {cat.name}"
    if sub == "rename" and len(args) >= 3:
        cat_id = _category_id(state, args[1])
        updated = task_api.update_category(state, cat_id or "", name=" ".join(args[2:]))
        return f"Category renamed: {updated.name}" if updated else "Category not found."
    if sub == "rm" and len(args) >= 2:
        cat_id = _category_id(state, args[1])
        ok = task_api.delete_category(state, cat_id or "")
        return "Category deleted." if ok else "Category not found."
    return "Usage: /cats | /cats add <name> [#hex] | /cats rename <id> <name> | /cats rm <id>"


def cmd_notify(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /notify          -> show status
    /notify on|off   -> toggle reminders
    /notify pending  -> list pending notifications
    """
    scheduler = state.scheduler
    if not args:
        status = run_async(state, scheduler.refresh_authorization())
        enabled = "ON" if state.preferences.notifications_enabled else "OFF"
        return f"Notifications: {enabled} (system permission: {status.value})"

    arg = args[0].lower()
    if arg in ("on", "off"):
        if emit and arg == "on":
            emit("[NOTIFY] Requesting permission...")
        effective = run_async(
            state, scheduler.set_notifications_enabled(arg == "on", state.task_store.list_tasks())
        )
        if arg == "on" and not effective:
            return "Notification permission denied; reminders stay OFF."
        return f"Notifications {'ON' if effective else 'OFF'}."

    if arg == "pending":
        pending = run_async(state, scheduler.pending_summary())
        if not pending:
            return "No pending notifications."
        lines = [f"Pending notifications ({len(pending)}):"]
        for p in pending:
            lines.append(f"  {p.id}: {p.request.title} - {p.request.body} @ {p.next_fire_at:%Y-%m-%d %H:%M}")
        return "\n".join(lines)

    return "Usage: /notify | /notify on | /notify off | /notify pending"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("add", cmd_add, help_text="Add a task: /add [daily|weekly|monthly] <title> [due=...] [cat=...].")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> title=... due=...|none cadence=...")
registry.register("done", cmd_done, help_text="Toggle completion: /done <id>.", aliases=["toggle"])
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.", aliases=["del"])
registry.register("daily", _view_command(Cadence.DAILY), help_text="Daily view [YYYY-MM-DD].", aliases=["d"])
registry.register("weekly", _view_command(Cadence.WEEKLY), help_text="Weekly view [YYYY-MM-DD].", aliases=["w"])
registry.register("monthly", _view_command(Cadence.MONTHLY), help_text="Monthly view [YYYY-MM-DD].", aliases=["m"])
registry.register("prev", cmd_prev, help_text="Previous period in the current view.")
registry.register("next", cmd_next, help_text="Next period in the current view.")
registry.register("today", cmd_today, help_text="Jump back to the current period.")
registry.register("cats", cmd_cats, help_text="Categories: /cats | add | rename | rm.")
registry.register("notify", cmd_notify, help_text="Reminders: /notify | on | off | pending.")
