# src/cadence_planner/tasks/task_api.py

"""
High-level task/category operations.

Every mutation follows the same order:
1. validate (ValidationError before anything is written),
2. persist through state.task_store,
3. reconcile notifications when completion, deadline, cadence, title or
   existence changed.

Step 3 is best-effort and never undoes step 2.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any

from ..core.state import AppState
from ..notifications.preferences import CATEGORIES_SEEDED
from .calendar_utils import ensure_aware
from .task_models import (
    DEFAULT_CATEGORIES,
    Cadence,
    Category,
    NotFoundError,
    Task,
    ValidationError,
    new_category,
    new_task,
    toggle_completion,
    validate_title,
)

logger = logging.getLogger(__name__)

_UNSET: Any = object()

# Fields whose change can move a task between reminder buckets or alter its reminder.
_REMINDER_FIELDS = ("title", "cadence", "deadline", "is_completed")


def _normalize_deadline(state: AppState, deadline: datetime | None) -> datetime | None:
    if deadline is None:
        return None
    # Stored and scheduled on the app calendar, whatever zone the caller used.
    tz = state.clock().tzinfo
    return ensure_aware(deadline, tz).astimezone(tz)


def _check_category(state: AppState, category_id: str | None) -> str | None:
    if not category_id:
        return None
    if state.task_store.get_category(category_id) is None:
        raise ValidationError(f"unknown category: {category_id}")
    return category_id


async def _reconcile(state: AppState, task: Task) -> None:
    try:
        incomplete = state.task_store.list_incomplete_tasks()
    except Exception:
        logger.exception("list_incomplete_tasks failed; skipping reminder sync for %s", task.id)
        return
    await state.scheduler.sync_task(task, incomplete)


def resolve_task(state: AppState, ref: str) -> Task:
    """Find a task by full id or unique id prefix."""
    task = state.task_store.get_task(ref)
    if task is not None:
        return task
    matches = state.task_store.find_by_prefix(ref)
    if not matches:
        raise NotFoundError(f"no task matches {ref!r}")
    if len(matches) > 1:
        raise ValidationError(f"{ref!r} is ambiguous ({len(matches)} tasks)")
    return matches[0]


# ---- tasks ----


async def create_task(
    state: AppState,
    *,
    title: str,
    cadence: Cadence | str = Cadence.WEEKLY,
    category_id: str | None = None,
    deadline: datetime | None = None,
    notes: str | None = None,
) -> Task:
    task = new_task(
        title,
        now=state.clock(),
        cadence=cadence,
        category_id=_check_category(state, category_id),
        deadline=_normalize_deadline(state, deadline),
        notes=notes,
    )
    state.task_store.add_task(task)
    logger.info("Task created id=%s cadence=%s", task.short_id, task.cadence.value)

    await _reconcile(state, task)
    return task


async def edit_task(
    state: AppState,
    task_id: str,
    *,
    title: Any = _UNSET,
    cadence: Any = _UNSET,
    category_id: Any = _UNSET,
    deadline: Any = _UNSET,
    notes: Any = _UNSET,
) -> Task | None:
    """
    Change any field except id/created_at. Pass None to clear an optional field.

    Returns the updated task, or None if the id no longer exists.
    """
    current = state.task_store.get_task(task_id)
    if current is None:
        logger.info("edit_task: task %s not found", task_id)
        return None

    changes: dict[str, Any] = {}
    if title is not _UNSET:
        changes["title"] = validate_title(title)
    if cadence is not _UNSET:
        changes["cadence"] = Cadence.parse(cadence)
    if category_id is not _UNSET:
        changes["category_id"] = _check_category(state, category_id)
    if deadline is not _UNSET:
        changes["deadline"] = _normalize_deadline(state, deadline)
    if notes is not _UNSET:
        changes["notes"] = (notes or "").strip() or None

    updated = replace(current, **changes)
    if updated == current:
        return current

    if not state.task_store.update_task(updated):
        logger.info("edit_task: task %s vanished during update", task_id)
        return None
    logger.info("Task edited id=%s fields=%s", updated.short_id, ",".join(sorted(changes)))

    if any(getattr(current, f) != getattr(updated, f) for f in _REMINDER_FIELDS):
        await _reconcile(state, updated)
    return updated


async def toggle_task(state: AppState, task_id: str) -> Task | None:
    current = state.task_store.get_task(task_id)
    if current is None:
        logger.info("toggle_task: task %s not found", task_id)
        return None

    updated = toggle_completion(current, state.clock())
    if not state.task_store.update_task(updated):
        return None
    logger.info("Task %s -> %s", updated.short_id, "completed" if updated.is_completed else "reopened")

    await _reconcile(state, updated)
    return updated


async def delete_task(state: AppState, task_id: str) -> bool:
    """Delete a task and cancel its reminder. Unknown ids are a no-op (False)."""
    deleted = state.task_store.delete_task(task_id)
    if deleted:
        logger.info("Task deleted id=%s", task_id[:8])
    else:
        logger.info("delete_task: task %s not found", task_id)

    try:
        incomplete = state.task_store.list_incomplete_tasks()
    except Exception:
        logger.exception("list_incomplete_tasks failed after delete of %s", task_id)
        incomplete = []
    await state.scheduler.forget_task(task_id, incomplete)
    return deleted


# ---- categories ----


def create_category(state: AppState, name: str, color_hex: str | None = None) -> Category:
    category = new_category(name, color_hex or "#E07A5F")
    state.task_store.add_category(category)
    logger.info("Category created id=%s name=%s", category.id[:8], category.name)
    return category


def update_category(
    state: AppState,
    category_id: str,
    *,
    name: str | None = None,
    color_hex: str | None = None,
) -> Category | None:
    current = state.task_store.get_category(category_id)
    if current is None:
        return None
    updated = replace(
        current,
        name=validate_title(name, what="name") if name is not None else current.name,
        color_hex=color_hex or current.color_hex,
    )
    if not state.task_store.update_category(updated):
        return None
    return updated


def delete_category(state: AppState, category_id: str) -> bool:
    """Tasks in the category are kept and become uncategorized."""
    return state.task_store.delete_category(category_id)


def seed_default_categories(state: AppState) -> int:
    """Insert the default categories once, only into an empty category table."""
    if state.preferences.get_bool(CATEGORIES_SEEDED, False):
        return 0
    if state.task_store.list_categories():
        state.preferences.set_bool(CATEGORIES_SEEDED, True)
        return 0

    for name, color in DEFAULT_CATEGORIES:
        state.task_store.add_category(new_category(name, color))
    state.preferences.set_bool(CATEGORIES_SEEDED, True)
    logger.info("Seeded %d default categories", len(DEFAULT_CATEGORIES))
    return len(DEFAULT_CATEGORIES)


# ---- lifecycle ----


async def startup(state: AppState) -> None:
    """
    Bring notifications in line with the stored tasks.

    Pending notifications are process-local, so they are rebuilt on every start.
    """
    seed_default_categories(state)

    if state.preferences.notifications_enabled:
        await state.scheduler.request_authorization()
    await state.scheduler.refresh_authorization()

    await state.scheduler.resync_all(state.task_store.list_tasks())
