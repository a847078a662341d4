# src/cadence_planner/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (store, preferences,
  notification center, scheduler, clock).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.state import AppState
from ..notifications.notification_center import LocalNotificationCenter
from ..notifications.notification_scheduler import NotificationScheduler
from ..notifications.preferences import JsonPreferenceStore
from ..tasks.calendar_utils import make_clock, resolve_tz
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.prefs_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    try:
        tz = resolve_tz(getattr(settings, "timezone", "local"))
    except ValueError:
        logger.warning("Invalid timezone %r; using local time.", settings.timezone)
        tz = resolve_tz("local")
    clock = make_clock(tz)

    preferences = JsonPreferenceStore(settings.prefs_path)
    center = LocalNotificationCenter(
        preferences,
        auto_grant=getattr(settings, "notifications_auto_grant", True),
        clock=clock,
    )

    return AppState(
        settings=settings,
        task_store=TaskStore(settings.tasks_db_path, tz=tz),
        preferences=preferences,
        notification_center=center,
        scheduler=NotificationScheduler(center, preferences, clock=clock),
        clock=clock,
    )
