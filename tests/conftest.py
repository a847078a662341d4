# tests/conftest.py

from __future__ import annotations

import datetime as dt
import time
from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace

import pytest
from dateutil import tz

from cadence_planner.core.state import AppState
from cadence_planner.notifications.notification_scheduler import NotificationScheduler
from cadence_planner.tasks.task_store import TaskStore

from .fakes import TZ, FakeClock, FakeNotificationCenter, InMemoryPreferences, at


@pytest.fixture()
def clock() -> FakeClock:
    # Wednesday, 2026-01-14 10:00 (+02:00)
    return FakeClock(at(2026, 1, 14, 10, 0))


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="planner-test",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        prefs_path=tmp_path / "preferences.json",
        timezone="+02:00",
        notifications_auto_grant=True,
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    return TaskStore(settings.tasks_db_path, tz=TZ)


@pytest.fixture()
def prefs() -> InMemoryPreferences:
    return InMemoryPreferences()


@pytest.fixture()
def center() -> FakeNotificationCenter:
    return FakeNotificationCenter()


@pytest.fixture()
def scheduler(center: FakeNotificationCenter, prefs: InMemoryPreferences, clock: FakeClock) -> NotificationScheduler:
    return NotificationScheduler(center, prefs, clock=clock)


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    store: TaskStore,
    prefs: InMemoryPreferences,
    center: FakeNotificationCenter,
    scheduler: NotificationScheduler,
    clock: FakeClock,
) -> AppState:
    """
    AppState wired with deterministic fakes.

    NOTE: We keep the real SQLite TaskStore here because its correctness is
    part of what we want to test; the notification center is faked.
    """
    return AppState(
        settings=settings,
        task_store=store,
        preferences=prefs,
        notification_center=center,
        scheduler=scheduler,
        clock=clock,
    )


# Central European rules as a POSIX TZ string: CEST ends 2026-10-25 03:00.
BERLIN_POSIX_TZ = "CET-1CEST,M3.5.0,M10.5.0/3"


@pytest.fixture()
def berlin() -> dt.tzinfo:
    zone = tz.gettz("Europe/Berlin")
    assert zone is not None
    return zone


@pytest.fixture()
def berlin_local_time(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Run the test with the process local time set to Berlin rules."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset() is not available on this platform")
    monkeypatch.setenv("TZ", BERLIN_POSIX_TZ)
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()
