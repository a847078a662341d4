# src/cadence_planner/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..notifications.notification_scheduler import NotificationScheduler
from ..tasks.calendar_utils import Clock
from ..tasks.task_models import Cadence
from ..tasks.task_visibility import TaskViewModel
from .ports import NotificationCenter, PreferenceStore, TaskRepo


@dataclass
class AppState:
    """
    Explicit dependency container.

    Nothing in the core reaches for a global scheduler or preference; it all
    comes through here so tests can swap in fakes.
    """

    settings: Any

    task_store: TaskRepo
    preferences: PreferenceStore
    notification_center: NotificationCenter
    scheduler: NotificationScheduler
    clock: Clock

    # NotificationBackgroundRunner when the CLI runs the loop in a thread.
    runner: Any = None

    views: dict[Cadence, TaskViewModel] = field(default_factory=dict)
    active_cadence: Cadence = Cadence.DAILY

    def view(self, cadence: Cadence | None = None) -> TaskViewModel:
        c = cadence or self.active_cadence
        vm = self.views.get(c)
        if vm is None:
            vm = TaskViewModel(self.task_store, c, clock=self.clock)
            self.views[c] = vm
        return vm
