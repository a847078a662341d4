# src/cadence_planner/tasks/task_visibility.py

"""
Task visibility.

Decides which tasks appear in a cadence view for a browsed reference date:

- own-cadence tasks are carried forward while incomplete, starting from the
  period they were created in; once completed they stay pinned to the period
  of their completion;
- a coarser-cadence task is promoted into a finer view only while its deadline
  falls inside the browsed period (completion does not matter).

visible_tasks() is pure. TaskViewModel is the stateful wrapper a UI uses to
browse periods and recompute on store changes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime

from ..core.ports import TaskRepo
from .calendar_utils import Clock, in_same_period, make_clock, period_started_by, step
from .task_models import Cadence, Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VisibleTasks:
    incomplete: list[Task] = field(default_factory=list)
    completed: list[Task] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.incomplete) + len(self.completed)

    @property
    def is_empty(self) -> bool:
        return not self.incomplete and not self.completed


def _own_cadence_visible(task: Task, ref: datetime) -> bool:
    if not period_started_by(task.created_at, ref, task.cadence):
        return False
    if not task.is_completed:
        return True
    return task.completed_at is not None and in_same_period(task.completed_at, ref, task.cadence)


def is_visible(task: Task, cadence: Cadence, ref: datetime) -> bool:
    if task.cadence == cadence:
        return _own_cadence_visible(task, ref)

    if task.cadence in cadence.info.promoted_from:
        return task.deadline is not None and in_same_period(task.deadline, ref, cadence)

    return False


def visible_tasks(
    all_tasks: Iterable[Task],
    cadence: Cadence,
    reference_date: datetime | None = None,
) -> VisibleTasks:
    """
    Partition the tasks visible in `cadence`'s view for `reference_date`.

    reference_date defaults to now (local calendar). Order within each bucket
    follows the input order; callers sort for display.
    """
    ref = reference_date if reference_date is not None else make_clock()()

    incomplete: list[Task] = []
    completed: list[Task] = []
    for task in all_tasks:
        if not is_visible(task, cadence, ref):
            continue
        (completed if task.is_completed else incomplete).append(task)

    return VisibleTasks(incomplete=incomplete, completed=completed)


def sort_for_display(tasks: Iterable[Task]) -> list[Task]:
    """Most recently created first."""
    return sorted(tasks, key=lambda t: t.created_at, reverse=True)


ViewListener = Callable[[VisibleTasks], None]


class TaskViewModel:
    """
    One browsable cadence view over a TaskRepo.

    Recomputes on demand (refresh) or, after bind(), whenever the store reports
    a change. Listeners receive each recomputed VisibleTasks.
    """

    def __init__(
        self,
        repo: TaskRepo,
        cadence: Cadence,
        *,
        reference_date: datetime | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._repo = repo
        self._clock = clock or make_clock()
        self.cadence = cadence
        self.reference_date = reference_date or self._clock()
        self._current = VisibleTasks()
        self._listeners: list[ViewListener] = []
        self._unbind: Callable[[], None] | None = None

    @property
    def current(self) -> VisibleTasks:
        return self._current

    def refresh(self) -> VisibleTasks:
        self._current = visible_tasks(self._repo.list_tasks(), self.cadence, self.reference_date)
        for listener in list(self._listeners):
            try:
                listener(self._current)
            except Exception:
                logger.exception("View listener failed cadence=%s", self.cadence.value)
        return self._current

    # ---- navigation ----

    def previous(self) -> VisibleTasks:
        self.reference_date = step(self.reference_date, self.cadence, -1)
        return self.refresh()

    def next(self) -> VisibleTasks:
        self.reference_date = step(self.reference_date, self.cadence, 1)
        return self.refresh()

    def today(self) -> VisibleTasks:
        self.reference_date = self._clock()
        return self.refresh()

    def go_to(self, reference_date: datetime) -> VisibleTasks:
        self.reference_date = reference_date
        return self.refresh()

    # ---- subscriptions ----

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def bind(self) -> None:
        """Recompute automatically after every store mutation."""
        if self._unbind is None:
            self._unbind = self._repo.subscribe(self.refresh)

    def unbind(self) -> None:
        if self._unbind is not None:
            self._unbind()
            self._unbind = None
