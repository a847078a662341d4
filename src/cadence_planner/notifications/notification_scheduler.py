# src/cadence_planner/notifications/notification_scheduler.py

"""
Reminder policy.

Two kinds of notifications:
- one deadline reminder per task with a deadline, keyed by the task id and
  firing a cadence-dependent offset before the deadline;
- up to three recurring batch reminders (daily/weekly/monthly) counting the
  incomplete tasks without a deadline, on fixed local wall-clock schedules.

Every operation is best-effort: failures from the notification center are
logged and swallowed, so scheduling never blocks a task mutation.
All calls are serialized through one lock; each reconciliation recomputes
from the full task population, so the last one to finish wins.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from ..core.ports import NotificationCenter, PreferenceStore
from ..tasks.calendar_utils import Clock, make_clock
from ..tasks.task_models import Cadence, Task
from .notification_models import (
    AuthorizationStatus,
    CalendarTrigger,
    NotificationRequest,
    PendingNotification,
)
from .preferences import NOTIFICATIONS_ENABLED

logger = logging.getLogger(__name__)

DEADLINE_REMINDER_TITLE = "Task Reminder"


@dataclass(frozen=True, slots=True)
class RecurringReminder:
    id: str
    title: str
    trigger: CalendarTrigger


# Fixed local-time policy: daily 20:00, weekly Sunday 09:00, monthly 23rd 09:00.
RECURRING_REMINDERS: dict[Cadence, RecurringReminder] = {
    Cadence.DAILY: RecurringReminder(
        id="daily-reminder",
        title="Daily Tasks Reminder",
        trigger=CalendarTrigger(hour=20, minute=0, repeats=True),
    ),
    Cadence.WEEKLY: RecurringReminder(
        id="weekly-reminder",
        title="Weekly Tasks Reminder",
        trigger=CalendarTrigger(weekday=6, hour=9, minute=0, repeats=True),
    ),
    Cadence.MONTHLY: RecurringReminder(
        id="monthly-reminder",
        title="Monthly Tasks Reminder",
        trigger=CalendarTrigger(day=23, hour=9, minute=0, repeats=True),
    ),
}

RECURRING_IDS: tuple[str, ...] = tuple(r.id for r in RECURRING_REMINDERS.values())


def reminder_time(task: Task) -> dt.datetime | None:
    if task.deadline is None:
        return None
    return task.deadline - task.cadence.info.reminder_offset


def recurring_counts(incomplete_tasks: Iterable[Task]) -> dict[Cadence, int]:
    """Incomplete tasks without a deadline, counted per cadence."""
    counts = {c: 0 for c in Cadence}
    for task in incomplete_tasks:
        if task.is_completed or task.deadline is not None:
            continue
        counts[task.cadence] += 1
    return counts


def recurring_body(cadence: Cadence, count: int) -> str:
    return f"You have {count} {cadence.value} task{'' if count == 1 else 's'} remaining"


def build_deadline_request(task: Task, fire_at: dt.datetime) -> NotificationRequest:
    return NotificationRequest(
        id=task.id,
        title=DEADLINE_REMINDER_TITLE,
        body=task.title,
        trigger=CalendarTrigger.at(fire_at),
        user_info={"task_id": task.id, "cadence": task.cadence.value},
    )


class NotificationScheduler:
    def __init__(
        self,
        center: NotificationCenter,
        preferences: PreferenceStore,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._center = center
        self._prefs = preferences
        self._clock = clock or make_clock()
        self._lock = asyncio.Lock()

    # ---- guards ----

    async def _is_allowed(self) -> bool:
        if not self._prefs.notifications_enabled:
            logger.debug("Notifications disabled by user preference")
            return False
        try:
            status = await self._center.authorization_status()
        except Exception:
            logger.exception("authorization_status failed")
            return False
        if status != AuthorizationStatus.AUTHORIZED:
            logger.debug("Notification authorization status=%s - not authorized", status)
            return False
        return True

    # ---- deadline reminders ----

    async def _schedule_deadline(self, task: Task) -> bool:
        if not await self._is_allowed():
            return False
        if task.is_completed:
            logger.debug("Task %s is completed - skipping reminder", task.short_id)
            return False
        if task.deadline is None:
            logger.debug("Task %s has no deadline - skipping reminder", task.short_id)
            return False

        now = self._clock()
        if task.deadline <= now:
            logger.debug("Task %s deadline is in the past - skipping reminder", task.short_id)
            return False

        fire_at = reminder_time(task)
        if fire_at is None or fire_at <= now:
            logger.debug("Task %s reminder time is in the past - skipping reminder", task.short_id)
            return False

        # Triggers read wall-clock fields, so they must be on the clock's calendar.
        fire_at = fire_at.astimezone(now.tzinfo)
        request = build_deadline_request(task, fire_at)
        if request.trigger.next_after(now) is None:
            logger.debug("Task %s reminder falls within the current second - skipping reminder", task.short_id)
            return False

        try:
            await self._center.register(request)
        except Exception:
            logger.exception("Failed to schedule reminder for task %s", task.id)
            return False

        logger.info("Reminder scheduled task=%s fire_at=%s", task.short_id, fire_at.isoformat())
        return True

    async def _cancel_deadline(self, task_id: str) -> None:
        try:
            await self._center.cancel([task_id])
        except Exception:
            logger.exception("Failed to cancel reminder for task %s", task_id)

    async def schedule_deadline_reminder(self, task: Task) -> bool:
        """Register (or replace) the task's deadline reminder. Returns True if registered."""
        async with self._lock:
            return await self._schedule_deadline(task)

    async def cancel_deadline_reminder(self, task: Task | str) -> None:
        task_id = task if isinstance(task, str) else task.id
        async with self._lock:
            await self._cancel_deadline(task_id)

    # ---- recurring reminders ----

    async def _reconcile_recurring(self, incomplete_tasks: Iterable[Task]) -> dict[Cadence, int]:
        counts = recurring_counts(incomplete_tasks)

        try:
            await self._center.cancel(RECURRING_IDS)
        except Exception:
            logger.exception("Failed to cancel recurring reminders")

        if not await self._is_allowed():
            return counts

        for cadence, reminder in RECURRING_REMINDERS.items():
            count = counts[cadence]
            if count <= 0:
                continue
            request = NotificationRequest(
                id=reminder.id,
                title=reminder.title,
                body=recurring_body(cadence, count),
                trigger=reminder.trigger,
            )
            try:
                await self._center.register(request)
            except Exception:
                logger.exception("Failed to schedule %s", reminder.id)
                continue
            logger.info("%s scheduled (%s) count=%d", reminder.id, reminder.trigger.describe(), count)

        return counts

    async def reconcile_recurring_reminders(self, incomplete_tasks: Iterable[Task]) -> dict[Cadence, int]:
        async with self._lock:
            return await self._reconcile_recurring(list(incomplete_tasks))

    # ---- invocation discipline ----

    async def sync_task(self, task: Task, incomplete_tasks: Iterable[Task]) -> None:
        """
        Re-run both reconciliations after a mutation of `task`'s completion,
        deadline, cadence or existence.
        """
        incomplete = list(incomplete_tasks)
        async with self._lock:
            await self._cancel_deadline(task.id)
            await self._schedule_deadline(task)
            await self._reconcile_recurring(incomplete)

    async def forget_task(self, task_id: str, incomplete_tasks: Iterable[Task]) -> None:
        """After a delete: drop the task's reminder and recount the rest."""
        incomplete = list(incomplete_tasks)
        async with self._lock:
            await self._cancel_deadline(task_id)
            await self._reconcile_recurring(incomplete)

    async def resync_all(self, tasks: Iterable[Task]) -> None:
        """Rebuild every notification from scratch (startup, re-enable)."""
        all_tasks = list(tasks)
        incomplete = [t for t in all_tasks if not t.is_completed]
        async with self._lock:
            for task in all_tasks:
                await self._cancel_deadline(task.id)
                await self._schedule_deadline(task)
            await self._reconcile_recurring(incomplete)

    # ---- authorization / preference ----

    async def request_authorization(self) -> bool:
        try:
            granted = bool(await self._center.request_authorization())
        except Exception:
            logger.exception("Notification authorization request failed")
            return False
        logger.info("Notification permission %s", "granted" if granted else "denied")
        return granted

    async def authorization_status(self) -> AuthorizationStatus:
        try:
            return AuthorizationStatus(await self._center.authorization_status())
        except Exception:
            logger.exception("authorization_status failed")
            return AuthorizationStatus.NOT_DETERMINED

    async def refresh_authorization(self) -> AuthorizationStatus:
        """If the system permission was revoked, turn the user toggle off too."""
        status = await self.authorization_status()
        if status is AuthorizationStatus.DENIED and self._prefs.notifications_enabled:
            self._prefs.set_bool(NOTIFICATIONS_ENABLED, False)
            logger.info("Notifications denied by system settings; preference turned off")
        return status

    async def set_notifications_enabled(self, enabled: bool, tasks: Iterable[Task]) -> bool:
        """
        Apply the user toggle. Returns the effective value.

        On: request authorization; denial flips the preference back off.
        Off: cancel every pending notification.
        """
        all_tasks = list(tasks)
        if not enabled:
            self._prefs.set_bool(NOTIFICATIONS_ENABLED, False)
            async with self._lock:
                try:
                    await self._center.cancel_all()
                except Exception:
                    logger.exception("Failed to cancel pending notifications")
            return False

        self._prefs.set_bool(NOTIFICATIONS_ENABLED, True)
        if not await self.request_authorization():
            self._prefs.set_bool(NOTIFICATIONS_ENABLED, False)
            return False

        await self.resync_all(all_tasks)
        return True

    async def pending_summary(self) -> list[PendingNotification]:
        try:
            return list(await self._center.list_pending())
        except Exception:
            logger.exception("list_pending failed")
            return []
