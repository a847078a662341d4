# src/cadence_planner/notifications/notification_models.py

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ..tasks.task_models import PlannerError


class SchedulingFailure(PlannerError):
    """The notification center rejected a registration."""


class AuthorizationDenied(SchedulingFailure):
    """Notification permission is not granted."""


class AuthorizationStatus(StrEnum):
    NOT_DETERMINED = "not_determined"
    DENIED = "denied"
    AUTHORIZED = "authorized"

    @classmethod
    def from_db(cls, raw: str | None) -> AuthorizationStatus:
        if not raw:
            return cls.NOT_DETERMINED
        try:
            return cls(raw)
        except Exception:
            return cls.NOT_DETERMINED


@dataclass(frozen=True, slots=True)
class RelativeDelay:
    """Fire `seconds` after registration (and every `seconds` if repeating)."""

    seconds: float
    repeats: bool = False


@dataclass(frozen=True, slots=True)
class CalendarTrigger:
    """
    Fire when local wall-clock time matches the given components.

    Unset components match anything, so CalendarTrigger(hour=20, repeats=True)
    fires every day at 20:00. weekday follows datetime.weekday() (Monday=0).
    """

    hour: int = 0
    minute: int = 0
    second: int = 0
    year: int | None = None
    month: int | None = None
    day: int | None = None
    weekday: int | None = None
    repeats: bool = False

    @classmethod
    def at(cls, when: dt.datetime) -> CalendarTrigger:
        """One-shot trigger at `when`'s wall-clock second, read on `when`'s own calendar."""
        return cls(
            year=when.year,
            month=when.month,
            day=when.day,
            hour=when.hour,
            minute=when.minute,
            second=when.second,
            repeats=False,
        )

    def _matches_date(self, d: dt.date) -> bool:
        if self.year is not None and d.year != self.year:
            return False
        if self.month is not None and d.month != self.month:
            return False
        if self.day is not None and d.day != self.day:
            return False
        if self.weekday is not None and d.weekday() != self.weekday:
            return False
        return True

    def next_after(self, after: dt.datetime, *, horizon_days: int = 366 * 8) -> dt.datetime | None:
        """
        First matching instant strictly after `after`, on `after`'s calendar.

        Returns None when nothing matches inside the horizon (e.g. a one-shot
        date in the past, or Feb 30).
        """
        tz = after.tzinfo
        fire_time = dt.time(self.hour, self.minute, self.second)
        day = after.date()
        for _ in range(horizon_days):
            if self.year is not None and day.year > self.year:
                return None
            if self._matches_date(day):
                candidate = dt.datetime.combine(day, fire_time, tzinfo=tz)
                if candidate > after:
                    return candidate
            day += dt.timedelta(days=1)
        return None

    def describe(self) -> str:
        hm = f"{self.hour:02d}:{self.minute:02d}"
        if self.second:
            hm += f":{self.second:02d}"
        if self.year is not None and self.month is not None and self.day is not None:
            return f"{self.year:04d}-{self.month:02d}-{self.day:02d} {hm}"
        if self.day is not None:
            return f"day {self.day} of every month at {hm}"
        if self.weekday is not None:
            name = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")[
                self.weekday
            ]
            return f"every {name} at {hm}"
        return f"every day at {hm}"


FiringSpec = RelativeDelay | CalendarTrigger


@dataclass(frozen=True, slots=True)
class NotificationRequest:
    id: str
    title: str
    body: str
    trigger: FiringSpec
    user_info: dict[str, Any] = field(default_factory=dict)

    @property
    def repeats(self) -> bool:
        return self.trigger.repeats


@dataclass(frozen=True, slots=True)
class PendingNotification:
    request: NotificationRequest
    registered_at: dt.datetime
    next_fire_at: dt.datetime

    @property
    def id(self) -> str:
        return self.request.id


def first_fire_time(trigger: FiringSpec, registered_at: dt.datetime) -> dt.datetime | None:
    if isinstance(trigger, RelativeDelay):
        if trigger.seconds <= 0:
            return None
        return registered_at + dt.timedelta(seconds=trigger.seconds)
    return trigger.next_after(registered_at)


def following_fire_time(pending: PendingNotification) -> dt.datetime | None:
    """Next instant after a delivery, or None for one-shot requests."""
    trigger = pending.request.trigger
    if not trigger.repeats:
        return None
    if isinstance(trigger, RelativeDelay):
        return pending.next_fire_at + dt.timedelta(seconds=trigger.seconds)
    return trigger.next_after(pending.next_fire_at)
