# src/cadence_planner/tasks/task_models.py

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import StrEnum


class PlannerError(Exception):
    """Base class for planner errors."""


class ValidationError(PlannerError, ValueError):
    """Rejected input (empty title/name, unknown cadence). Raised before any store write."""


class NotFoundError(PlannerError, LookupError):
    """A task or category id that no longer exists."""


class Cadence(StrEnum):
    """
    Recurrence category of a task.

    Per-cadence behaviour lives in CADENCE_INFO (and RECURRING_REMINDERS in the
    notification scheduler); both tables must cover every member.
    """

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def parse(cls, raw: str | Cadence | None) -> Cadence:
        if isinstance(raw, Cadence):
            return raw
        value = (raw or "").strip().lower()
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"unknown cadence: {raw!r}") from None

    @classmethod
    def from_db(cls, raw: str | None) -> Cadence:
        if not raw:
            return cls.WEEKLY
        try:
            return cls(raw)
        except Exception:
            return cls.WEEKLY

    @property
    def info(self) -> CadenceInfo:
        return CADENCE_INFO[self]


@dataclass(frozen=True, slots=True)
class CadenceInfo:
    display_name: str
    # How long before the deadline the one-shot reminder fires.
    reminder_offset: timedelta
    # Cadences whose deadlines promote tasks into this cadence's view.
    promoted_from: tuple[Cadence, ...]


CADENCE_INFO: dict[Cadence, CadenceInfo] = {
    Cadence.DAILY: CadenceInfo(
        display_name="Daily",
        reminder_offset=timedelta(hours=1),
        promoted_from=(Cadence.WEEKLY, Cadence.MONTHLY),
    ),
    Cadence.WEEKLY: CadenceInfo(
        display_name="Weekly",
        reminder_offset=timedelta(days=1),
        promoted_from=(Cadence.MONTHLY,),
    ),
    Cadence.MONTHLY: CadenceInfo(
        display_name="Monthly",
        reminder_offset=timedelta(days=3),
        promoted_from=(),
    ),
}


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    cadence: Cadence
    created_at: datetime

    category_id: str | None = None
    deadline: datetime | None = None
    notes: str | None = None

    # completed_at is set iff is_completed.
    is_completed: bool = False
    completed_at: datetime | None = None

    @property
    def short_id(self) -> str:
        return self.id[:8]


@dataclass(frozen=True, slots=True)
class Category:
    id: str
    name: str
    color_hex: str = "#E07A5F"


DEFAULT_CATEGORIES: tuple[tuple[str, str], ...] = (
    ("Home Improvement", "#E07A5F"),
    ("Errands", "#3D405B"),
    ("Work", "#81B29A"),
    ("Personal", "#F2CC8F"),
    ("Health", "#E94560"),
)


def new_id() -> str:
    return uuid.uuid4().hex


def validate_title(title: str | None, *, what: str = "title") -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError(f"{what} is required")
    return cleaned


def new_task(
    title: str,
    *,
    now: datetime,
    cadence: Cadence | str = Cadence.WEEKLY,
    category_id: str | None = None,
    deadline: datetime | None = None,
    notes: str | None = None,
) -> Task:
    """Build a fresh, incomplete task. Raises ValidationError on bad input."""
    return Task(
        id=new_id(),
        title=validate_title(title),
        cadence=Cadence.parse(cadence),
        created_at=now,
        category_id=category_id,
        deadline=deadline,
        notes=(notes or "").strip() or None,
    )


def new_category(name: str, color_hex: str = "#E07A5F") -> Category:
    return Category(id=new_id(), name=validate_title(name, what="name"), color_hex=color_hex)


def toggle_completion(task: Task, now: datetime) -> Task:
    """Flip completion; completed_at follows to `now` or None."""
    completed = not task.is_completed
    return replace(task, is_completed=completed, completed_at=now if completed else None)
