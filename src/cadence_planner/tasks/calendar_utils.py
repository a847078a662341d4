# src/cadence_planner/tasks/calendar_utils.py

"""
Calendar period arithmetic.

All helpers work on aware datetimes and compare calendar periods, not elapsed
durations. Two-argument helpers express the first value in the timezone of the
reference value, so the reference decides which calendar is used. Naive values
are taken to be local wall-clock time.

Weeks start on Monday.
"""

from __future__ import annotations

import calendar
import datetime as dt
import re
from collections.abc import Callable

from dateutil import tz as dateutil_tz

from .task_models import Cadence

try:
    from zoneinfo import ZoneInfo
except Exception:  # pragma: no cover
    ZoneInfo = None  # type: ignore

_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")

Clock = Callable[[], dt.datetime]


def local_tz() -> dt.tzinfo:
    """The system zone with its DST rules (TZ or /etc/localtime), not today's offset."""
    return dateutil_tz.tzlocal()


def resolve_tz(name: str | None) -> dt.tzinfo:
    """Resolve "local", "UTC", an IANA name or a fixed offset into a tzinfo.

    Raises ValueError for invalid identifiers.
    """
    s = (name or "").strip()
    low = s.lower()
    if not s or low in {"local", "system"}:
        return local_tz()
    if low in {"utc", "z", "gmt"}:
        return dt.timezone.utc

    m = _OFFSET_RE.match(s)
    if m:
        sign_s, hh_s, mm_s = m.groups()
        hh, mm = int(hh_s), int(mm_s)
        if hh > 23 or mm > 59:
            raise ValueError(f"Invalid timezone offset: {s!r}")
        sign = 1 if sign_s == "+" else -1
        return dt.timezone(dt.timedelta(minutes=sign * (hh * 60 + mm)))

    if ZoneInfo is not None:
        try:
            return ZoneInfo(s)
        except Exception as ex:
            raise ValueError(f"Invalid timezone identifier: {s!r}") from ex

    raise ValueError(f"Timezone database unavailable for {s!r}")


def make_clock(tz: dt.tzinfo | None = None) -> Clock:
    zone = tz or local_tz()

    def clock() -> dt.datetime:
        return dt.datetime.now(zone)

    return clock


def ensure_aware(d: dt.datetime, tz: dt.tzinfo | None = None) -> dt.datetime:
    if d.tzinfo is None:
        return d.replace(tzinfo=tz or local_tz())
    return d


def _align(d: dt.datetime, ref: dt.datetime) -> dt.datetime:
    """Express `d` on the reference value's calendar."""
    ref = ensure_aware(ref)
    return ensure_aware(d, ref.tzinfo).astimezone(ref.tzinfo)


# ---- period boundaries ----


def start_of_day(d: dt.datetime) -> dt.datetime:
    return ensure_aware(d).replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(d: dt.datetime) -> dt.datetime:
    day = start_of_day(d)
    return day - dt.timedelta(days=day.weekday())


def end_of_week(d: dt.datetime) -> dt.datetime:
    return start_of_week(d) + dt.timedelta(days=6)


def start_of_month(d: dt.datetime) -> dt.datetime:
    return start_of_day(d).replace(day=1)


def end_of_month(d: dt.datetime) -> dt.datetime:
    first = start_of_month(d)
    last_day = calendar.monthrange(first.year, first.month)[1]
    return first.replace(day=last_day)


# ---- period comparisons ----


def is_same_day(a: dt.datetime, b: dt.datetime) -> bool:
    return _align(a, b).date() == ensure_aware(b).date()


def is_in_week(d: dt.datetime, ref: dt.datetime) -> bool:
    return start_of_week(_align(d, ref)).date() == start_of_week(ref).date()


def is_in_month(d: dt.datetime, ref: dt.datetime) -> bool:
    a = _align(d, ref)
    r = ensure_aware(ref)
    return (a.year, a.month) == (r.year, r.month)


_PERIOD_START: dict[Cadence, Callable[[dt.datetime], dt.datetime]] = {
    Cadence.DAILY: start_of_day,
    Cadence.WEEKLY: start_of_week,
    Cadence.MONTHLY: start_of_month,
}

_SAME_PERIOD: dict[Cadence, Callable[[dt.datetime, dt.datetime], bool]] = {
    Cadence.DAILY: is_same_day,
    Cadence.WEEKLY: is_in_week,
    Cadence.MONTHLY: is_in_month,
}


def period_start(d: dt.datetime, cadence: Cadence) -> dt.datetime:
    return _PERIOD_START[cadence](d)


def in_same_period(d: dt.datetime, ref: dt.datetime, cadence: Cadence) -> bool:
    return _SAME_PERIOD[cadence](d, ref)


def period_started_by(d: dt.datetime, ref: dt.datetime, cadence: Cadence) -> bool:
    """True when the period containing `d` starts no later than the one containing `ref`."""
    return period_start(_align(d, ref), cadence).date() <= period_start(ref, cadence).date()


# ---- relative helpers ----


def days_until(d: dt.datetime, now: dt.datetime) -> int:
    """Calendar days from today to `d`; negative means overdue."""
    return (start_of_day(_align(d, now)).date() - start_of_day(now).date()).days


def is_overdue(d: dt.datetime, now: dt.datetime) -> bool:
    return _align(d, now) < start_of_day(now)


def is_due_today(d: dt.datetime, now: dt.datetime) -> bool:
    return is_same_day(d, now)


def add_months(d: dt.datetime, months: int) -> dt.datetime:
    idx = d.year * 12 + (d.month - 1) + months
    year, month = divmod(idx, 12)
    month += 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return d.replace(year=year, month=month, day=day)


def step(d: dt.datetime, cadence: Cadence, n: int = 1) -> dt.datetime:
    """Move a browsed reference date by `n` periods of `cadence`."""
    if cadence is Cadence.DAILY:
        return d + dt.timedelta(days=n)
    if cadence is Cadence.WEEKLY:
        return d + dt.timedelta(weeks=n)
    return add_months(d, n)


# ---- display ----


def _medium_date(d: dt.datetime) -> str:
    return f"{d:%b} {d.day}, {d.year}"


def format_deadline(deadline: dt.datetime, now: dt.datetime) -> str:
    deadline = _align(deadline, now)
    if is_same_day(deadline, now):
        return f"Due at {deadline:%H:%M}"

    days = days_until(deadline, now)
    if days < 0:
        n = abs(days)
        return f"{n} day{'' if n == 1 else 's'} overdue"
    if days == 1:
        return "Due tomorrow"
    if days <= 7:
        return f"Due in {days} days"
    return _medium_date(deadline)


def period_label(d: dt.datetime, cadence: Cadence) -> str:
    if cadence is Cadence.DAILY:
        return f"{d:%A}, {d:%b} {d.day}"
    if cadence is Cadence.WEEKLY:
        start, end = start_of_week(d), end_of_week(d)
        return f"{start:%b} {start.day} - {end:%b} {end.day}"
    return f"{d:%B %Y}"
