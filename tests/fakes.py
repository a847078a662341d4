# tests/fakes.py

from __future__ import annotations

import asyncio
import datetime as dt
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from cadence_planner.core.ports import OutboundMessenger
from cadence_planner.notifications.notification_models import (
    AuthorizationStatus,
    NotificationRequest,
    SchedulingFailure,
)
from cadence_planner.tasks.task_models import Cadence, Task, new_id

TZ = dt.timezone(dt.timedelta(hours=2))


def at(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> dt.datetime:
    return dt.datetime(year, month, day, hour, minute, tzinfo=TZ)


def make_task(
    title: str = "task",
    *,
    cadence: Cadence = Cadence.WEEKLY,
    created_at: dt.datetime,
    deadline: dt.datetime | None = None,
    completed_at: dt.datetime | None = None,
    category_id: str | None = None,
) -> Task:
    return Task(
        id=new_id(),
        title=title,
        cadence=cadence,
        created_at=created_at,
        category_id=category_id,
        deadline=deadline,
        is_completed=completed_at is not None,
        completed_at=completed_at,
    )


class FakeClock:
    """Settable clock; tests move time explicitly."""

    def __init__(self, now: dt.datetime) -> None:
        self.now = now

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **kwargs: float) -> dt.datetime:
        self.now = self.now + dt.timedelta(**kwargs)
        return self.now


class InMemoryPreferences:
    def __init__(self, **values: Any) -> None:
        self.values: dict[str, Any] = dict(values)

    @property
    def notifications_enabled(self) -> bool:
        return self.get_bool("notifications_enabled", True)

    def get_bool(self, key: str, default: bool) -> bool:
        val = self.values.get(key)
        return val if isinstance(val, bool) else default

    def set_bool(self, key: str, value: bool) -> None:
        self.values[key] = bool(value)

    def get_str(self, key: str, default: str | None = None) -> str | None:
        val = self.values.get(key)
        return val if isinstance(val, str) else default

    def set_str(self, key: str, value: str) -> None:
        self.values[key] = value


class FakeNotificationCenter:
    """
    NotificationCenter fake.

    - Captures every call for assertions
    - pending mirrors the replace-by-id semantics of a real center
    - fail_register / fail_cancel simulate a rejecting notification store
    """

    def __init__(
        self,
        status: AuthorizationStatus = AuthorizationStatus.AUTHORIZED,
        *,
        grant: bool = True,
    ) -> None:
        self.status = status
        self.grant = grant
        self.pending: dict[str, NotificationRequest] = {}
        self.calls: list[tuple[str, Any]] = []
        self.fail_register = False
        self.fail_cancel = False

    async def request_authorization(self) -> bool:
        self.calls.append(("request_authorization", None))
        if self.status is AuthorizationStatus.NOT_DETERMINED:
            self.status = AuthorizationStatus.AUTHORIZED if self.grant else AuthorizationStatus.DENIED
        return self.status is AuthorizationStatus.AUTHORIZED

    async def authorization_status(self) -> AuthorizationStatus:
        await asyncio.sleep(0)
        return self.status

    async def register(self, request: NotificationRequest) -> None:
        await asyncio.sleep(0)
        self.calls.append(("register", request.id))
        if self.fail_register:
            raise SchedulingFailure("rejected")
        self.pending[request.id] = request

    async def cancel(self, ids: Iterable[str]) -> None:
        await asyncio.sleep(0)
        ids = list(ids)
        self.calls.append(("cancel", ids))
        if self.fail_cancel:
            raise RuntimeError("cancel failed")
        for rid in ids:
            self.pending.pop(rid, None)

    async def cancel_all(self) -> None:
        self.calls.append(("cancel_all", None))
        self.pending.clear()

    async def list_pending(self) -> list[NotificationRequest]:
        return list(self.pending.values())


@dataclass(slots=True)
class SentMessage:
    title: str
    body: str


@dataclass(slots=True)
class FakeMessenger(OutboundMessenger):
    """
    Fake OutboundMessenger used by dispatcher tests.
    """

    sent: list[SentMessage] = field(default_factory=list)
    fail: bool = False

    async def send_text(self, *, title: str, body: str) -> None:
        if self.fail:
            raise ConnectionError("messenger down")
        self.sent.append(SentMessage(title=title, body=body))
