# src/cadence_planner/notifications/notification_center.py

"""
In-process notification center and its delivery loop.

LocalNotificationCenter implements the NotificationCenter port:
- pending requests keyed by id (register replaces, never appends),
- authorization status persisted in the preference store.

run_notification_dispatcher() is a small polling loop that:
- fetches due requests,
- delivers them via an injected messenger port,
- drops one-shot requests / advances repeating ones,
- retries failed deliveries after a delay.

Pending requests live in memory only; the app re-registers everything at
startup from the task store.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from collections.abc import Iterable

from ..core.ports import OutboundMessenger, PreferenceStore
from ..tasks.calendar_utils import Clock, make_clock
from .notification_models import (
    AuthorizationDenied,
    AuthorizationStatus,
    NotificationRequest,
    PendingNotification,
    SchedulingFailure,
    first_fire_time,
    following_fire_time,
)
from .preferences import AUTHORIZATION_STATUS

logger = logging.getLogger(__name__)


class LocalNotificationCenter:
    def __init__(
        self,
        preferences: PreferenceStore,
        *,
        auto_grant: bool = True,
        clock: Clock | None = None,
    ) -> None:
        self._prefs = preferences
        self._auto_grant = auto_grant
        self._clock = clock or make_clock()
        self._pending: dict[str, PendingNotification] = {}

    # ---- authorization ----

    def _status(self) -> AuthorizationStatus:
        return AuthorizationStatus.from_db(self._prefs.get_str(AUTHORIZATION_STATUS))

    def set_authorization_status(self, status: AuthorizationStatus) -> None:
        """Simulates the user changing the permission outside the app."""
        self._prefs.set_str(AUTHORIZATION_STATUS, status.value)
        logger.info("Notification authorization -> %s", status.value)

    async def request_authorization(self) -> bool:
        status = self._status()
        if status is AuthorizationStatus.NOT_DETERMINED:
            status = AuthorizationStatus.AUTHORIZED if self._auto_grant else AuthorizationStatus.DENIED
            self.set_authorization_status(status)
        return status is AuthorizationStatus.AUTHORIZED

    async def authorization_status(self) -> AuthorizationStatus:
        return self._status()

    # ---- registration ----

    async def register(self, request: NotificationRequest) -> None:
        if self._status() is not AuthorizationStatus.AUTHORIZED:
            raise AuthorizationDenied(f"not authorized to register {request.id}")

        now = self._clock()
        fire_at = first_fire_time(request.trigger, now)
        if fire_at is None:
            raise SchedulingFailure(f"trigger for {request.id} never fires")

        replaced = request.id in self._pending
        self._pending[request.id] = PendingNotification(
            request=request, registered_at=now, next_fire_at=fire_at
        )
        logger.debug(
            "Notification %s id=%s fire_at=%s",
            "replaced" if replaced else "registered",
            request.id,
            fire_at.isoformat(),
        )

    async def cancel(self, ids: Iterable[str]) -> None:
        for rid in ids:
            if self._pending.pop(rid, None) is not None:
                logger.debug("Notification cancelled id=%s", rid)

    async def cancel_all(self) -> None:
        n = len(self._pending)
        self._pending.clear()
        logger.debug("All notifications cancelled (%d)", n)

    async def list_pending(self) -> list[PendingNotification]:
        return sorted(self._pending.values(), key=lambda p: p.next_fire_at)

    # ---- delivery bookkeeping ----

    def due(self, now: dt.datetime) -> list[PendingNotification]:
        return sorted(
            (p for p in self._pending.values() if p.next_fire_at <= now),
            key=lambda p: p.next_fire_at,
        )

    def mark_delivered(self, pending: PendingNotification) -> None:
        current = self._pending.get(pending.id)
        if current is not pending:
            # Replaced or cancelled while being delivered; keep the newer state.
            return
        following = following_fire_time(pending)
        if following is None:
            del self._pending[pending.id]
            return
        self._pending[pending.id] = PendingNotification(
            request=pending.request,
            registered_at=pending.registered_at,
            next_fire_at=following,
        )

    def defer(self, pending: PendingNotification, until: dt.datetime) -> None:
        current = self._pending.get(pending.id)
        if current is not pending:
            return
        self._pending[pending.id] = PendingNotification(
            request=pending.request,
            registered_at=pending.registered_at,
            next_fire_at=until,
        )


async def run_notification_dispatcher(
    center: LocalNotificationCenter,
    messenger: OutboundMessenger,
    *,
    clock: Clock | None = None,
    interval_seconds: float = 15.0,
    retry_delay_seconds: float = 60.0,
) -> None:
    """
    Simple polling dispatcher.

    Every interval_seconds:
    - collect due notifications
    - send via messenger.send_text(...)
    - on success: drop one-shot, advance repeating
    - on failure: push next_fire_at forward by retry_delay_seconds

    To stop the dispatcher, cancel the coroutine/task.
    """
    now_fn = clock or make_clock()
    sleep_s = max(0.01, float(interval_seconds))
    retry = dt.timedelta(seconds=max(0.01, float(retry_delay_seconds)))

    while True:
        now = now_fn()

        for pending in center.due(now):
            try:
                await messenger.send_text(title=pending.request.title, body=pending.request.body)
            except Exception:
                logger.exception("notification delivery failed id=%s", pending.id)
                center.defer(pending, now + retry)
                continue

            center.mark_delivered(pending)
            logger.info("Notification delivered id=%s", pending.id)

        await asyncio.sleep(sleep_s)
