# src/cadence_planner/notifications/background.py

from __future__ import annotations

import asyncio
import concurrent.futures
import contextlib
import logging
import threading
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any, TypeVar

from ..core.ports import OutboundMessenger
from ..tasks.calendar_utils import Clock
from .notification_center import LocalNotificationCenter, run_notification_dispatcher

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class NotificationBackgroundRunner:
    """
    Owns the asyncio loop that runs the dispatcher and every scheduler call.

    The console REPL is blocking (input()), so the loop lives in its own
    thread; call() hands coroutines to it and waits for the result. Because all
    scheduler work runs on this single loop, it is serialized by construction.
    """

    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def submit(self, coro: Coroutine[Any, Any, T]) -> concurrent.futures.Future[T]:
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def call(self, coro: Coroutine[Any, Any, T], timeout: float | None = 30.0) -> T:
        return self.submit(coro).result(timeout=timeout)

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal notification loop stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


async def _run_until_stopped(
    center: LocalNotificationCenter,
    messenger: OutboundMessenger,
    stop_event: asyncio.Event,
    *,
    clock: Clock | None,
    interval_seconds: float,
    retry_delay_seconds: float,
) -> None:
    dispatcher = asyncio.create_task(
        run_notification_dispatcher(
            center,
            messenger,
            clock=clock,
            interval_seconds=interval_seconds,
            retry_delay_seconds=retry_delay_seconds,
        )
    )
    try:
        await stop_event.wait()
    finally:
        dispatcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await dispatcher
        logger.info("Notification dispatcher stopped.")


def start_notifications_in_background(
    center: LocalNotificationCenter,
    messenger: OutboundMessenger,
    *,
    clock: Clock | None = None,
    interval_seconds: float = 15.0,
    retry_delay_seconds: float = 60.0,
) -> NotificationBackgroundRunner | None:
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(
                _run_until_stopped(
                    center,
                    messenger,
                    stop_event,
                    clock=clock,
                    interval_seconds=interval_seconds,
                    retry_delay_seconds=retry_delay_seconds,
                )
            )
        finally:
            with contextlib.suppress(Exception):
                loop.stop()
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="notifications", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Notification thread did not initialize properly.")
        return None

    logger.info("Notification background thread started.")
    return NotificationBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
