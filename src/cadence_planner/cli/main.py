# src/cadence_planner/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, starts the notification loop in a
background thread, rebuilds pending reminders, then runs the console REPL.
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import ConsoleMessenger, run_console_loop
from ..logging_setup import setup_logging
from ..notifications.background import start_notifications_in_background
from ..tasks import task_api

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    runner = getattr(state, "runner", None)
    if runner is not None:
        runner.stop()
        runner.join(timeout=10.0)

    # TaskStore uses short-lived sqlite connections per call; close() is a no-op hook.
    try:
        state.task_store.close()
    except Exception:
        logger.debug("TaskStore close failed.", exc_info=True)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/planner")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "cadence-planner"))

    state = create_initial_state(settings=settings)
    state.runner = start_notifications_in_background(
        state.notification_center,
        ConsoleMessenger(),
        clock=state.clock,
        interval_seconds=settings.dispatch_interval_seconds,
        retry_delay_seconds=settings.dispatch_retry_seconds,
    )
    if state.runner is None:
        logger.warning("Notification loop unavailable; reminders will not be delivered this session.")

    try:
        if state.runner is not None:
            state.runner.call(task_api.startup(state))
        else:
            task_api.seed_default_categories(state)
    except Exception:
        logger.exception("Startup reconciliation failed.")

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGTERM, _handle_signal)
    except Exception:
        # Some platforms may not support SIGTERM.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Delivering reminders only. Press Ctrl+C to stop.")
            try:
                stop_main.wait()
            except KeyboardInterrupt:
                pass
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
