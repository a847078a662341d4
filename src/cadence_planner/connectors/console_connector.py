# src/cadence_planner/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..cli.commands import run_async
from ..core.state import AppState
from ..tasks import task_api
from ..tasks.task_models import PlannerError

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


class ConsoleMessenger:
    """OutboundMessenger that prints delivered reminders to stdout."""

    async def send_text(self, *, title: str, body: str) -> None:
        # The REPL may be mid-prompt; start on a fresh line.
        sys.stdout.write(f"\n[{_ts_local()}] [REMINDER] {title}: {body}\n")
        sys.stdout.flush()


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Type a title to add a weekly task. Use /help for commands. Use /exit to quit.\n")

    def emit(text: str) -> None:
        print(f"[{_ts_local()}] {text}", flush=True)

    print(command_registry.handle(state, "/daily"))

    while True:
        try:
            user_input = input(">>> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            cmd_response = command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is not None:
            _print_ts(cmd_response)
            continue

        # Plain text: quick-add with the default cadence.
        try:
            task = run_async(state, task_api.create_task(state, title=user_input))
        except PlannerError as e:
            _print_ts(f"Error: {e}")
            continue
        except Exception:
            logger.exception("Quick-add failed.")
            _print_ts("Internal error while adding a task.")
            continue
        _print_ts(f"Added weekly task: {task.title}  #{task.short_id}")

    logger.info("Console connector finished.")
