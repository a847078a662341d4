# src/cadence_planner/logging_setup.py

from __future__ import annotations

import logging
import logging.handlers
import sys
from collections.abc import Mapping
from pathlib import Path

LOG_FILE_NAME = "planner.log"

# Console thresholds for our own noisy loggers (prefix -> minimum level).
# The dispatcher and scheduler run on the background loop and would
# otherwise print over the REPL prompt.
CONSOLE_THRESHOLDS: dict[str, int] = {
    "cadence_planner.notifications.notification_center": logging.WARNING,
    "cadence_planner.notifications.notification_scheduler": logging.WARNING,
    "cadence_planner.tasks.task_store": logging.WARNING,
}


class _ConsoleNoiseFilter(logging.Filter):
    """
    Console filter for interactive use.

    Planner loggers pass unless a prefix in `thresholds` asks for more.
    Everything else (asyncio, py.warnings, sqlite adapters...) needs ERROR+.
    """

    def __init__(self, thresholds: Mapping[str, int]) -> None:
        super().__init__()
        # Longest prefix first so the most specific rule wins.
        self._thresholds = sorted(thresholds.items(), key=lambda kv: len(kv[0]), reverse=True)

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if not name.startswith("cadence_planner"):
            return record.levelno >= logging.ERROR

        for prefix, level in self._thresholds:
            if name.startswith(prefix):
                return record.levelno >= level
        return True


def _formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def setup_logging(
    *,
    log_dir: str | Path = ".local/planner",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 2_000_000,
    backup_count: int = 3,
    console_thresholds: Mapping[str, int] | None = None,
) -> Path:
    """
    Configure root logging and return the log file path.

    - stderr handler at console_level, filtered (see CONSOLE_THRESHOLDS)
    - size-rotated planner.log under log_dir at file_level, unfiltered

    Safe to call again: previously installed handlers are replaced.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(min(console_level, file_level))
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    fmt = _formatter()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter(CONSOLE_THRESHOLDS if console_thresholds is None else console_thresholds))
    root.addHandler(console)

    file_handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file
