# src/cadence_planner/notifications/preferences.py

from __future__ import annotations

import contextlib
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

NOTIFICATIONS_ENABLED = "notifications_enabled"
AUTHORIZATION_STATUS = "authorization_status"
CATEGORIES_SEEDED = "categories_seeded"


class JsonPreferenceStore:
    """
    Small key/value preference file (user defaults).

    Reads are served from memory; every write rewrites the JSON file
    atomically (tmp + os.replace). A missing or corrupt file means defaults.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except Exception:
            logger.exception("Failed to read preferences from %s; using defaults.", self._path)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(json.dumps(self._data, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, self._path)
            with contextlib.suppress(Exception):
                os.chmod(self._path, 0o600)
        except Exception:
            logger.exception("Failed to save preferences to %s", self._path)

    @property
    def notifications_enabled(self) -> bool:
        return self.get_bool(NOTIFICATIONS_ENABLED, True)

    def get_bool(self, key: str, default: bool) -> bool:
        with self._lock:
            val = self._data.get(key)
        return val if isinstance(val, bool) else default

    def set_bool(self, key: str, value: bool) -> None:
        with self._lock:
            self._data[key] = bool(value)
            self._save()
        logger.debug("Preference %s=%s", key, value)

    def get_str(self, key: str, default: str | None = None) -> str | None:
        with self._lock:
            val = self._data.get(key)
        return val if isinstance(val, str) else default

    def set_str(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = str(value)
            self._save()
        logger.debug("Preference %s=%s", key, value)
