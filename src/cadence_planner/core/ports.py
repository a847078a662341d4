# src/cadence_planner/core/ports.py

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage and the notification subsystem swappable and makes testing
easier (tests inject fakes for the notification center and authorization).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, Awaitable, Protocol

TaskPredicate = Callable[[Any], bool]
SortKey = Callable[[Any], Any]
ChangeListener = Callable[[], object]


class TaskRepo(Protocol):
    # Tasks
    def add_task(self, task: Any) -> Any: ...
    def get_task(self, task_id: str) -> Any | None: ...
    def update_task(self, task: Any) -> bool: ...
    def delete_task(self, task_id: str) -> bool: ...
    def list_tasks(
        self,
        predicate: TaskPredicate | None = None,
        *,
        sort_key: SortKey | None = None,
        reverse: bool = False,
    ) -> list[Any]: ...
    def list_incomplete_tasks(self) -> list[Any]: ...
    def find_by_prefix(self, prefix: str) -> list[Any]: ...

    # Categories
    def add_category(self, category: Any) -> Any: ...
    def get_category(self, category_id: str) -> Any | None: ...
    def update_category(self, category: Any) -> bool: ...
    def delete_category(self, category_id: str) -> bool: ...
    def list_categories(self) -> list[Any]: ...

    # Change notifications
    def subscribe(self, listener: ChangeListener) -> Callable[[], None]: ...


class NotificationCenter(Protocol):
    """
    Local notification subsystem.

    Registration is keyed by id: registering an existing id replaces it.
    All calls are awaitable because a platform implementation may suspend
    on permission prompts or IPC.
    """

    def request_authorization(self) -> Awaitable[bool]: ...
    def authorization_status(self) -> Awaitable[Any]: ...  # AuthorizationStatus
    def register(self, request: Any) -> Awaitable[None]: ...  # NotificationRequest
    def cancel(self, ids: Iterable[str]) -> Awaitable[None]: ...
    def cancel_all(self) -> Awaitable[None]: ...
    def list_pending(self) -> Awaitable[list[Any]]: ...


class PreferenceStore(Protocol):
    @property
    def notifications_enabled(self) -> bool: ...
    def get_bool(self, key: str, default: bool) -> bool: ...
    def set_bool(self, key: str, value: bool) -> None: ...
    def get_str(self, key: str, default: str | None = None) -> str | None: ...
    def set_str(self, key: str, value: str) -> None: ...


class OutboundMessenger(Protocol):
    """Where delivered notifications end up (console, desktop, ...)."""

    def send_text(self, *, title: str, body: str) -> Awaitable[None]: ...
