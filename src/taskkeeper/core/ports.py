# src/taskkeeper/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The task engine depends on Protocols instead of concrete implementations.
This keeps the clock, timers, storage and notification host swappable and
lets tests drive time by hand.
"""

from collections.abc import Callable, Iterable
from typing import Any, Awaitable, Protocol


class Clock(Protocol):
    """Wall clock returning POSIX seconds."""
    def now(self) -> float: ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerFactory(Protocol):
    """
    Single-shot delayed callbacks.

    asyncio's loop.call_later already has this shape; tests use a manual fake.
    """
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class NotificationHost(Protocol):
    """
    Host-side local notification API.

    Keys are chosen by the application. Implementations may raise; callers
    treat every call as advisory.
    """

    def request_permission(self) -> bool: ...

    def schedule(self, key: str, *, title: str, body: str, fire_at: float) -> None: ...

    def cancel(self, key: str) -> None: ...


class OutboundMessenger(Protocol):
    """Connector-side port: how delivered reminders reach the user."""

    def send_text(self, *, text: str) -> Awaitable[None]: ...


class TaskRepo(Protocol):
    # Task collection
    def load_tasks(self) -> list[Any]: ...
    def save_tasks(self, tasks: Iterable[Any]) -> Any: ...
    def remove_task(self, task_id: str) -> Any: ...
    def count_tasks(self) -> int: ...

    # Profile / preferences
    def load_profile(self) -> Any | None: ...
    def save_profile(self, profile: Any) -> Any: ...
    def load_dark_mode(self, default: bool = False) -> bool: ...
    def save_dark_mode(self, enabled: bool) -> Any: ...
