# src/taskkeeper/core/clock.py

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

from .ports import TimerHandle


class SystemClock:
    def now(self) -> float:
        return time.time()


class AsyncioTimers:
    """
    TimerFactory backed by the running asyncio loop.

    Must be used from the loop thread; callbacks run on that same thread, so
    they never race with other mutations of the task collection.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, float(delay)), callback)
