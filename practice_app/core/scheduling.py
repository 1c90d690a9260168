"""
Scheduling seam between the practice session and the event loop.

Every delayed action of a session (countdown ticks, feedback display,
navigation transitions) goes through a ``Scheduler`` so that all of them run
as callbacks on one event loop. Two callbacks never interleave, so the
session only needs state checks, not locks.
"""
import asyncio
import time
from typing import Any, Callable, Protocol


class ScheduledHandle(Protocol):
    """Handle of a scheduled callback."""

    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Anything that can run a callback after a delay."""

    def call_later(self, delay: float, callback: Callable[[], Any]) -> ScheduledHandle:
        ...


class LoopScheduler:
    """
    Scheduler backed by the running asyncio loop.

    The loop is looked up on every call rather than captured at construction,
    because a session may outlive the loop that created it (for example under
    a test client that runs each request on its own loop).
    """

    def call_later(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(delay, callback)


def monotonic_clock() -> float:
    """Default session clock."""
    return time.monotonic()
