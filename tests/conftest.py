"""
Shared pytest fixtures.

Sessions are driven by a manual clock and scheduler so countdown ticks,
feedback delays and navigation transitions happen exactly when a test
advances time.
"""
from typing import Any, Callable, List
from unittest.mock import MagicMock

import pytest

from practice_app.core.registry import SessionRegistry
from practice_app.core.session import PracticeSession, SessionSinks, SessionTiming


class ManualClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class ManualHandle:
    def __init__(self, due: float, callback: Callable[[], Any]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose callbacks run only inside ``advance``."""

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self._handles: List[ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], Any]) -> ManualHandle:
        handle = ManualHandle(self.clock.now + delay, callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> List[ManualHandle]:
        return [h for h in self._handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        """Move the clock forward, running due callbacks in order."""
        target = self.clock.now + seconds
        while True:
            due = [h for h in self.pending if h.due <= target + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: h.due)
            self._handles.remove(handle)
            self.clock.now = max(self.clock.now, handle.due)
            handle.callback()
        self.clock.now = target


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def scheduler(clock):
    return ManualScheduler(clock)


@pytest.fixture
def sinks():
    """Sinks backed by mocks so calls can be asserted."""
    return SessionSinks(
        log_result=MagicMock(),
        update_weaknesses=MagicMock(),
        save_task=MagicMock(),
        on_session_complete=MagicMock(),
    )


@pytest.fixture
def make_session(scheduler, clock, sinks):
    """Factory for sessions wired to the manual scheduler and clock."""

    def _make(questions=(1, 2, 3), time_budget_seconds=600, **kwargs):
        kwargs.setdefault("sinks", sinks)
        kwargs.setdefault("timing", SessionTiming())
        return PracticeSession(
            questions,
            time_budget_seconds,
            scheduler=scheduler,
            clock=clock,
            session_id="test-session",
            **kwargs,
        )

    return _make


@pytest.fixture
def registry(scheduler, clock):
    """Registry whose follow-ups run synchronously (no feedback or transition delay)."""
    return SessionRegistry(
        timing=SessionTiming(
            feedback_with_key_seconds=0,
            feedback_seconds=0,
            navigation_seconds=0,
            tick_seconds=1.0,
        ),
        default_per_question_seconds=60,
        max_sessions=5,
        scheduler=scheduler,
        clock=clock,
    )
