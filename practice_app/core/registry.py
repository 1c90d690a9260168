"""
In-memory registry of live practice sessions.

The HTTP layer keeps sessions here between requests. Nothing is persisted:
each record collects what the session's sinks emitted (logged results,
reattempt tasks, weaknesses, completion data) so a client can read it back
and store it wherever it keeps its data. Closing a session discards it.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Union

from practice_app.core.datetime_utils import utc_now
from practice_app.core.exam_format import CompositeExamFormat
from practice_app.core.reattempt import HomeworkTask, ReattemptTask
from practice_app.core.scheduling import Scheduler
from practice_app.core.session import (
    PracticeSession,
    SessionSinks,
    SessionStatus,
    SessionTiming,
    time_budget_from_per_question,
)
from practice_app.models.models import Question, Result, ScoringMode

logger = logging.getLogger(__name__)


class RegistryFullError(Exception):
    """Raised when no session can be evicted to make room for a new one."""


@dataclass(frozen=True)
class SessionCompletion:
    duration_seconds: int
    solved_count: int
    skipped: List[int]


@dataclass
class SessionRecord:
    """A live session and everything its sinks have emitted."""

    id: str
    session: PracticeSession
    created_at: datetime
    per_question_seconds: Optional[float] = None
    logged_results: List[Result] = field(default_factory=list)
    reattempt_tasks: List[ReattemptTask] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    completion: Optional[SessionCompletion] = None

    def _on_complete(self, duration: int, solved: int, skipped: List[int]) -> None:
        self.completion = SessionCompletion(duration, solved, list(skipped))

    def _on_weaknesses(self, topics: List[str]) -> None:
        for topic in topics:
            if topic not in self.weaknesses:
                self.weaknesses.append(topic)


class SessionRegistry:
    """
    Holds live sessions by id.

    Session delays and defaults are passed in explicitly; use ``from_settings``
    to build one from application settings.
    """

    def __init__(
        self,
        *,
        timing: Optional[SessionTiming] = None,
        default_per_question_seconds: float = 120,
        max_sessions: int = 1000,
        scheduler: Optional[Scheduler] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.timing = timing or SessionTiming()
        self.default_per_question_seconds = default_per_question_seconds
        self.max_sessions = max_sessions
        self._scheduler = scheduler
        self._clock = clock
        self._records: Dict[str, SessionRecord] = {}

    @classmethod
    def from_settings(cls, settings) -> "SessionRegistry":
        return cls(
            timing=SessionTiming(
                feedback_with_key_seconds=settings.FEEDBACK_DELAY_WITH_KEY_SECONDS,
                feedback_seconds=settings.FEEDBACK_DELAY_SECONDS,
                navigation_seconds=settings.NAVIGATION_TRANSITION_SECONDS,
                tick_seconds=settings.COUNTDOWN_TICK_SECONDS,
            ),
            default_per_question_seconds=settings.DEFAULT_PER_QUESTION_SECONDS,
            max_sessions=settings.MAX_LIVE_SESSIONS,
        )

    def __len__(self) -> int:
        return len(self._records)

    def create(
        self,
        questions: Sequence[Union[Question, int]],
        *,
        time_budget_seconds: Optional[float] = None,
        per_question_seconds: Optional[float] = None,
        answer_key: Optional[Mapping[str, str]] = None,
        mode: ScoringMode = ScoringMode.PRACTICE,
        exam_format: Optional[CompositeExamFormat] = None,
        subject: Optional[str] = None,
        category: str = "Practice",
        syllabus: Optional[str] = None,
        source_task: Optional[HomeworkTask] = None,
    ) -> SessionRecord:
        """
        Create and register a session.

        The budget is ``time_budget_seconds`` when given, otherwise the
        per-question allotment (or the registry default) times the question
        count.

        Raises:
            SessionConfigError: Invalid questions or budget
            RegistryFullError: The registry is full of unfinished sessions
        """
        if per_question_seconds is None and time_budget_seconds is None:
            per_question_seconds = self.default_per_question_seconds
        budget = time_budget_seconds
        if budget is None:
            budget = time_budget_from_per_question(per_question_seconds, len(questions))

        session_id = uuid.uuid4().hex
        record_sinks = SessionSinks()
        session = PracticeSession(
            questions,
            budget,
            answer_key=answer_key,
            mode=mode,
            exam_format=exam_format,
            subject=subject,
            category=category,
            syllabus=syllabus,
            source_task=source_task,
            sinks=record_sinks,
            timing=self.timing,
            scheduler=self._scheduler,
            clock=self._clock,
            session_id=session_id,
        )
        record = SessionRecord(
            id=session_id,
            session=session,
            created_at=utc_now(),
            per_question_seconds=per_question_seconds,
        )
        record_sinks.log_result = record.logged_results.append
        record_sinks.save_task = record.reattempt_tasks.append
        record_sinks.update_weaknesses = record._on_weaknesses
        record_sinks.on_session_complete = record._on_complete

        # Only evict once the new session is known to be valid
        self._make_room()
        self._records[session_id] = record
        logger.info(
            f"Registered practice session ({len(session.questions)} questions)",
            extra={"session_id": session_id},
        )
        return record

    def get(self, session_id: str) -> Optional[SessionRecord]:
        return self._records.get(session_id)

    def close(self, session_id: str) -> bool:
        """Discard a session. Returns False for unknown ids."""
        record = self._records.pop(session_id, None)
        if record is None:
            return False
        record.session.close()
        logger.info("Closed practice session", extra={"session_id": session_id})
        return True

    def close_all(self) -> int:
        """Discard every live session, stopping their timers. Returns how many were open."""
        count = len(self._records)
        for record in self._records.values():
            record.session.close()
        self._records.clear()
        return count

    def _make_room(self) -> None:
        if len(self._records) < self.max_sessions:
            return
        finished = [
            r for r in self._records.values()
            if r.session.status == SessionStatus.FINISHED
        ]
        if not finished:
            raise RegistryFullError("No finished session to evict")
        oldest = min(finished, key=lambda r: r.created_at)
        del self._records[oldest.id]
        logger.info("Evicted finished practice session", extra={"session_id": oldest.id})
