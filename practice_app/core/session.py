"""
Timed practice session.

``PracticeSession`` owns one timed run through an ordered set of questions:
the countdown, navigation, answer capture with immediate feedback, per-question
timing, and grading when the session ends.

State machine
=============
    NotStarted --start()--> Active --finish()--> Finished

``Finished`` is terminal. ``Active`` carries the current position, when the
current visit started, and the feedback being shown (if any). A separate
``navigation_in_flight`` flag covers the short transition between questions.
Every mutating operation checks the state first and returns False when it does
not apply, so double-fired UI events (a second finish, a click during a
transition) are ignored instead of corrupting answers or timings.

All delayed work (countdown ticks, feedback display, transitions) is scheduled
through a ``Scheduler`` on a single event loop; callbacks never interleave.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    Union,
)

from practice_app.core.answers import answers_match, is_attempted, normalize_answer
from practice_app.core.datetime_utils import utc_now
from practice_app.core.error_classifier import ErrorCategory
from practice_app.core.exam_format import (
    JEE_MAINS,
    CompositeExamFormat,
    resolve_question_type,
    subject_for_index,
)
from practice_app.core.graceful_failure import graceful_failure
from practice_app.core.reattempt import HomeworkTask, ReattemptTask, build_reattempt_task
from practice_app.core.scheduling import (
    LoopScheduler,
    ScheduledHandle,
    Scheduler,
    monotonic_clock,
)
from practice_app.core.scoring import build_result, grade_answers
from practice_app.grading.service import (
    GradingRequest,
    GradingService,
    GradingServiceError,
)
from practice_app.models.models import (
    MistakeAnalysis,
    Question,
    QuestionType,
    Result,
    ScoringMode,
)

logger = logging.getLogger(__name__)


class SessionConfigError(ValueError):
    """Raised when a session cannot be built from the given inputs."""


class SessionStatus(str, Enum):
    NOT_STARTED = "not_started"
    ACTIVE = "active"
    FINISHED = "finished"


class FinishReason(str, Enum):
    MANUAL = "manual"  # student pressed finish
    TIME_UP = "time_up"  # countdown reached zero
    COMPLETED = "completed"  # advanced past the last question


class GradingStatus(str, Enum):
    """AI grading progress. FAILED may be retried."""

    NOT_REQUESTED = "not_requested"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class Feedback:
    """Verdict shown after a submission. ``is_correct`` is None without a key."""

    question_number: int
    answer: str
    is_correct: Optional[bool]
    expected: Optional[str] = None


@dataclass(frozen=True)
class NotStarted:
    pass


@dataclass(frozen=True)
class Active:
    index: int
    visit_started_at: float
    feedback: Optional[Feedback] = None


@dataclass(frozen=True)
class Finished:
    reason: FinishReason
    duration_seconds: int
    solved_count: int
    skipped: Tuple[int, ...]


SessionState = Union[NotStarted, Active, Finished]


@dataclass
class SessionSinks:
    """
    Collaborators supplied by the caller. Any of them may be omitted.

    - ``log_result(result)``: called once per graded Result
    - ``update_weaknesses(topics)``: called when mistake analysis yields a topic
    - ``save_task(task)``: called with reattempt tasks
    - ``on_session_complete(duration_seconds, solved_count, skipped_numbers)``:
      called exactly once, from ``finish()``
    """

    log_result: Optional[Callable[[Result], Any]] = None
    update_weaknesses: Optional[Callable[[List[str]], Any]] = None
    save_task: Optional[Callable[[ReattemptTask], Any]] = None
    on_session_complete: Optional[Callable[[int, int, List[int]], Any]] = None


@dataclass(frozen=True)
class SessionTiming:
    """Delays in seconds. A delay <= 0 runs the follow-up immediately."""

    feedback_with_key_seconds: float = 1.5
    feedback_seconds: float = 1.0
    navigation_seconds: float = 0.3
    tick_seconds: float = 1.0


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a session."""

    session_id: Optional[str]
    status: SessionStatus
    question_numbers: Tuple[int, ...]
    current_index: Optional[int]
    current_question_number: Optional[int]
    current_subject: Optional[str]
    current_question_type: Optional[QuestionType]
    remaining_seconds: float
    answers: Dict[int, str]
    timings: Dict[int, float]
    marked_for_review: Tuple[int, ...]
    feedback: Optional[Feedback]
    navigation_in_flight: bool
    finished: Optional[Finished]
    result: Optional[Result]
    grading_status: GradingStatus
    grading_error: Optional[str] = None
    grading_error_retryable: Optional[bool] = None
    reattempts_scheduled: Tuple[int, ...] = field(default_factory=tuple)


def time_budget_from_per_question(per_question_seconds: float, question_count: int) -> float:
    """Convert a per-question allotment into a session budget."""
    if per_question_seconds <= 0:
        raise SessionConfigError("Per-question time must be positive")
    return per_question_seconds * question_count


def _coerce_questions(questions: Sequence[Union[Question, int]]) -> Tuple[Question, ...]:
    coerced = tuple(
        q if isinstance(q, Question) else Question(number=int(q)) for q in questions
    )
    if not coerced:
        raise SessionConfigError("A session needs at least one question")
    numbers = [q.number for q in coerced]
    if len(set(numbers)) != len(numbers):
        raise SessionConfigError("Question numbers must be unique")
    return coerced


class PracticeSession:
    """
    One timed question-answering session.

    The session reads no global settings; identity, delays and collaborators
    are passed in explicitly.

    Args:
        questions: Ordered questions (or bare question numbers)
        time_budget_seconds: Total countdown for the session
        answer_key: Expected answers keyed by question number as string;
            None disables immediate verdicts and local grading
        mode: Marking scheme applied at the end
        exam_format: Band layout for composite mode (defaults to JEE Main)
        subject: Subject label shown outside composite mode
        category: Result category label (e.g. "Homework Practice")
        syllabus: Syllabus label passed to logging and AI grading
        source_task: Homework task this session was started from
        sinks: Caller-supplied collaborators
        timing: Feedback/transition/tick delays
        scheduler: Where delayed callbacks run (defaults to the running loop)
        clock: Monotonic time source in seconds
        session_id: Identifier used in logs and snapshots
    """

    def __init__(
        self,
        questions: Sequence[Union[Question, int]],
        time_budget_seconds: float,
        *,
        answer_key: Optional[Mapping[str, str]] = None,
        mode: ScoringMode = ScoringMode.PRACTICE,
        exam_format: Optional[CompositeExamFormat] = None,
        subject: Optional[str] = None,
        category: str = "Practice",
        syllabus: Optional[str] = None,
        source_task: Optional[HomeworkTask] = None,
        sinks: Optional[SessionSinks] = None,
        timing: Optional[SessionTiming] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Optional[Callable[[], float]] = None,
        session_id: Optional[str] = None,
    ):
        if time_budget_seconds <= 0:
            raise SessionConfigError("Time budget must be positive")

        self.session_id = session_id
        self.questions: Tuple[Question, ...] = _coerce_questions(questions)
        self.time_budget_seconds = float(time_budget_seconds)
        self.answer_key: Optional[Dict[str, str]] = (
            {str(k).strip(): str(v) for k, v in answer_key.items()} if answer_key else None
        )
        self.mode = mode
        self.exam_format = (exam_format or JEE_MAINS) if mode == ScoringMode.COMPOSITE else None
        self.subject = subject
        self.category = category
        self.syllabus = syllabus
        self.source_task = source_task
        self.sinks = sinks or SessionSinks()
        self.timing = timing or SessionTiming()
        self._scheduler: Scheduler = scheduler or LoopScheduler()
        self._clock = clock or monotonic_clock

        self._state: SessionState = NotStarted()
        self._navigation_in_flight = False
        self._remaining = self.time_budget_seconds
        self._started_at: Optional[float] = None
        self._answers: Dict[int, str] = {}
        self._timings: Dict[int, float] = {q.number: 0.0 for q in self.questions}
        self._review: Set[int] = set()
        self._reattempted: List[int] = []
        self._last_feedback: Optional[Feedback] = None
        self._tick_handle: Optional[ScheduledHandle] = None
        self._pending_handle: Optional[ScheduledHandle] = None

        self._result: Optional[Result] = None
        self._grading_status = GradingStatus.NOT_REQUESTED
        self._grading_error: Optional[GradingServiceError] = None

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def status(self) -> SessionStatus:
        if isinstance(self._state, Active):
            return SessionStatus.ACTIVE
        if isinstance(self._state, Finished):
            return SessionStatus.FINISHED
        return SessionStatus.NOT_STARTED

    @property
    def navigation_in_flight(self) -> bool:
        return self._navigation_in_flight

    @property
    def remaining_seconds(self) -> float:
        return self._remaining

    @property
    def answers(self) -> Dict[int, str]:
        return dict(self._answers)

    @property
    def timings(self) -> Dict[int, float]:
        return dict(self._timings)

    @property
    def marked_for_review(self) -> Tuple[int, ...]:
        return tuple(sorted(self._review))

    @property
    def result(self) -> Optional[Result]:
        return self._result

    @property
    def grading_status(self) -> GradingStatus:
        return self._grading_status

    @property
    def grading_error(self) -> Optional[GradingServiceError]:
        return self._grading_error

    @property
    def current_question(self) -> Optional[Question]:
        if isinstance(self._state, Active):
            return self.questions[self._state.index]
        return None

    @property
    def current_subject(self) -> Optional[str]:
        """Subject label of the current question."""
        if not isinstance(self._state, Active):
            return None
        if self.exam_format is not None:
            return subject_for_index(self._state.index, self.exam_format).value
        return self.subject

    @property
    def current_question_type(self) -> Optional[QuestionType]:
        if not isinstance(self._state, Active):
            return None
        index = self._state.index
        return resolve_question_type(index, self.questions[index], self.exam_format)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> bool:
        """Start the countdown on the first question."""
        if not isinstance(self._state, NotStarted):
            logger.debug(f"Ignoring start() in state {self.status.value}", extra=self._log_extra())
            return False

        now = self._clock()
        self._started_at = now
        self._state = Active(index=0, visit_started_at=now)
        self._schedule_tick()
        logger.info(
            f"Practice session started: {len(self.questions)} questions, "
            f"{self.time_budget_seconds:.0f}s budget, mode={self.mode.value}",
            extra=self._log_extra(),
        )
        return True

    def tick(self) -> bool:
        """
        Advance the countdown by one tick.

        Normally driven by the scheduler; finishes the session when the
        remaining time reaches zero.
        """
        if not isinstance(self._state, Active):
            return False

        self._cancel_tick()
        self._remaining = max(0.0, self._remaining - self.timing.tick_seconds)
        if self._remaining <= 0:
            logger.info("Time is up", extra=self._log_extra())
            self.finish(FinishReason.TIME_UP)
        else:
            self._schedule_tick()
        return True

    def finish(self, reason: FinishReason = FinishReason.MANUAL) -> bool:
        """
        End the session.

        Stops the countdown, records the time on the current question, reports
        completion and grades locally. Calling it again is a no-op.
        """
        state = self._state
        if not isinstance(state, Active):
            logger.debug(f"Ignoring finish() in state {self.status.value}", extra=self._log_extra())
            return False

        self._cancel_tick()
        self._cancel_pending()
        now = self._clock()
        # A transition in flight already flushed the departing question
        if not self._navigation_in_flight:
            self._flush_time(state, now)
        self._navigation_in_flight = False

        skipped = [q.number for q in self.questions if q.number not in self._answers]
        solved_count = len(self.questions) - len(skipped)
        duration = round(now - self._started_at) if self._started_at is not None else 0
        self._state = Finished(
            reason=reason,
            duration_seconds=duration,
            solved_count=solved_count,
            skipped=tuple(skipped),
        )
        logger.info(
            f"Practice session finished ({reason.value}): {solved_count} solved, "
            f"{len(skipped)} skipped, {duration}s",
            extra=self._log_extra(),
        )

        if self.sinks.on_session_complete is not None:
            with graceful_failure(
                "notify session complete", logger, context=self._log_extra()
            ):
                self.sinks.on_session_complete(duration, solved_count, list(skipped))

        self._grade_locally()
        return True

    def close(self) -> None:
        """
        Stop all scheduled callbacks without finishing.

        Used when the caller discards a session; no sink is called.
        """
        self._cancel_tick()
        self._cancel_pending()

    # ------------------------------------------------------------------
    # Answering
    # ------------------------------------------------------------------

    def submit_answer(self, value: Optional[str]) -> bool:
        """
        Record an answer for the current question and show feedback.

        With an answer key the verdict is computed immediately. After the
        feedback delay the session advances (or finishes on the last question).
        A blank answer is ignored.
        """
        state = self._idle_active_state("submit_answer")
        if state is None:
            return False
        if not is_attempted(value):
            logger.debug("Ignoring blank answer", extra=self._log_extra())
            return False

        question = self.questions[state.index]
        answer = str(value).strip()
        self._answers[question.number] = answer

        expected = self.answer_key.get(question.key) if self.answer_key else None
        is_correct = answers_match(answer, expected) if expected is not None else None
        feedback = Feedback(
            question_number=question.number,
            answer=normalize_answer(answer),
            is_correct=is_correct,
            expected=normalize_answer(expected) if expected is not None else None,
        )
        self._state = replace(state, feedback=feedback)
        self._last_feedback = feedback
        logger.debug(
            f"Answer recorded for Q{question.number} (correct={is_correct})",
            extra=self._log_extra(question.number),
        )

        if is_correct is False:
            self._schedule_reattempt(question, expected)

        delay = (
            self.timing.feedback_with_key_seconds
            if self.answer_key
            else self.timing.feedback_seconds
        )
        self._run_later(delay, self._after_feedback)
        return True

    def clear_answer(self) -> bool:
        """Remove the current question's answer."""
        state = self._idle_active_state("clear_answer")
        if state is None:
            return False
        number = self.questions[state.index].number
        self._answers.pop(number, None)
        return True

    def mark_for_review(self) -> bool:
        """Toggle the review mark on the current question, then advance."""
        state = self._idle_active_state("mark_for_review")
        if state is None:
            return False
        number = self.questions[state.index].number
        if number in self._review:
            self._review.discard(number)
        else:
            self._review.add(number)
        return self._advance(state)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def navigate(self, target_index: int) -> bool:
        """
        Move to the question at ``target_index``.

        Out-of-range targets and the current index are ignored. The time spent
        on the question being left is recorded before the transition starts.
        """
        state = self._idle_active_state("navigate")
        if state is None:
            return False
        if not 0 <= target_index < len(self.questions) or target_index == state.index:
            logger.debug(f"Ignoring navigate({target_index})", extra=self._log_extra())
            return False

        self._flush_time(state, self._clock())
        self._navigation_in_flight = True
        self._run_later(
            self.timing.navigation_seconds,
            lambda: self._complete_navigation(target_index),
        )
        return True

    def next(self) -> bool:
        """Advance to the next question, finishing after the last one."""
        state = self._idle_active_state("next")
        if state is None:
            return False
        return self._advance(state)

    def skip(self) -> bool:
        """Move on without answering. Same transition as ``next``."""
        return self.next()

    def previous(self) -> bool:
        state = self._idle_active_state("previous")
        if state is None:
            return False
        return self.navigate(state.index - 1)

    # ------------------------------------------------------------------
    # AI assisted grading
    # ------------------------------------------------------------------

    async def request_ai_grading(
        self, service: GradingService, answer_key_image: str
    ) -> Optional[Result]:
        """
        Grade the finished session with the AI grading service.

        Returns the graded Result, the existing one if grading already
        succeeded, or None when the session is not finished or a grading call
        is already in flight.

        Raises:
            GradingServiceError: The service failed. The session keeps its
                local Result and the request may be retried.
        """
        if not isinstance(self._state, Finished):
            logger.debug("Ignoring AI grading before finish", extra=self._log_extra())
            return None
        if self._grading_status == GradingStatus.IN_FLIGHT:
            logger.debug("AI grading already in flight", extra=self._log_extra())
            return None
        if self._grading_status == GradingStatus.SUCCEEDED:
            return self._result

        self._grading_status = GradingStatus.IN_FLIGHT
        self._grading_error = None
        request = GradingRequest(
            answer_key_image=answer_key_image,
            user_answers={str(n): a for n, a in self._answers.items()},
            timings={str(n): t for n, t in self._timings.items()},
            syllabus=self.syllabus or self.category,
        )

        try:
            analysis = await service.analyze_test_results(request)
        except GradingServiceError as e:
            self._fail_grading(e)
            raise
        except Exception as e:
            # Anything else (a bad image, an SDK bug) must not leave the call in flight
            error = GradingServiceError(
                f"AI grading failed unexpectedly: {e}",
                retryable=True,
                category=ErrorCategory.UNKNOWN,
            )
            self._fail_grading(error)
            raise error from e

        base = self._result or self._build_result(None)
        self._result = base.with_analysis(analysis)
        self._grading_status = GradingStatus.SUCCEEDED
        logger.info(f"AI grading succeeded: {self._result.score}", extra=self._log_extra())
        # A keyed session already delivered its one Result after local grading
        if not base.is_graded:
            self._log_result(self._result)
        return self._result

    def _fail_grading(self, error: GradingServiceError) -> None:
        self._grading_status = GradingStatus.FAILED
        self._grading_error = error
        logger.warning(
            f"AI grading failed (retryable={error.retryable}): {error}",
            extra=self._log_extra(),
        )

    async def analyze_mistake(
        self,
        service: GradingService,
        image: str,
        description: Optional[str] = None,
        question_number: Optional[int] = None,
    ) -> MistakeAnalysis:
        """
        Ask the grading service to explain one mistake.

        A returned topic is passed to the weakness-tracking sink.

        Raises:
            GradingServiceError: The service failed.
        """
        analysis = await service.analyze_specific_mistake(image, description)
        if question_number is not None:
            analysis = replace(analysis, question_number=question_number)

        topic = analysis.topic.strip()
        if topic and self.sinks.update_weaknesses is not None:
            with graceful_failure("update weaknesses", logger, context=self._log_extra()):
                self.sinks.update_weaknesses([topic])
        return analysis

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self) -> SessionSnapshot:
        state = self._state
        active = state if isinstance(state, Active) else None
        return SessionSnapshot(
            session_id=self.session_id,
            status=self.status,
            question_numbers=tuple(q.number for q in self.questions),
            current_index=active.index if active else None,
            current_question_number=self.questions[active.index].number if active else None,
            current_subject=self.current_subject,
            current_question_type=self.current_question_type,
            remaining_seconds=self._remaining,
            answers=self.answers,
            timings=self.timings,
            marked_for_review=self.marked_for_review,
            feedback=active.feedback if active else None,
            navigation_in_flight=self._navigation_in_flight,
            finished=state if isinstance(state, Finished) else None,
            result=self._result,
            grading_status=self._grading_status,
            grading_error=str(self._grading_error) if self._grading_error else None,
            grading_error_retryable=(
                self._grading_error.retryable if self._grading_error else None
            ),
            reattempts_scheduled=tuple(self._reattempted),
        )

    @property
    def last_feedback(self) -> Optional[Feedback]:
        """Most recent feedback, kept after the display delay has passed."""
        return self._last_feedback

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _idle_active_state(self, operation: str) -> Optional[Active]:
        state = self._state
        if not isinstance(state, Active):
            logger.debug(f"Ignoring {operation}() in state {self.status.value}", extra=self._log_extra())
            return None
        if state.feedback is not None or self._navigation_in_flight:
            logger.debug(f"Ignoring {operation}() while busy", extra=self._log_extra())
            return None
        return state

    def _advance(self, state: Active) -> bool:
        if state.index + 1 >= len(self.questions):
            return self.finish(FinishReason.COMPLETED)
        return self.navigate(state.index + 1)

    def _after_feedback(self) -> None:
        self._pending_handle = None
        state = self._state
        if not isinstance(state, Active) or state.feedback is None:
            return
        cleared = replace(state, feedback=None)
        self._state = cleared
        self._advance(cleared)

    def _complete_navigation(self, target_index: int) -> None:
        self._pending_handle = None
        if not isinstance(self._state, Active):
            return
        self._navigation_in_flight = False
        self._state = Active(index=target_index, visit_started_at=self._clock())
        logger.debug(
            f"Moved to Q{self.questions[target_index].number}",
            extra=self._log_extra(self.questions[target_index].number),
        )

    def _flush_time(self, state: Active, now: float) -> None:
        number = self.questions[state.index].number
        self._timings[number] += max(0.0, now - state.visit_started_at)

    def _schedule_reattempt(self, question: Question, expected: Optional[str]) -> None:
        if self.source_task is None or self.sinks.save_task is None:
            return
        if self.source_task.is_reattempt or question.number in self._reattempted:
            return

        task = build_reattempt_task(self.source_task, question.number, expected, utc_now())
        self._reattempted.append(question.number)
        with graceful_failure(
            "save reattempt task", logger, context=self._log_extra(question.number)
        ):
            self.sinks.save_task(task)
            logger.info(f"Reattempt scheduled for {task.date}", extra=self._log_extra(question.number))

    def _grade_locally(self) -> None:
        if not self.answer_key:
            self._result = self._build_result(None)
            logger.info("No answer key; session logged without a score", extra=self._log_extra())
            return

        breakdown = grade_answers(
            self.questions, self._answers, self.answer_key, self.mode, self.exam_format
        )
        self._result = self._build_result(breakdown)
        self._log_result(self._result)

    def _build_result(self, breakdown) -> Result:
        return build_result(
            breakdown=breakdown,
            timings=self._timings,
            category=self.category,
            syllabus=self.syllabus,
        )

    def _log_result(self, result: Result) -> None:
        if self.sinks.log_result is None:
            return
        with graceful_failure("log result", logger, log_level=logging.ERROR, context=self._log_extra()):
            self.sinks.log_result(result)

    def _run_later(self, delay: float, callback: Callable[[], None]) -> None:
        if delay <= 0:
            callback()
            return
        self._pending_handle = self._scheduler.call_later(delay, callback)

    def _schedule_tick(self) -> None:
        self._tick_handle = self._scheduler.call_later(self.timing.tick_seconds, self._on_tick)

    def _on_tick(self) -> None:
        self._tick_handle = None
        self.tick()

    def _cancel_tick(self) -> None:
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    def _cancel_pending(self) -> None:
        if self._pending_handle is not None:
            self._pending_handle.cancel()
            self._pending_handle = None

    def _log_extra(self, question_number: Optional[int] = None) -> Dict[str, Any]:
        extra: Dict[str, Any] = {"session_id": self.session_id}
        if question_number is not None:
            extra["question_number"] = question_number
        return extra
