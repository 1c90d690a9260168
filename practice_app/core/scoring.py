"""
Local grading of practice sessions.

This module turns a session's submitted answers into a score using the
answer key supplied when the session was created. It runs once, when the
session finishes; the AI grading service may later replace the result with
a detailed analysis, but the local score never depends on it.

Marking scheme
==============
- Correct answer: +4
- Wrong attempted answer: -1
- Unattempted: 0

Composite exams use reduced negative marking: a wrong answer to a
numeric-entry question scores 0 instead of -1, and the total possible score
is the exam's fixed total rather than 4 x question count.

The scheme is pluggable in the same way for both modes: each mode is a
``MarkingScheme`` and ``grade_answers`` only talks to the protocol.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Protocol, Sequence, Tuple

from practice_app.core.answers import answers_match, is_attempted
from practice_app.core.datetime_utils import utc_now
from practice_app.core.exam_format import (
    JEE_MAINS,
    CompositeExamFormat,
    resolve_question_type,
)
from practice_app.models.models import (
    Question,
    QuestionType,
    Result,
    ScoringMode,
)

logger = logging.getLogger(__name__)

MARKS_CORRECT = 4
MARKS_INCORRECT = -1
MARKS_UNATTEMPTED = 0


@dataclass(frozen=True)
class ScoreBreakdown:
    """Outcome of local grading."""

    earned: int
    possible: int
    correct: Tuple[int, ...]
    incorrect: Tuple[int, ...]
    unattempted: Tuple[int, ...]

    @property
    def score(self) -> str:
        return format_score(self.earned, self.possible)

    @property
    def mistakes(self) -> Tuple[str, ...]:
        return tuple(str(number) for number in self.incorrect)


class MarkingScheme(Protocol):
    """
    Protocol for marking schemes.

    A scheme decides the credit of a single question and the maximum score
    of a session; everything else about grading is shared.
    """

    def credit(
        self,
        answer: Optional[str],
        expected: str,
        question_type: Optional[QuestionType],
    ) -> int:
        ...

    def possible_marks(self, question_count: int) -> int:
        ...


class PracticeMarking:
    """+4 / -1 / 0 for every question; possible = 4 x question count."""

    def credit(
        self,
        answer: Optional[str],
        expected: str,
        question_type: Optional[QuestionType],
    ) -> int:
        if not is_attempted(answer):
            return MARKS_UNATTEMPTED
        if answers_match(answer, expected):
            return MARKS_CORRECT
        return MARKS_INCORRECT

    def possible_marks(self, question_count: int) -> int:
        return MARKS_CORRECT * question_count


class CompositeMarking(PracticeMarking):
    """
    Composite exam marking.

    Wrong numeric-entry answers are not penalized; only wrong multiple-choice
    answers (or answers of unknown type) cost a mark.
    """

    def __init__(self, exam_format: CompositeExamFormat = JEE_MAINS):
        self.exam_format = exam_format

    def credit(
        self,
        answer: Optional[str],
        expected: str,
        question_type: Optional[QuestionType],
    ) -> int:
        marks = super().credit(answer, expected, question_type)
        if marks == MARKS_INCORRECT and question_type == QuestionType.NUM:
            return MARKS_UNATTEMPTED
        return marks

    def possible_marks(self, question_count: int) -> int:
        return self.exam_format.total_marks


def marking_scheme_for(
    mode: ScoringMode, exam_format: Optional[CompositeExamFormat] = None
) -> MarkingScheme:
    """Return the marking scheme for a scoring mode."""
    if mode == ScoringMode.COMPOSITE:
        return CompositeMarking(exam_format or JEE_MAINS)
    return PracticeMarking()


def question_credit(
    answer: Optional[str],
    expected: str,
    question_type: Optional[QuestionType] = None,
    mode: ScoringMode = ScoringMode.PRACTICE,
) -> int:
    """
    Credit for one question.

    Example:
        >>> question_credit("2", "B")
        4
        >>> question_credit("A", "C", QuestionType.NUM, ScoringMode.COMPOSITE)
        0
    """
    return marking_scheme_for(mode).credit(answer, expected, question_type)


def format_score(earned: int, possible: int) -> str:
    """Format a score as ``"earned/possible"``."""
    return f"{earned}/{possible}"


def grade_answers(
    questions: Sequence[Question],
    answers: Mapping[int, str],
    answer_key: Mapping[str, str],
    mode: ScoringMode = ScoringMode.PRACTICE,
    exam_format: Optional[CompositeExamFormat] = None,
) -> ScoreBreakdown:
    """
    Grade submitted answers against an answer key.

    Pure function of its inputs: the same answers, key and mode always give
    the same breakdown.

    Args:
        questions: Questions in session order
        answers: Submitted answers keyed by question number
        answer_key: Expected answers keyed by question number (as string)
        mode: Marking scheme to apply
        exam_format: Band layout used to infer answer formats in composite
            mode (defaults to JEE Main)

    Returns:
        ScoreBreakdown with earned/possible marks and the question numbers
        that were correct, incorrect and unattempted. Questions missing from
        the key earn nothing and are listed in none of the three groups.
    """
    if mode == ScoringMode.COMPOSITE:
        exam_format = exam_format or JEE_MAINS
    scheme = marking_scheme_for(mode, exam_format)
    band_format = exam_format if mode == ScoringMode.COMPOSITE else None

    earned = 0
    correct = []
    incorrect = []
    unattempted = []

    for index, question in enumerate(questions):
        expected = answer_key.get(question.key)
        if expected is None:
            continue

        answer = answers.get(question.number)
        question_type = resolve_question_type(index, question, band_format)
        earned += scheme.credit(answer, expected, question_type)

        if not is_attempted(answer):
            unattempted.append(question.number)
        elif answers_match(answer, expected):
            correct.append(question.number)
        else:
            incorrect.append(question.number)

    breakdown = ScoreBreakdown(
        earned=earned,
        possible=scheme.possible_marks(len(questions)),
        correct=tuple(correct),
        incorrect=tuple(incorrect),
        unattempted=tuple(unattempted),
    )
    logger.debug(
        f"Graded {len(questions)} questions ({mode.value}): {breakdown.score}, "
        f"{len(incorrect)} incorrect"
    )
    return breakdown


def build_result(
    *,
    breakdown: Optional[ScoreBreakdown],
    timings: Mapping[int, float],
    category: str,
    syllabus: Optional[str] = None,
    result_id: Optional[str] = None,
) -> Result:
    """
    Build the immutable Result of a finished session.

    Without a breakdown (no answer key) the result carries timings only and
    its score is None.
    """
    frozen_timings: Dict[int, float] = dict(timings)
    return Result(
        id=result_id or str(uuid.uuid4()),
        date=utc_now(),
        score=breakdown.score if breakdown else None,
        mistakes=breakdown.mistakes if breakdown else (),
        timings=frozen_timings,
        category=category,
        syllabus=syllabus,
    )
