"""
Domain models for practice sessions.

These are plain immutable records: nothing here is persisted by the service
itself. Callers receive a ``Result`` through the result-logging sink and
store it wherever they keep their results.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Tuple
import enum


class QuestionType(str, enum.Enum):
    """Answer format of a question."""

    MCQ = "MCQ"  # single correct option, A-D
    NUM = "NUM"  # numeric entry


class Subject(str, enum.Enum):
    """Subjects of the composite exam."""

    PHYSICS = "PHYSICS"
    CHEMISTRY = "CHEMISTRY"
    MATHS = "MATHS"
    OTHER = "OTHER"


class ScoringMode(str, enum.Enum):
    """Marking scheme applied at the end of a session."""

    # Ad-hoc practice: +4 / -1 / 0, possible = 4 x question count
    PRACTICE = "practice"
    # Composite exam: fixed total marks, wrong numeric answers are not penalized
    COMPOSITE = "composite"


@dataclass(frozen=True)
class Question:
    """A question in a session, identified by its position number."""

    number: int
    text: Optional[str] = None
    options: Tuple[str, ...] = ()
    question_type: Optional[QuestionType] = None

    @property
    def key(self) -> str:
        """Identifier used by answer keys and result payloads."""
        return str(self.number)


@dataclass(frozen=True)
class ChapterScore:
    """Per-chapter accuracy reported by the grading service."""

    correct: int
    incorrect: int
    accuracy: float  # 0-100


@dataclass(frozen=True)
class TestAnalysis:
    """Detailed analysis produced by the AI grading service."""

    __test__ = False  # not a pytest test class

    score: int
    total_marks: int
    incorrect_question_numbers: Tuple[int, ...]
    subject_timings: Mapping[str, float]
    chapter_scores: Mapping[str, ChapterScore]
    ai_suggestions: str
    correct_question_numbers: Tuple[int, ...] = ()
    unattempted_question_numbers: Tuple[int, ...] = ()


@dataclass(frozen=True)
class MistakeAnalysis:
    """Topic label and explanation for a single mistake."""

    topic: str
    explanation: str
    question_number: Optional[int] = None


@dataclass(frozen=True)
class Result:
    """
    Outcome of a completed session.

    ``score`` is ``"earned/possible"``, or None when the session could not be
    graded locally (no answer key). ``mistakes`` lists incorrectly answered
    question identifiers.
    """

    id: str
    date: datetime
    score: Optional[str]
    mistakes: Tuple[str, ...]
    timings: Mapping[int, float]
    category: str
    syllabus: Optional[str] = None
    analysis: Optional[TestAnalysis] = None

    @property
    def is_graded(self) -> bool:
        return self.score is not None

    def with_analysis(self, analysis: TestAnalysis) -> "Result":
        """
        Return a copy graded by the AI service.

        The service's score and incorrect list replace the local ones; the
        session's timings are kept.
        """
        return replace(
            self,
            score=f"{analysis.score}/{analysis.total_marks}",
            mistakes=tuple(str(n) for n in analysis.incorrect_question_numbers),
            analysis=analysis,
        )


@dataclass(frozen=True)
class GeneratedPracticeTest:
    """Questions and answer key produced by the AI question generator."""

    questions: Tuple[Question, ...]
    answers: Dict[str, str] = field(default_factory=dict)
    topic: Optional[str] = None

    @property
    def question_numbers(self) -> List[int]:
        return [q.number for q in self.questions]
