"""
Pydantic schemas for practice session endpoints.
"""
from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from practice_app.core.answers import (
    AnswerKeyError,
    parse_answer_key_json,
    parse_answer_key_text,
    parse_question_ranges,
)
from practice_app.core.datetime_utils import format_clock
from practice_app.core.error_responses import ErrorMessages
from practice_app.core.exam_format import JEE_MAINS, composite_question_numbers
from practice_app.core.reattempt import HomeworkTask, ReattemptTask
from practice_app.core.registry import SessionRecord
from practice_app.core.session import Feedback, GradingStatus, SessionStatus
from practice_app.core.time_analysis import session_time_summary, subject_time_breakdown
from practice_app.models.models import (
    GeneratedPracticeTest,
    MistakeAnalysis,
    Question,
    QuestionType,
    Result,
    ScoringMode,
    TestAnalysis,
)


# ==============================================================================
# Requests
# ==============================================================================


class QuestionIn(BaseModel):
    """A rich question supplied by the caller."""

    number: int = Field(..., ge=1, description="Question number")
    text: Optional[str] = Field(None, description="Prompt text")
    options: List[str] = Field(default_factory=list, description="Answer options in order")
    type: Optional[QuestionType] = Field(None, description="MCQ or NUM")

    def to_domain(self) -> Question:
        return Question(
            number=self.number,
            text=self.text,
            options=tuple(self.options),
            question_type=self.type,
        )


class HomeworkTaskIn(BaseModel):
    """The homework task a session is started from."""

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    subject: Optional[str] = None
    question_ranges: Optional[str] = None
    answers: Dict[str, str] = Field(default_factory=dict)
    is_reattempt: bool = False

    def to_domain(self) -> HomeworkTask:
        return HomeworkTask(
            id=self.id,
            title=self.title,
            subject=self.subject,
            question_ranges=self.question_ranges,
            answers=dict(self.answers),
            is_reattempt=self.is_reattempt,
        )


class CreateSessionRequest(BaseModel):
    """
    Schema for creating a practice session.

    Questions come from exactly one of ``questions``, ``question_numbers`` or
    ``question_ranges``; in composite mode they may be omitted to get the full
    exam. The answer key may be a mapping or pasted text.
    """

    questions: Optional[List[QuestionIn]] = None
    question_numbers: Optional[List[int]] = None
    question_ranges: Optional[str] = Field(
        None, description="Question ranges such as '1-5; 8; 10-12'"
    )
    mode: ScoringMode = ScoringMode.PRACTICE
    answer_key: Optional[Dict[str, str]] = None
    answer_key_text: Optional[str] = Field(
        None, description="Pasted key: '1:A, 2:C, 3:12.5' or 'A C 12.5'"
    )
    time_budget_seconds: Optional[float] = Field(None, gt=0)
    per_question_seconds: Optional[float] = Field(None, gt=0)
    subject: Optional[str] = None
    category: str = Field("Practice", min_length=1)
    syllabus: Optional[str] = None
    source_task: Optional[HomeworkTaskIn] = None

    @field_validator("answer_key")
    @classmethod
    def validate_answer_key(cls, v: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        if v is None:
            return v
        try:
            return parse_answer_key_json(v)
        except AnswerKeyError as e:
            raise ValueError(ErrorMessages.invalid_answer_key(str(e))) from e

    @model_validator(mode="after")
    def validate_sources(self) -> "CreateSessionRequest":
        sources = [
            s for s in (self.questions, self.question_numbers, self.question_ranges)
            if s is not None
        ]
        if len(sources) > 1:
            raise ValueError(
                "Provide only one of questions, question_numbers or question_ranges"
            )
        if not sources and self.mode != ScoringMode.COMPOSITE and self.source_task is None:
            raise ValueError("Provide questions, question_numbers or question_ranges")
        if self.time_budget_seconds is not None and self.per_question_seconds is not None:
            raise ValueError("Provide either time_budget_seconds or per_question_seconds")
        return self

    def resolve_questions(self) -> List[Question]:
        """Questions in session order; may be empty if the ranges matched nothing."""
        if self.questions is not None:
            return [q.to_domain() for q in self.questions]
        if self.question_numbers is not None:
            return [Question(number=n) for n in self.question_numbers]
        ranges = self.question_ranges
        if ranges is None and self.source_task is not None:
            ranges = self.source_task.question_ranges
        if ranges is not None:
            return [Question(number=n) for n in parse_question_ranges(ranges)]
        return [Question(number=n) for n in composite_question_numbers(JEE_MAINS)]

    def resolve_answer_key(self) -> Optional[Dict[str, str]]:
        """Merged key: homework answers, then pasted text, then the mapping."""
        key: Dict[str, str] = {}
        if self.source_task is not None:
            key.update(self.source_task.answers)
        if self.answer_key_text:
            key.update(parse_answer_key_text(self.answer_key_text))
        if self.answer_key:
            key.update(self.answer_key)
        return key or None


class AnswerRequest(BaseModel):
    answer: str = Field(..., description="Option letter, option number 1-4 or a numeric value")


class NavigateRequest(BaseModel):
    target_index: int = Field(..., description="0-based position to move to")


class GradeRequest(BaseModel):
    answer_key_image: str = Field(..., min_length=1, description="Base64-encoded JPEG")


class MistakeRequest(BaseModel):
    image: str = Field(..., min_length=1, description="Base64-encoded photo of the question")
    description: Optional[str] = Field(None, max_length=2000)
    question_number: Optional[int] = Field(None, ge=1)


class GeneratePracticeTestRequest(BaseModel):
    topic: str = Field(..., description="Topic to practice")
    num_questions: int = Field(10, ge=1, le=50)
    difficulty: Literal["easy", "medium", "hard"] = "medium"

    @field_validator("topic")
    @classmethod
    def validate_topic(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError(ErrorMessages.TOPIC_REQUIRED)
        return v


# ==============================================================================
# Responses
# ==============================================================================


class FeedbackResponse(BaseModel):
    question_number: int
    answer: str
    is_correct: Optional[bool] = None
    expected: Optional[str] = None

    @classmethod
    def from_domain(cls, feedback: Feedback) -> "FeedbackResponse":
        return cls(
            question_number=feedback.question_number,
            answer=feedback.answer,
            is_correct=feedback.is_correct,
            expected=feedback.expected,
        )


class ChapterScoreResponse(BaseModel):
    correct: int
    incorrect: int
    accuracy: float


class AnalysisResponse(BaseModel):
    score: int
    total_marks: int
    correct_question_numbers: List[int]
    incorrect_question_numbers: List[int]
    unattempted_question_numbers: List[int]
    subject_timings: Dict[str, float]
    chapter_scores: Dict[str, ChapterScoreResponse]
    ai_suggestions: str

    @classmethod
    def from_domain(cls, analysis: TestAnalysis) -> "AnalysisResponse":
        return cls(
            score=analysis.score,
            total_marks=analysis.total_marks,
            correct_question_numbers=list(analysis.correct_question_numbers),
            incorrect_question_numbers=list(analysis.incorrect_question_numbers),
            unattempted_question_numbers=list(analysis.unattempted_question_numbers),
            subject_timings=dict(analysis.subject_timings),
            chapter_scores={
                name: ChapterScoreResponse(
                    correct=c.correct, incorrect=c.incorrect, accuracy=c.accuracy
                )
                for name, c in analysis.chapter_scores.items()
            },
            ai_suggestions=analysis.ai_suggestions,
        )


class ResultResponse(BaseModel):
    """Schema for the Result of a finished session."""

    id: str
    date: datetime
    score: Optional[str] = Field(None, description="'earned/possible', null when ungraded")
    mistakes: List[str]
    timings: Dict[int, float]
    category: str
    syllabus: Optional[str] = None
    analysis: Optional[AnalysisResponse] = None

    @classmethod
    def from_domain(cls, result: Result) -> "ResultResponse":
        return cls(
            id=result.id,
            date=result.date,
            score=result.score,
            mistakes=list(result.mistakes),
            timings=dict(result.timings),
            category=result.category,
            syllabus=result.syllabus,
            analysis=AnalysisResponse.from_domain(result.analysis) if result.analysis else None,
        )


class ReattemptTaskResponse(BaseModel):
    id: str
    title: str
    date: date
    question_number: int
    question_ranges: str
    answers: Dict[str, str]
    source_task_id: str
    subject: Optional[str] = None
    is_reattempt: bool = True

    @classmethod
    def from_domain(cls, task: ReattemptTask) -> "ReattemptTaskResponse":
        return cls(
            id=task.id,
            title=task.title,
            date=task.date,
            question_number=task.question_number,
            question_ranges=task.question_ranges,
            answers=dict(task.answers),
            source_task_id=task.source_task_id,
            subject=task.subject,
            is_reattempt=task.is_reattempt,
        )


class CompletionResponse(BaseModel):
    reason: str
    duration_seconds: int
    solved_count: int
    skipped: List[int]


class TimeSummaryResponse(BaseModel):
    total_seconds: float
    mean_seconds: float
    slowest_question: Optional[int] = None
    overtime_questions: List[int]
    by_subject: Dict[str, float]


class SessionResponse(BaseModel):
    """Schema for a practice session snapshot."""

    id: str
    accepted: bool = Field(True, description="False when the action did not apply")
    status: SessionStatus
    mode: ScoringMode
    question_numbers: List[int]
    current_index: Optional[int] = None
    current_question_number: Optional[int] = None
    current_subject: Optional[str] = None
    current_question_type: Optional[QuestionType] = None
    remaining_seconds: float
    remaining_display: str = Field(..., description="Countdown as MM:SS")
    answers: Dict[int, str]
    timings: Dict[int, float]
    marked_for_review: List[int]
    feedback: Optional[FeedbackResponse] = None
    last_feedback: Optional[FeedbackResponse] = None
    navigation_in_flight: bool
    completion: Optional[CompletionResponse] = None
    time_summary: Optional[TimeSummaryResponse] = None
    result: Optional[ResultResponse] = None
    grading_status: GradingStatus
    grading_error: Optional[str] = None
    grading_error_retryable: Optional[bool] = None
    reattempt_tasks: List[ReattemptTaskResponse] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    logged_results: int = Field(0, description="Results delivered to the result log")

    @classmethod
    def from_record(cls, record: SessionRecord, accepted: bool = True) -> "SessionResponse":
        session = record.session
        snap = session.snapshot()

        completion = None
        time_summary = None
        if snap.finished is not None:
            completion = CompletionResponse(
                reason=snap.finished.reason.value,
                duration_seconds=snap.finished.duration_seconds,
                solved_count=snap.finished.solved_count,
                skipped=list(snap.finished.skipped),
            )
            summary = session_time_summary(snap.timings, record.per_question_seconds)
            time_summary = TimeSummaryResponse(
                total_seconds=summary.total_seconds,
                mean_seconds=summary.mean_seconds,
                slowest_question=summary.slowest_question,
                overtime_questions=list(summary.overtime_questions),
                by_subject=subject_time_breakdown(
                    snap.question_numbers,
                    snap.timings,
                    session.exam_format,
                    session.subject or "OTHER",
                ),
            )

        return cls(
            id=record.id,
            accepted=accepted,
            status=snap.status,
            mode=session.mode,
            question_numbers=list(snap.question_numbers),
            current_index=snap.current_index,
            current_question_number=snap.current_question_number,
            current_subject=snap.current_subject,
            current_question_type=snap.current_question_type,
            remaining_seconds=snap.remaining_seconds,
            remaining_display=format_clock(snap.remaining_seconds),
            answers=snap.answers,
            timings=snap.timings,
            marked_for_review=list(snap.marked_for_review),
            feedback=FeedbackResponse.from_domain(snap.feedback) if snap.feedback else None,
            last_feedback=(
                FeedbackResponse.from_domain(session.last_feedback)
                if session.last_feedback
                else None
            ),
            navigation_in_flight=snap.navigation_in_flight,
            completion=completion,
            time_summary=time_summary,
            result=ResultResponse.from_domain(snap.result) if snap.result else None,
            grading_status=snap.grading_status,
            grading_error=snap.grading_error,
            grading_error_retryable=snap.grading_error_retryable,
            reattempt_tasks=[ReattemptTaskResponse.from_domain(t) for t in record.reattempt_tasks],
            weaknesses=list(record.weaknesses),
            logged_results=len(record.logged_results),
        )


class MistakeAnalysisResponse(BaseModel):
    topic: str
    explanation: str
    question_number: Optional[int] = None
    weaknesses: List[str] = Field(default_factory=list)

    @classmethod
    def from_domain(
        cls, analysis: MistakeAnalysis, weaknesses: List[str]
    ) -> "MistakeAnalysisResponse":
        return cls(
            topic=analysis.topic,
            explanation=analysis.explanation,
            question_number=analysis.question_number,
            weaknesses=list(weaknesses),
        )


class GeneratedQuestionResponse(BaseModel):
    number: int
    text: Optional[str] = None
    options: List[str]
    type: Optional[QuestionType] = None


class GeneratedPracticeTestResponse(BaseModel):
    topic: Optional[str] = None
    questions: List[GeneratedQuestionResponse]
    answers: Dict[str, str]

    @classmethod
    def from_domain(cls, test: GeneratedPracticeTest) -> "GeneratedPracticeTestResponse":
        return cls(
            topic=test.topic,
            questions=[
                GeneratedQuestionResponse(
                    number=q.number,
                    text=q.text,
                    options=list(q.options),
                    type=q.question_type,
                )
                for q in test.questions
            ],
            answers=dict(test.answers),
        )
