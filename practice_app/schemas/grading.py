"""
Pydantic models for AI grading payloads.

These validate what the LLM returns before it reaches the session. Field
names are snake_case in Python and camelCase on the wire, matching the JSON
structure the prompts ask for.
"""
from typing import Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from practice_app.models.models import (
    ChapterScore,
    GeneratedPracticeTest,
    MistakeAnalysis,
    Question,
    QuestionType,
    TestAnalysis,
)


class CamelModel(BaseModel):
    """Base model accepting both camelCase and snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChapterScorePayload(CamelModel):
    correct: int = Field(ge=0)
    incorrect: int = Field(ge=0)
    accuracy: float = Field(ge=0, le=100)


class TestAnalysisPayload(CamelModel):
    """Full analysis of a graded test."""

    __test__ = False  # not a pytest test class

    score: int
    total_marks: int = Field(gt=0)
    correct_question_numbers: List[int] = Field(default_factory=list)
    incorrect_question_numbers: List[int] = Field(default_factory=list)
    unattempted_question_numbers: List[int] = Field(default_factory=list)
    subject_timings: Dict[str, float] = Field(default_factory=dict)
    chapter_scores: Dict[str, ChapterScorePayload] = Field(default_factory=dict)
    ai_suggestions: str = ""

    def to_domain(self) -> TestAnalysis:
        return TestAnalysis(
            score=self.score,
            total_marks=self.total_marks,
            incorrect_question_numbers=tuple(self.incorrect_question_numbers),
            subject_timings=dict(self.subject_timings),
            chapter_scores={
                name: ChapterScore(c.correct, c.incorrect, c.accuracy)
                for name, c in self.chapter_scores.items()
            },
            ai_suggestions=self.ai_suggestions,
            correct_question_numbers=tuple(self.correct_question_numbers),
            unattempted_question_numbers=tuple(self.unattempted_question_numbers),
        )


class MistakeAnalysisPayload(CamelModel):
    topic: str = Field(min_length=1)
    explanation: str

    def to_domain(self) -> MistakeAnalysis:
        return MistakeAnalysis(topic=self.topic.strip(), explanation=self.explanation)


class GeneratedQuestionPayload(CamelModel):
    number: int = Field(ge=1)
    text: str
    options: List[str] = Field(default_factory=list)
    type: Literal["MCQ", "NUM"] = "MCQ"


class PracticeTestPayload(CamelModel):
    """Questions and answer key produced by the generator."""

    questions: List[GeneratedQuestionPayload] = Field(min_length=1)
    answers: Dict[str, str] = Field(default_factory=dict)

    def to_domain(self, topic: str) -> GeneratedPracticeTest:
        return GeneratedPracticeTest(
            questions=tuple(
                Question(
                    number=q.number,
                    text=q.text,
                    options=tuple(q.options),
                    question_type=QuestionType(q.type),
                )
                for q in self.questions
            ),
            answers={str(k): str(v) for k, v in self.answers.items()},
            topic=topic,
        )
