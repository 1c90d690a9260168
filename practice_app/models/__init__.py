"""
Models package for the practice session service.
"""
from .models import (
    ChapterScore,
    GeneratedPracticeTest,
    MistakeAnalysis,
    Question,
    QuestionType,
    Result,
    ScoringMode,
    Subject,
    TestAnalysis,
)

__all__ = [
    "ChapterScore",
    "GeneratedPracticeTest",
    "MistakeAnalysis",
    "Question",
    "QuestionType",
    "Result",
    "ScoringMode",
    "Subject",
    "TestAnalysis",
]
