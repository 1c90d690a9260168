"""
Timing summaries for finished sessions.

Local counterpart to the subject timing breakdown returned by the AI grading
service: given the per-question timing map of a session it reports seconds
per subject and the questions that ran over their allotment.
"""
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence, Tuple

from practice_app.core.exam_format import CompositeExamFormat, subject_for_index
from practice_app.models.models import Subject


@dataclass(frozen=True)
class TimeSummary:
    """Aggregate timing of a session."""

    total_seconds: float
    mean_seconds: float
    slowest_question: Optional[int]
    overtime_questions: Tuple[int, ...]


def subject_time_breakdown(
    question_numbers: Sequence[int],
    timings: Mapping[int, float],
    exam_format: Optional[CompositeExamFormat] = None,
    default_subject: str = Subject.OTHER.value,
) -> Dict[str, float]:
    """
    Seconds spent per subject.

    With a composite format each question is attributed to the subject of its
    band; otherwise all time goes to ``default_subject``.
    """
    breakdown: Dict[str, float] = {}
    for index, number in enumerate(question_numbers):
        seconds = timings.get(number, 0.0)
        if exam_format is not None:
            subject = subject_for_index(index, exam_format).value
        else:
            subject = default_subject
        breakdown[subject] = breakdown.get(subject, 0.0) + seconds
    return breakdown


def session_time_summary(
    timings: Mapping[int, float],
    per_question_seconds: Optional[float] = None,
) -> TimeSummary:
    """
    Summarize a timing map.

    Args:
        timings: Seconds spent per question number
        per_question_seconds: Allotment per question; questions that took
            longer are reported as overtime. None disables the check.
    """
    if not timings:
        return TimeSummary(0.0, 0.0, None, ())

    total = sum(timings.values())
    slowest = max(timings, key=lambda number: timings[number])
    overtime: Tuple[int, ...] = ()
    if per_question_seconds is not None:
        overtime = tuple(
            sorted(n for n, seconds in timings.items() if seconds > per_question_seconds)
        )

    return TimeSummary(
        total_seconds=total,
        mean_seconds=total / len(timings),
        slowest_question=slowest,
        overtime_questions=overtime,
    )
