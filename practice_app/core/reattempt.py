"""
Reattempt tasks for homework questions answered incorrectly.

When a session was started from a homework task, a wrong answer schedules a
single-question task for the next calendar day. Reattempt tasks are flagged
so that a session started from one never schedules another.
"""
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Optional, Union

from practice_app.core.datetime_utils import next_calendar_day


@dataclass(frozen=True)
class HomeworkTask:
    """The homework a session was sourced from."""

    id: str
    title: str
    subject: Optional[str] = None
    question_ranges: Optional[str] = None
    answers: Dict[str, str] = field(default_factory=dict)
    is_reattempt: bool = False


@dataclass(frozen=True)
class ReattemptTask:
    """A one-question follow-up task."""

    id: str
    title: str
    date: date
    question_number: int
    question_ranges: str
    answers: Dict[str, str]
    source_task_id: str
    subject: Optional[str] = None
    is_reattempt: bool = True


def reattempt_title(source_title: str, question_number: int) -> str:
    return f"Reattempt: {source_title} (Q{question_number})"


def build_reattempt_task(
    source: HomeworkTask,
    question_number: int,
    expected_answer: Optional[str],
    today: Union[date, datetime],
) -> ReattemptTask:
    """
    Build the reattempt task for one wrongly answered question.

    The task carries the expected answer for that question only, so a session
    started from it gets immediate feedback.
    """
    answers = {str(question_number): expected_answer} if expected_answer else {}
    return ReattemptTask(
        id=str(uuid.uuid4()),
        title=reattempt_title(source.title, question_number),
        date=next_calendar_day(today),
        question_number=question_number,
        question_ranges=str(question_number),
        answers=answers,
        source_task_id=source.id,
        subject=source.subject,
    )
