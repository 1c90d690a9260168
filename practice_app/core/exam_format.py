"""
Composite exam format and question band mapping.

A composite exam is laid out as contiguous bands of questions, each band
belonging to one subject and one answer format. The band table is the only
place the layout is written down: the scorer (which needs the answer format
to decide the negative-marking rule) and the session (which shows the
current subject) both resolve positions through the functions below, so the
two can never disagree about where a band starts.

JEE Main layout (75 questions, 300 marks):

    index  0-19  PHYSICS    MCQ
    index 20-24  PHYSICS    NUM
    index 25-44  CHEMISTRY  MCQ
    index 45-49  CHEMISTRY  NUM
    index 50-69  MATHS      MCQ
    index 70-74  MATHS      NUM
"""
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from practice_app.models.models import Question, QuestionType, Subject


@dataclass(frozen=True)
class ExamBand:
    """A contiguous run of questions sharing subject and answer format."""

    subject: Subject
    question_type: QuestionType
    size: int


@dataclass(frozen=True)
class CompositeExamFormat:
    """Fixed-format exam made of ordered bands."""

    name: str
    bands: Tuple[ExamBand, ...]
    total_marks: int

    def __post_init__(self) -> None:
        if not self.bands:
            raise ValueError("A composite exam format needs at least one band")
        if any(band.size <= 0 for band in self.bands):
            raise ValueError("Band sizes must be positive")

    @property
    def question_count(self) -> int:
        return sum(band.size for band in self.bands)

    def band_for_index(self, index: int) -> Optional[ExamBand]:
        """Return the band containing the 0-based ``index``, or None outside the exam."""
        if index < 0:
            return None
        start = 0
        for band in self.bands:
            if index < start + band.size:
                return band
            start += band.size
        return None


# Band sizes for JEE Main: 20 MCQ then 5 numeric questions per subject
JEE_MAINS_MCQ_PER_SUBJECT = 20
JEE_MAINS_NUM_PER_SUBJECT = 5
JEE_MAINS_TOTAL_MARKS = 300

JEE_MAINS = CompositeExamFormat(
    name="JEE Main",
    bands=tuple(
        band
        for subject in (Subject.PHYSICS, Subject.CHEMISTRY, Subject.MATHS)
        for band in (
            ExamBand(subject, QuestionType.MCQ, JEE_MAINS_MCQ_PER_SUBJECT),
            ExamBand(subject, QuestionType.NUM, JEE_MAINS_NUM_PER_SUBJECT),
        )
    ),
    total_marks=JEE_MAINS_TOTAL_MARKS,
)


def band_for_index(
    index: int, exam_format: CompositeExamFormat = JEE_MAINS
) -> Optional[ExamBand]:
    """Band containing the 0-based question ``index``."""
    return exam_format.band_for_index(index)


def subject_for_index(
    index: int, exam_format: CompositeExamFormat = JEE_MAINS
) -> Subject:
    """Subject label for the question at ``index`` (OTHER outside the exam)."""
    band = exam_format.band_for_index(index)
    return band.subject if band else Subject.OTHER


def question_type_for_index(
    index: int, exam_format: CompositeExamFormat = JEE_MAINS
) -> Optional[QuestionType]:
    """Answer format inferred from the position of the question."""
    band = exam_format.band_for_index(index)
    return band.question_type if band else None


def resolve_question_type(
    index: int,
    question: Optional[Question] = None,
    exam_format: Optional[CompositeExamFormat] = None,
) -> Optional[QuestionType]:
    """
    Answer format of the question at ``index``.

    A type declared on the question itself wins; otherwise the position is
    looked up in the exam bands. Without either, the type is unknown (None),
    which the scorer treats like a multiple-choice question.
    """
    if question is not None and question.question_type is not None:
        return question.question_type
    if exam_format is not None:
        return question_type_for_index(index, exam_format)
    return None


def composite_question_numbers(
    exam_format: CompositeExamFormat = JEE_MAINS,
) -> Sequence[int]:
    """Question numbers 1..N for a full composite exam."""
    return list(range(1, exam_format.question_count + 1))
