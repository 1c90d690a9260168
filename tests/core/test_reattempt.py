"""
Tests for reattempt tasks.
"""
from datetime import date, datetime, timezone

from practice_app.core.reattempt import (
    HomeworkTask,
    build_reattempt_task,
    reattempt_title,
)


class TestBuildReattemptTask:
    """Tests for build_reattempt_task."""

    def setup_method(self):
        self.source = HomeworkTask(
            id="hw-1",
            title="Rotational Motion",
            subject="PHYSICS",
            question_ranges="1-10",
            answers={"3": "C"},
        )

    def test_task_fields(self):
        task = build_reattempt_task(self.source, 3, "C", date(2024, 3, 10))

        assert task.title == "Reattempt: Rotational Motion (Q3)"
        assert task.date == date(2024, 3, 11)
        assert task.question_number == 3
        assert task.question_ranges == "3"
        assert task.answers == {"3": "C"}
        assert task.source_task_id == "hw-1"
        assert task.subject == "PHYSICS"
        assert task.is_reattempt is True
        assert task.id

    def test_next_day_crosses_month_and_year(self):
        task = build_reattempt_task(self.source, 1, "A", date(2024, 12, 31))

        assert task.date == date(2025, 1, 1)

    def test_accepts_datetime(self):
        now = datetime(2024, 2, 28, 23, 59, tzinfo=timezone.utc)

        task = build_reattempt_task(self.source, 1, "A", now)

        assert task.date == date(2024, 2, 29)

    def test_without_expected_answer(self):
        task = build_reattempt_task(self.source, 4, None, date(2024, 3, 10))

        assert task.answers == {}

    def test_unique_ids(self):
        first = build_reattempt_task(self.source, 1, "A", date(2024, 3, 10))
        second = build_reattempt_task(self.source, 1, "A", date(2024, 3, 10))

        assert first.id != second.id


def test_reattempt_title():
    assert reattempt_title("Optics", 12) == "Reattempt: Optics (Q12)"
