"""
Tests for session timing summaries.
"""
import pytest

from practice_app.core.exam_format import JEE_MAINS
from practice_app.core.time_analysis import session_time_summary, subject_time_breakdown


class TestSubjectTimeBreakdown:
    def test_single_subject_without_format(self):
        breakdown = subject_time_breakdown([1, 2, 3], {1: 10.0, 2: 20.0, 3: 5.0}, None, "PHYSICS")

        assert breakdown == {"PHYSICS": 35.0}

    def test_composite_bands(self):
        numbers = list(range(1, 76))
        timings = {n: 0.0 for n in numbers}
        timings[1] = 30.0  # physics
        timings[30] = 12.5  # chemistry
        timings[75] = 7.5  # maths

        breakdown = subject_time_breakdown(numbers, timings, JEE_MAINS)

        assert breakdown == {"PHYSICS": 30.0, "CHEMISTRY": 12.5, "MATHS": 7.5}

    def test_missing_timings_count_as_zero(self):
        assert subject_time_breakdown([1, 2], {1: 4.0}) == {"OTHER": 4.0}


class TestSessionTimeSummary:
    def test_summary(self):
        summary = session_time_summary({1: 30.0, 2: 150.0, 3: 120.0}, per_question_seconds=120)

        assert summary.total_seconds == 300.0
        assert summary.mean_seconds == pytest.approx(100.0)
        assert summary.slowest_question == 2
        assert summary.overtime_questions == (2,)

    def test_no_allotment_disables_overtime(self):
        summary = session_time_summary({1: 500.0})

        assert summary.overtime_questions == ()

    def test_empty_timings(self):
        summary = session_time_summary({})

        assert summary.total_seconds == 0.0
        assert summary.slowest_question is None
        assert summary.overtime_questions == ()
