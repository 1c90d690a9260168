"""
Tests for the AI grading service.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from practice_app.core.error_classifier import (
    ClassifiedError,
    ErrorCategory,
    ErrorSeverity,
)
from practice_app.grading import prompts
from practice_app.grading.service import (
    AIGradingService,
    GradingRequest,
    GradingServiceError,
)
from practice_app.models.models import QuestionType
from practice_app.providers.base import ImagePart, LLMProviderError

ANALYSIS_PAYLOAD = {
    "score": 180,
    "totalMarks": 300,
    "correctQuestionNumbers": [1, 2],
    "incorrectQuestionNumbers": [3, 21],
    "unattemptedQuestionNumbers": [4],
    "subjectTimings": {"PHYSICS": 1200.5, "CHEMISTRY": 900},
    "chapterScores": {"Kinematics": {"correct": 2, "incorrect": 1, "accuracy": 66.7}},
    "aiSuggestions": "Spend less time on numeric questions.",
}


@pytest.fixture
def provider():
    mock = MagicMock()
    mock.generate_structured_completion_async = AsyncMock(return_value=ANALYSIS_PAYLOAD)
    return mock


@pytest.fixture
def request_payload():
    return GradingRequest(
        answer_key_image="aW1hZ2U=",
        user_answers={"1": "A", "3": "B"},
        timings={"1": 30.0, "2": 12.5},
        syllabus="JEE Main Full Syllabus",
    )


def _provider_error(category, retryable):
    classified = ClassifiedError(
        category=category,
        severity=ErrorSeverity.HIGH,
        provider="google",
        original_error="ResourceExhausted",
        message="Rate limit reached for google. Try again in a moment.",
        is_retryable=retryable,
    )
    return LLMProviderError(classified)


class TestAnalyzeTestResults:
    """Tests for analyze_test_results."""

    @pytest.mark.asyncio
    async def test_parses_analysis(self, provider, request_payload):
        service = AIGradingService(provider)

        analysis = await service.analyze_test_results(request_payload)

        assert analysis.score == 180
        assert analysis.total_marks == 300
        assert analysis.incorrect_question_numbers == (3, 21)
        assert analysis.unattempted_question_numbers == (4,)
        assert analysis.subject_timings == {"PHYSICS": 1200.5, "CHEMISTRY": 900.0}
        assert analysis.chapter_scores["Kinematics"].accuracy == 66.7

    @pytest.mark.asyncio
    async def test_sends_prompt_image_and_system_instruction(self, provider, request_payload):
        service = AIGradingService(provider, max_output_tokens=2048)

        await service.analyze_test_results(request_payload)

        call = provider.generate_structured_completion_async.call_args
        prompt, response_format = call.args
        assert '"1": "A"' in prompt
        assert "JEE Main Full Syllabus" in prompt
        assert response_format == prompts.TEST_ANALYSIS_FORMAT
        assert call.kwargs["system_instruction"] == prompts.GRADING_SYSTEM_PROMPT
        assert call.kwargs["images"] == [ImagePart("aW1hZ2U=")]
        assert call.kwargs["max_tokens"] == 2048

    @pytest.mark.asyncio
    async def test_provider_error_keeps_retryable_flag(self, provider, request_payload):
        provider.generate_structured_completion_async.side_effect = _provider_error(
            ErrorCategory.RATE_LIMIT, True
        )
        service = AIGradingService(provider)

        with pytest.raises(GradingServiceError) as exc_info:
            await service.analyze_test_results(request_payload)

        assert exc_info.value.retryable is True
        assert exc_info.value.category == ErrorCategory.RATE_LIMIT
        assert "Rate limit" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_non_retryable_provider_error(self, provider, request_payload):
        provider.generate_structured_completion_async.side_effect = _provider_error(
            ErrorCategory.AUTHENTICATION, False
        )
        service = AIGradingService(provider)

        with pytest.raises(GradingServiceError) as exc_info:
            await service.analyze_test_results(request_payload)

        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_incomplete_payload_is_retryable(self, provider, request_payload):
        provider.generate_structured_completion_async.return_value = {"score": 10}
        service = AIGradingService(provider)

        with pytest.raises(GradingServiceError) as exc_info:
            await service.analyze_test_results(request_payload)

        assert exc_info.value.retryable is True
        assert exc_info.value.category == ErrorCategory.INVALID_RESPONSE

    @pytest.mark.asyncio
    async def test_snake_case_payload_accepted(self, provider, request_payload):
        provider.generate_structured_completion_async.return_value = {
            "score": 4,
            "total_marks": 12,
            "incorrect_question_numbers": [2],
        }
        service = AIGradingService(provider)

        analysis = await service.analyze_test_results(request_payload)

        assert analysis.incorrect_question_numbers == (2,)
        assert analysis.ai_suggestions == ""


class TestAnalyzeSpecificMistake:
    """Tests for analyze_specific_mistake."""

    @pytest.mark.asyncio
    async def test_returns_topic(self, provider):
        provider.generate_structured_completion_async.return_value = {
            "topic": " Work-Energy Theorem ",
            "explanation": "Friction does negative work.",
        }
        service = AIGradingService(provider)

        analysis = await service.analyze_specific_mistake("aW1hZ2U=", "Sign of work")

        assert analysis.topic == "Work-Energy Theorem"
        prompt = provider.generate_structured_completion_async.call_args.args[0]
        assert "Sign of work" in prompt

    @pytest.mark.asyncio
    async def test_default_description(self, provider):
        provider.generate_structured_completion_async.return_value = {
            "topic": "Optics",
            "explanation": "Lens formula.",
        }
        service = AIGradingService(provider)

        await service.analyze_specific_mistake("aW1hZ2U=")

        prompt = provider.generate_structured_completion_async.call_args.args[0]
        assert "No description given" in prompt

    @pytest.mark.asyncio
    async def test_missing_topic_is_invalid(self, provider):
        provider.generate_structured_completion_async.return_value = {"explanation": "?"}
        service = AIGradingService(provider)

        with pytest.raises(GradingServiceError) as exc_info:
            await service.analyze_specific_mistake("aW1hZ2U=")

        assert exc_info.value.category == ErrorCategory.INVALID_RESPONSE


class TestGeneratePracticeTest:
    """Tests for generate_practice_test."""

    @pytest.mark.asyncio
    async def test_generates_questions_and_key(self, provider):
        provider.generate_structured_completion_async.return_value = {
            "questions": [
                {"number": 1, "text": "Unit of force?", "options": ["N", "J", "W", "Pa"]},
                {"number": 2, "text": "g in m/s^2 (integer)?", "type": "NUM"},
            ],
            "answers": {"1": "A", "2": "10"},
        }
        service = AIGradingService(provider)

        test = await service.generate_practice_test("Mechanics", 2, "easy")

        assert test.topic == "Mechanics"
        assert test.question_numbers == [1, 2]
        assert test.questions[0].options == ("N", "J", "W", "Pa")
        assert test.questions[1].question_type == QuestionType.NUM
        assert test.answers == {"1": "A", "2": "10"}
        call = provider.generate_structured_completion_async.call_args
        assert call.kwargs["images"] == []
        assert "Difficulty: easy" in call.args[0]

    @pytest.mark.asyncio
    async def test_empty_question_list_is_invalid(self, provider):
        provider.generate_structured_completion_async.return_value = {"questions": []}
        service = AIGradingService(provider)

        with pytest.raises(GradingServiceError):
            await service.generate_practice_test("Mechanics", 2, "easy")
