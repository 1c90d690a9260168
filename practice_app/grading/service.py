"""
AI grading service.

Wraps an LLM provider behind the three calls a practice session needs:
grading a finished test against a photographed answer key, explaining a
single mistake, and generating a practice test. Provider failures and
unusable replies are raised as ``GradingServiceError`` carrying a retryable
flag; the service itself never retries.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from pydantic import ValidationError

from practice_app.core.error_classifier import ErrorCategory, ErrorClassifier
from practice_app.grading import prompts
from practice_app.models.models import (
    GeneratedPracticeTest,
    MistakeAnalysis,
    TestAnalysis,
)
from practice_app.providers.base import BaseLLMProvider, ImagePart, LLMProviderError
from practice_app.schemas.grading import (
    MistakeAnalysisPayload,
    PracticeTestPayload,
    TestAnalysisPayload,
)

logger = logging.getLogger(__name__)


class GradingServiceError(Exception):
    """An AI call failed.

    Attributes:
        retryable: Whether repeating the same request may succeed
        category: Error category from the classifier
    """

    def __init__(
        self,
        message: str,
        *,
        retryable: bool,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
    ):
        super().__init__(message)
        self.retryable = retryable
        self.category = category


@dataclass(frozen=True)
class GradingRequest:
    """Everything the grader needs about a finished session."""

    answer_key_image: str  # base64
    user_answers: Dict[str, str]
    timings: Dict[str, float]
    syllabus: str


class GradingService(Protocol):
    """External grading collaborator used by ``PracticeSession``."""

    async def analyze_test_results(self, request: GradingRequest) -> TestAnalysis:
        ...

    async def analyze_specific_mistake(
        self, image: str, description: Optional[str] = None
    ) -> MistakeAnalysis:
        ...

    async def generate_practice_test(
        self, topic: str, num_questions: int, difficulty: str
    ) -> GeneratedPracticeTest:
        ...


class AIGradingService:
    """LLM-backed implementation of ``GradingService``."""

    def __init__(self, provider: BaseLLMProvider, max_output_tokens: int = 4096):
        self.provider = provider
        self.max_output_tokens = max_output_tokens

    async def analyze_test_results(self, request: GradingRequest) -> TestAnalysis:
        """
        Grade a test against an answer-key image.

        Raises:
            GradingServiceError: On provider failure or an invalid reply
        """
        prompt = prompts.build_grading_prompt(
            request.user_answers, request.timings, request.syllabus
        )
        data = await self._complete(
            "analyze test results",
            prompt,
            prompts.TEST_ANALYSIS_FORMAT,
            prompts.GRADING_SYSTEM_PROMPT,
            request.answer_key_image,
        )
        payload = self._validate(TestAnalysisPayload, data, "analyze test results")
        logger.info(
            f"AI graded test: {payload.score}/{payload.total_marks}, "
            f"{len(payload.incorrect_question_numbers)} incorrect"
        )
        return payload.to_domain()

    async def analyze_specific_mistake(
        self, image: str, description: Optional[str] = None
    ) -> MistakeAnalysis:
        """
        Explain one mistake from a photo of the question.

        Raises:
            GradingServiceError: On provider failure or an invalid reply
        """
        prompt = prompts.build_mistake_prompt(description or "No description given")
        data = await self._complete(
            "analyze mistake",
            prompt,
            prompts.MISTAKE_ANALYSIS_FORMAT,
            prompts.MISTAKE_SYSTEM_PROMPT,
            image,
        )
        payload = self._validate(MistakeAnalysisPayload, data, "analyze mistake")
        return payload.to_domain()

    async def generate_practice_test(
        self, topic: str, num_questions: int, difficulty: str
    ) -> GeneratedPracticeTest:
        """
        Generate practice questions and their answer key.

        Raises:
            GradingServiceError: On provider failure or an invalid reply
        """
        prompt = prompts.build_practice_test_prompt(topic, num_questions, difficulty)
        data = await self._complete(
            "generate practice test",
            prompt,
            prompts.PRACTICE_TEST_FORMAT,
            prompts.PRACTICE_TEST_SYSTEM_PROMPT,
            None,
        )
        payload = self._validate(PracticeTestPayload, data, "generate practice test")
        return payload.to_domain(topic)

    async def _complete(
        self,
        operation: str,
        prompt: str,
        response_format: dict,
        system_instruction: str,
        image: Optional[str],
    ) -> dict:
        images = [ImagePart(image)] if image else []
        try:
            return await self.provider.generate_structured_completion_async(
                prompt,
                response_format,
                system_instruction=system_instruction,
                images=images,
                max_tokens=self.max_output_tokens,
            )
        except LLMProviderError as e:
            classified = e.classified_error
            # Misconfiguration (billing, auth) is logged at ERROR, transient failures at WARNING
            level = logging.ERROR if ErrorClassifier.should_alert(classified) else logging.WARNING
            logger.log(level, f"AI call failed ({operation}): {classified}")
            raise GradingServiceError(
                classified.message,
                retryable=classified.is_retryable,
                category=classified.category,
            ) from e

    def _validate(self, model, data: dict, operation: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.warning(f"AI reply failed validation ({operation}): {e.error_count()} errors")
            raise GradingServiceError(
                "The AI service returned an incomplete analysis.",
                retryable=True,
                category=ErrorCategory.INVALID_RESPONSE,
            ) from e
