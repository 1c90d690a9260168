"""Shared interface for the LLMs that grade practice sessions."""

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from practice_app.core.error_classifier import ClassifiedError, ErrorClassifier

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"

# Models often wrap JSON in a ```json fence despite being told not to
_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class LLMProviderError(Exception):
    """A failed provider call, already classified.

    ``classified_error.is_retryable`` tells the grading layer whether the
    student should be offered a retry.
    """

    def __init__(self, classified_error: ClassifiedError, cause: Optional[Exception] = None):
        self.classified_error = classified_error
        self.cause = cause
        super().__init__(str(classified_error))

    @property
    def is_retryable(self) -> bool:
        return self.classified_error.is_retryable


@dataclass(frozen=True)
class ImagePart:
    """A base64-encoded image sent alongside the prompt."""

    data_base64: str
    mime_type: str = DEFAULT_IMAGE_MIME_TYPE


class BaseLLMProvider(ABC):
    """One SDK wrapped behind a JSON-in, JSON-out call."""

    def __init__(self, api_key: str, model: str):
        self.api_key = api_key
        self.model = model

    @abstractmethod
    async def generate_structured_completion_async(
        self,
        prompt: str,
        response_format: Dict[str, Any],
        *,
        system_instruction: Optional[str] = None,
        images: Sequence[ImagePart] = (),
        temperature: float = 0.2,
        max_tokens: int = 4096,
    ) -> Dict[str, Any]:
        """
        Ask the model for a JSON object shaped like ``response_format``.

        Args:
            prompt: Grading or analysis instructions
            response_format: Example of the expected JSON object
            system_instruction: Optional system prompt
            images: Answer-key or question photos to attach
            temperature: Sampling temperature
            max_tokens: Output token cap

        Returns:
            The decoded JSON object

        Raises:
            LLMProviderError: The SDK call failed or the reply was not a JSON object
        """

    def get_provider_name(self) -> str:
        """Short name used in logs and error classification, e.g. ``"google"``."""
        return self.__class__.__name__.replace("Provider", "").lower()

    def _json_prompt(self, prompt: str, response_format: Dict[str, Any]) -> str:
        return (
            f"{prompt}\n\n"
            f"Reply with a single JSON object shaped like: {json.dumps(response_format)}\n"
            f"Do not add any text outside the JSON."
        )

    def _parse_json(self, content: Optional[str]) -> Dict[str, Any]:
        text = _CODE_FENCE.sub("", (content or "").strip())
        provider = self.get_provider_name()

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.debug(f"{provider} reply was not JSON: {text[:500]}")
            raise LLMProviderError(ErrorClassifier.invalid_response(provider, str(e)), e) from e

        if not isinstance(data, dict):
            raise LLMProviderError(
                ErrorClassifier.invalid_response(provider, "expected a JSON object")
            )
        return data

    def _handle_api_error(self, error: Exception) -> LLMProviderError:
        """Wrap an SDK exception with its classification."""
        return LLMProviderError(
            ErrorClassifier.classify_error(error, self.get_provider_name()),
            cause=error,
        )
