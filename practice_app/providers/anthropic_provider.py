"""Anthropic LLM provider integration."""

import logging
from typing import Any, Dict, List, Optional, Sequence

import anthropic
from anthropic import AsyncAnthropic

from .base import BaseLLMProvider, ImagePart

logger = logging.getLogger(__name__)


class AnthropicProvider(BaseLLMProvider):
    """Anthropic API integration for grading and mistake analysis."""

    def __init__(self, api_key: str, model: str = "claude-sonnet-4-5-20250929"):
        """
        Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key
            model: Model to use (default: claude-sonnet-4-5-20250929)
        """
        super().__init__(api_key, model)
        self.async_client = AsyncAnthropic(api_key=api_key)

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
        Generate a structured JSON completion using the Messages API.

        Anthropic has no JSON mode, so the schema goes into the prompt and any
        markdown fences are stripped from the reply.
        """
        content: List[Dict[str, Any]] = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": image.mime_type,
                    "data": image.data_base64,
                },
            }
            for image in images
        ]
        content.append({"type": "text", "text": self._json_prompt(prompt, response_format)})

        kwargs: Dict[str, Any] = {}
        if system_instruction:
            kwargs["system"] = system_instruction

        try:
            response = await self.async_client.messages.create(
                model=self.model,
                messages=[{"role": "user", "content": content}],
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs,
            )
        except anthropic.AnthropicError as e:
            raise self._handle_api_error(e)

        if not response.content:
            logger.warning("Anthropic API returned empty response")
            return self._parse_json(None)
        return self._parse_json(response.content[0].text)
