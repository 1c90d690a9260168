"""OpenAI LLM provider integration."""

from typing import Any, Dict, List, Optional, Sequence

import openai
from openai import AsyncOpenAI

from .base import BaseLLMProvider, ImagePart


class OpenAIProvider(BaseLLMProvider):
    """OpenAI API integration for grading and mistake analysis."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        organization: Optional[str] = None,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model: Model to use (default: gpt-4o, which accepts images)
            organization: Optional organization ID
        """
        super().__init__(api_key, model)
        self.client = AsyncOpenAI(api_key=api_key, organization=organization)

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
        Generate a structured JSON completion using the chat completions API.

        Images are sent as data URLs in the user message.
        """
        content: List[Dict[str, Any]] = [
            {"type": "text", "text": self._json_prompt(prompt, response_format)}
        ]
        for image in images:
            content.append(
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{image.mime_type};base64,{image.data_base64}"},
                }
            )

        messages: List[Dict[str, Any]] = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": content})

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as e:
            raise self._handle_api_error(e)

        return self._parse_json(response.choices[0].message.content)
