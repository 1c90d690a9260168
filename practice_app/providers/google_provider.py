"""Google Generative AI provider integration."""

import base64
from typing import Any, Dict, List, Optional, Sequence

import google.generativeai as genai
from google.generativeai.types import GenerationConfig

from .base import BaseLLMProvider, ImagePart


class GoogleProvider(BaseLLMProvider):
    """Gemini integration for grading and mistake analysis."""

    def __init__(self, api_key: str, model: str = "gemini-2.5-pro"):
        """
        Initialize Google provider.

        Args:
            api_key: Google API key
            model: Model to use (default: gemini-2.5-pro)
        """
        super().__init__(api_key, model)
        genai.configure(api_key=api_key)

    def _client(self, system_instruction: Optional[str]) -> Any:
        # The system instruction is bound to the model object
        return genai.GenerativeModel(self.model, system_instruction=system_instruction)

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
        Generate a structured JSON completion using the Gemini API.

        Images are sent as inline data parts after the text prompt. JSON output
        is requested through the response MIME type.
        """
        parts: List[Any] = [self._json_prompt(prompt, response_format)]

        try:
            for image in images:
                parts.append(
                    {"mime_type": image.mime_type, "data": base64.b64decode(image.data_base64)}
                )
            response = await self._client(system_instruction).generate_content_async(
                parts,
                generation_config=GenerationConfig(
                    temperature=temperature,
                    max_output_tokens=max_tokens,
                    response_mime_type="application/json",
                ),
            )
            text = response.text
        except Exception as e:
            raise self._handle_api_error(e)

        return self._parse_json(text)
