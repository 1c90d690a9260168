"""Tests for LLM provider integrations."""

import base64
import json
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import anthropic
import openai
import pytest

from practice_app.core.error_classifier import ErrorCategory
from practice_app.providers import (
    AnthropicProvider,
    GoogleProvider,
    OpenAIProvider,
    create_provider,
)
from practice_app.providers.base import ImagePart, LLMProviderError

IMAGE = ImagePart(base64.b64encode(b"jpeg-bytes").decode())
FORMAT = {"topic": "string", "explanation": "string"}
REPLY = {"topic": "Kinematics", "explanation": "Use v = u + at."}


@pytest.fixture
def mock_api_key() -> str:
    return "test-mock-api-key-12345"


class TestGoogleProvider:
    """Test suite for GoogleProvider."""

    @patch("practice_app.providers.google_provider.genai.configure")
    def test_initialization(self, mock_configure, mock_api_key):
        provider = GoogleProvider(api_key=mock_api_key)

        assert provider.model == "gemini-2.5-pro"
        assert provider.get_provider_name() == "google"
        mock_configure.assert_called_once_with(api_key=mock_api_key)

    @pytest.mark.asyncio
    @patch("practice_app.providers.google_provider.genai.configure")
    @patch("practice_app.providers.google_provider.genai.GenerativeModel")
    async def test_structured_completion(
        self, mock_generative_model_class, mock_configure, mock_api_key
    ):
        mock_model = MagicMock()
        mock_model.generate_content_async = AsyncMock(
            return_value=Mock(text=json.dumps(REPLY))
        )
        mock_generative_model_class.return_value = mock_model

        provider = GoogleProvider(api_key=mock_api_key)
        result = await provider.generate_structured_completion_async(
            "Explain", FORMAT, system_instruction="You are a tutor", images=[IMAGE]
        )

        assert result == REPLY
        mock_generative_model_class.assert_called_once_with(
            "gemini-2.5-pro", system_instruction="You are a tutor"
        )
        parts = mock_model.generate_content_async.call_args.args[0]
        assert "Explain" in parts[0]
        assert parts[1] == {"mime_type": "image/jpeg", "data": b"jpeg-bytes"}
        config = mock_model.generate_content_async.call_args.kwargs["generation_config"]
        assert config.response_mime_type == "application/json"

    @pytest.mark.asyncio
    @patch("practice_app.providers.google_provider.genai.configure")
    @patch("practice_app.providers.google_provider.genai.GenerativeModel")
    async def test_api_error_is_classified(
        self, mock_generative_model_class, mock_configure, mock_api_key
    ):
        mock_model = MagicMock()
        mock_model.generate_content_async = AsyncMock(
            side_effect=Exception("429 Resource has been exhausted")
        )
        mock_generative_model_class.return_value = mock_model

        provider = GoogleProvider(api_key=mock_api_key)
        with pytest.raises(LLMProviderError) as exc_info:
            await provider.generate_structured_completion_async("Explain", FORMAT)

        assert exc_info.value.classified_error.category == ErrorCategory.RATE_LIMIT
        assert exc_info.value.is_retryable is True

    @pytest.mark.asyncio
    @patch("practice_app.providers.google_provider.genai.configure")
    @patch("practice_app.providers.google_provider.genai.GenerativeModel")
    async def test_non_json_reply_is_invalid_response(
        self, mock_generative_model_class, mock_configure, mock_api_key
    ):
        mock_model = MagicMock()
        mock_model.generate_content_async = AsyncMock(return_value=Mock(text="Sorry, no."))
        mock_generative_model_class.return_value = mock_model

        provider = GoogleProvider(api_key=mock_api_key)
        with pytest.raises(LLMProviderError) as exc_info:
            await provider.generate_structured_completion_async("Explain", FORMAT)

        assert exc_info.value.classified_error.category == ErrorCategory.INVALID_RESPONSE
        assert exc_info.value.is_retryable is True

    @pytest.mark.asyncio
    @patch("practice_app.providers.google_provider.genai.configure")
    @patch("practice_app.providers.google_provider.genai.GenerativeModel")
    async def test_malformed_image_is_classified(
        self, mock_generative_model_class, mock_configure, mock_api_key
    ):
        mock_model = MagicMock()
        mock_model.generate_content_async = AsyncMock(return_value=Mock(text=json.dumps(REPLY)))
        mock_generative_model_class.return_value = mock_model

        provider = GoogleProvider(api_key=mock_api_key)
        with pytest.raises(LLMProviderError) as exc_info:
            await provider.generate_structured_completion_async(
                "Explain", FORMAT, images=[ImagePart("abc")]
            )

        assert exc_info.value.classified_error.provider == "google"
        mock_model.generate_content_async.assert_not_awaited()


class TestOpenAIProvider:
    """Test suite for OpenAIProvider."""

    @pytest.mark.asyncio
    @patch("practice_app.providers.openai_provider.AsyncOpenAI")
    async def test_structured_completion(self, mock_openai_class, mock_api_key):
        mock_client = MagicMock()
        mock_message = Mock(content=json.dumps(REPLY))
        mock_client.chat.completions.create = AsyncMock(
            return_value=Mock(choices=[Mock(message=mock_message)])
        )
        mock_openai_class.return_value = mock_client

        provider = OpenAIProvider(api_key=mock_api_key)
        result = await provider.generate_structured_completion_async(
            "Explain", FORMAT, system_instruction="You are a tutor", images=[IMAGE]
        )

        assert result == REPLY
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": "You are a tutor"}
        user_content = kwargs["messages"][1]["content"]
        assert user_content[1]["image_url"]["url"].startswith("data:image/jpeg;base64,")

    @pytest.mark.asyncio
    @patch("practice_app.providers.openai_provider.AsyncOpenAI")
    async def test_api_error_is_classified(self, mock_openai_class, mock_api_key):
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.OpenAIError("Invalid API key provided")
        )
        mock_openai_class.return_value = mock_client

        provider = OpenAIProvider(api_key=mock_api_key)
        with pytest.raises(LLMProviderError) as exc_info:
            await provider.generate_structured_completion_async("Explain", FORMAT)

        assert exc_info.value.classified_error.category == ErrorCategory.AUTHENTICATION
        assert exc_info.value.is_retryable is False


class TestAnthropicProvider:
    """Test suite for AnthropicProvider."""

    @pytest.mark.asyncio
    @patch("practice_app.providers.anthropic_provider.AsyncAnthropic")
    async def test_structured_completion_strips_fences(self, mock_anthropic_class, mock_api_key):
        mock_client = MagicMock()
        mock_block = Mock(text=f"```json\n{json.dumps(REPLY)}\n```")
        mock_client.messages.create = AsyncMock(return_value=Mock(content=[mock_block]))
        mock_anthropic_class.return_value = mock_client

        provider = AnthropicProvider(api_key=mock_api_key)
        result = await provider.generate_structured_completion_async(
            "Explain", FORMAT, system_instruction="You are a tutor", images=[IMAGE]
        )

        assert result == REPLY
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["system"] == "You are a tutor"
        content = kwargs["messages"][0]["content"]
        assert content[0]["type"] == "image"
        assert content[0]["source"]["media_type"] == "image/jpeg"
        assert content[-1]["type"] == "text"

    @pytest.mark.asyncio
    @patch("practice_app.providers.anthropic_provider.AsyncAnthropic")
    async def test_empty_response_is_invalid(self, mock_anthropic_class, mock_api_key):
        mock_client = MagicMock()
        mock_client.messages.create = AsyncMock(return_value=Mock(content=[]))
        mock_anthropic_class.return_value = mock_client

        provider = AnthropicProvider(api_key=mock_api_key)
        with pytest.raises(LLMProviderError) as exc_info:
            await provider.generate_structured_completion_async("Explain", FORMAT)

        assert exc_info.value.classified_error.category == ErrorCategory.INVALID_RESPONSE

    @pytest.mark.asyncio
    @patch("practice_app.providers.anthropic_provider.AsyncAnthropic")
    async def test_api_error_is_classified(self, mock_anthropic_class, mock_api_key):
        mock_client = MagicMock()
        mock_client.messages.create = AsyncMock(
            side_effect=anthropic.AnthropicError("Overloaded")
        )
        mock_anthropic_class.return_value = mock_client

        provider = AnthropicProvider(api_key=mock_api_key)
        with pytest.raises(LLMProviderError) as exc_info:
            await provider.generate_structured_completion_async("Explain", FORMAT)

        assert exc_info.value.classified_error.category == ErrorCategory.SERVER_ERROR
        assert exc_info.value.is_retryable is True


class TestCreateProvider:
    """Tests for the provider factory."""

    @patch("practice_app.providers.anthropic_provider.AsyncAnthropic")
    def test_creates_named_provider_with_model(self, mock_anthropic_class, mock_api_key):
        provider = create_provider("Anthropic", mock_api_key, "claude-test")

        assert isinstance(provider, AnthropicProvider)
        assert provider.model == "claude-test"

    @patch("practice_app.providers.openai_provider.AsyncOpenAI")
    def test_default_model(self, mock_openai_class, mock_api_key):
        provider = create_provider("openai", mock_api_key)

        assert provider.model == "gpt-4o"

    def test_unknown_provider(self, mock_api_key):
        with pytest.raises(ValueError, match="Unknown AI provider"):
            create_provider("xai", mock_api_key)

    def test_missing_key(self):
        with pytest.raises(ValueError, match="No API key"):
            create_provider("google", "")
