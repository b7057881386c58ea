"""Tests for the text-generation clients."""

import os
from types import SimpleNamespace
from unittest.mock import patch

import anthropic
import httpx
import openai
import pytest

from chunknote.config import GenerationConfig, LLMProvider
from chunknote.llm import get_generator
from chunknote.llm.anthropic_client import AnthropicGenerator
from chunknote.llm.exceptions import (
    AuthenticationError,
    LLMError,
    MissingAPIKeyError,
    ModelNotFoundError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
    ServerError,
    error_from_status,
)
from chunknote.llm.openai_client import OpenAICompatibleGenerator
from chunknote.llm.prompts import SYSTEM_PROMPT

REQUEST = httpx.Request("POST", "https://api.example.com/v1/chat")


def _response(status_code):
    return httpx.Response(status_code, request=REQUEST)


def _openai_client(mocker, content="feat: add x"):
    client = mocker.MagicMock()
    response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])
    client.chat.completions.create = mocker.AsyncMock(return_value=response)
    return client


def _anthropic_client(mocker, blocks):
    client = mocker.MagicMock()
    client.messages.create = mocker.AsyncMock(return_value=SimpleNamespace(content=blocks))
    return client


class TestGetGenerator:
    """Tests for the get_generator factory."""

    def test_anthropic(self):
        """Test that Anthropic gets its own client."""
        generator = get_generator(GenerationConfig(provider=LLMProvider.ANTHROPIC, model_name="claude-3-5-haiku"))
        assert isinstance(generator, AnthropicGenerator)

    @pytest.mark.parametrize(
        "provider",
        [LLMProvider.OPENAI, LLMProvider.OPENROUTER, LLMProvider.GROQ, LLMProvider.OLLAMA],
    )
    def test_openai_compatible(self, provider):
        """Test that other providers use the OpenAI-compatible client."""
        generator = get_generator(GenerationConfig(provider=provider))
        assert isinstance(generator, OpenAICompatibleGenerator)

    def test_model_from_config(self):
        """Test that the primary model becomes the default model."""
        generator = get_generator(GenerationConfig(model_name="gpt-4.1"))
        assert generator.model == "gpt-4.1"
        assert generator.system_prompt == SYSTEM_PROMPT


class TestGetApiKey:
    """Tests for API key lookup."""

    def test_environment_variable(self, isolated_config_dir):
        """Test that the environment variable is used first."""
        generator = OpenAICompatibleGenerator(GenerationConfig())
        with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-env"}):
            assert generator.get_api_key() == "sk-env"

    def test_credentials_file(self, isolated_config_dir):
        """Test the fallback to ~/.chunknote/credentials."""
        (isolated_config_dir / "credentials").write_text("OPENAI_API_KEY=sk-file\n")
        generator = OpenAICompatibleGenerator(GenerationConfig())
        with patch.dict(os.environ, {}, clear=True):
            assert generator.get_api_key() == "sk-file"

    def test_missing_key(self, isolated_config_dir):
        """Test that a missing key names the variable to set."""
        generator = OpenAICompatibleGenerator(GenerationConfig())
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(MissingAPIKeyError, match="OPENAI_API_KEY"):
                generator.get_api_key()

    def test_local_provider_needs_no_key(self, isolated_config_dir):
        """Test that keyless local providers return None."""
        generator = OpenAICompatibleGenerator(GenerationConfig(provider=LLMProvider.OLLAMA))
        with patch.dict(os.environ, {}, clear=True):
            assert generator.get_api_key() is None

    def test_custom_provider_key_optional(self, isolated_config_dir):
        """Test that a custom endpoint works without a key."""
        generator = OpenAICompatibleGenerator(GenerationConfig(provider=LLMProvider.CUSTOM))
        with patch.dict(os.environ, {}, clear=True):
            assert generator.get_api_key() is None


class TestFinish:
    """Tests for TextGenerator.finish."""

    def test_cleans_output(self):
        """Test that reasoning blocks and fences are removed."""
        generator = OpenAICompatibleGenerator(GenerationConfig())
        assert generator.finish("<think>hmm</think>\n```\nfeat: add x\n```") == "feat: add x"

    @pytest.mark.parametrize("raw", [None, "", "<think>only thoughts</think>"])
    def test_empty_output_rejected(self, raw):
        """Test that an empty answer is an error."""
        generator = OpenAICompatibleGenerator(GenerationConfig())
        with pytest.raises(LLMError):
            generator.finish(raw)


class TestOpenAICompatibleGenerator:
    """Tests for OpenAICompatibleGenerator."""

    async def test_generate(self, mocker):
        """Test the chat completion request and cleaned answer."""
        client = _openai_client(mocker, "<think>x</think>feat: add x")
        generator = OpenAICompatibleGenerator(GenerationConfig(), client=client)

        result = await generator.generate("the prompt")

        assert result == "feat: add x"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["messages"] == [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": "the prompt"},
        ]
        assert kwargs["extra_headers"] is None

    async def test_model_override(self, mocker):
        """Test that a per-call model replaces the configured one."""
        client = _openai_client(mocker)
        generator = OpenAICompatibleGenerator(GenerationConfig(), client=client)

        await generator.generate("p", model="gpt-4o-mini")

        assert client.chat.completions.create.call_args.kwargs["model"] == "gpt-4o-mini"

    async def test_openrouter_header(self, mocker):
        """Test the attribution header sent to OpenRouter."""
        client = _openai_client(mocker)
        config = GenerationConfig(provider=LLMProvider.OPENROUTER, model_name="openai/gpt-4o")
        generator = OpenAICompatibleGenerator(config, client=client)

        await generator.generate("p")

        assert client.chat.completions.create.call_args.kwargs["extra_headers"] == {"X-Title": "chunknote"}

    async def test_no_choices(self, mocker):
        """Test that an answer without choices is an error."""
        client = mocker.MagicMock()
        client.chat.completions.create = mocker.AsyncMock(return_value=SimpleNamespace(choices=[]))
        generator = OpenAICompatibleGenerator(GenerationConfig(), client=client)

        with pytest.raises(LLMError):
            await generator.generate("p")

    @pytest.mark.parametrize(
        "sdk_error,expected,status",
        [
            (openai.RateLimitError("slow down", response=_response(429), body=None), RateLimitError, 429),
            (openai.AuthenticationError("bad key", response=_response(401), body=None), AuthenticationError, 401),
            (openai.NotFoundError("no model", response=_response(404), body=None), ModelNotFoundError, 404),
            (openai.InternalServerError("oops", response=_response(503), body=None), ServerError, 503),
            (openai.APITimeoutError(request=REQUEST), RequestTimeoutError, None),
            (openai.APIConnectionError(request=REQUEST), NetworkError, None),
        ],
    )
    async def test_error_mapping(self, mocker, sdk_error, expected, status):
        """Test that SDK errors are mapped onto the error taxonomy."""
        client = mocker.MagicMock()
        client.chat.completions.create = mocker.AsyncMock(side_effect=sdk_error)
        generator = OpenAICompatibleGenerator(GenerationConfig(), client=client)

        with pytest.raises(expected) as exc_info:
            await generator.generate("p")
        assert exc_info.value.status_code == status

    def test_base_url(self):
        """Test endpoint selection from provider and override."""
        assert OpenAICompatibleGenerator(GenerationConfig()).base_url is None
        groq = GenerationConfig(provider=LLMProvider.GROQ, model_name="llama-3.1-70b")
        assert OpenAICompatibleGenerator(groq).base_url == "https://api.groq.com/openai/v1"
        custom = GenerationConfig(provider=LLMProvider.GROQ, api_endpoint="http://proxy:8000/v1")
        assert OpenAICompatibleGenerator(custom).base_url == "http://proxy:8000/v1"

    def test_client_built_lazily(self, isolated_config_dir):
        """Test that the SDK client uses the key and endpoint."""
        config = GenerationConfig(provider=LLMProvider.OPENROUTER, model_name="openai/gpt-4o")
        generator = OpenAICompatibleGenerator(config)
        with patch.dict(os.environ, {"OPENROUTER_API_KEY": "sk-or"}):
            client = generator._get_client()

        assert client.api_key == "sk-or"
        assert "openrouter.ai/api/v1" in str(client.base_url)
        assert generator._get_client() is client


class TestAnthropicGenerator:
    """Tests for AnthropicGenerator."""

    async def test_generate_joins_text_blocks(self, mocker):
        """Test that text blocks are joined and other blocks skipped."""
        blocks = [
            SimpleNamespace(type="text", text="feat: add "),
            SimpleNamespace(type="thinking"),
            SimpleNamespace(type="text", text="x"),
        ]
        client = _anthropic_client(mocker, blocks)
        config = GenerationConfig(provider=LLMProvider.ANTHROPIC, model_name="claude-3-5-sonnet")
        generator = AnthropicGenerator(config, client=client)

        result = await generator.generate("the prompt", model="claude-3-5-haiku-latest")

        assert result == "feat: add x"
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-3-5-haiku-latest"
        assert kwargs["system"] == SYSTEM_PROMPT
        assert kwargs["messages"] == [{"role": "user", "content": "the prompt"}]

    @pytest.mark.parametrize(
        "sdk_error,expected",
        [
            (anthropic.RateLimitError("slow down", response=_response(429), body=None), RateLimitError),
            (anthropic.AuthenticationError("bad key", response=_response(401), body=None), AuthenticationError),
            (anthropic.InternalServerError("oops", response=_response(500), body=None), ServerError),
            (anthropic.APITimeoutError(request=REQUEST), RequestTimeoutError),
            (anthropic.APIConnectionError(request=REQUEST), NetworkError),
        ],
    )
    async def test_error_mapping(self, mocker, sdk_error, expected):
        """Test that SDK errors are mapped onto the error taxonomy."""
        client = mocker.MagicMock()
        client.messages.create = mocker.AsyncMock(side_effect=sdk_error)
        config = GenerationConfig(provider=LLMProvider.ANTHROPIC, model_name="claude-3-5-sonnet")

        with pytest.raises(expected):
            await AnthropicGenerator(config, client=client).generate("p")


class TestErrorFromStatus:
    """Tests for error_from_status."""

    @pytest.mark.parametrize(
        "status,expected",
        [
            (401, AuthenticationError),
            (403, AuthenticationError),
            (404, ModelNotFoundError),
            (408, RequestTimeoutError),
            (429, RateLimitError),
            (500, ServerError),
            (503, ServerError),
        ],
    )
    def test_mapping(self, status, expected):
        """Test the status code to error class mapping."""
        error = error_from_status(status, "failed")
        assert type(error) is expected
        assert error.status_code == status
        assert str(error) == "failed"

    def test_unknown_status(self):
        """Test that unmapped codes give a plain LLMError."""
        error = error_from_status(400, "bad request")
        assert type(error) is LLMError
        assert error.retryable is None
