"""OpenAI-compatible client.

Serves OpenAI itself and every provider exposing an OpenAI-compatible chat
completions API (OpenRouter, Groq, Mistral, Gemini, DeepSeek, Qwen, Cohere,
Azure and local servers such as Ollama or LM Studio).
"""

from typing import Optional

import openai
from openai import AsyncOpenAI

from chunknote.config import PROVIDER_BASE_URLS, GenerationConfig, LLMProvider
from chunknote.llm.base import TextGenerator
from chunknote.llm.exceptions import (
    LLMError,
    NetworkError,
    RequestTimeoutError,
    error_from_status,
)

# Local servers ignore the key but the SDK requires one
PLACEHOLDER_API_KEY = "not-needed"


class OpenAICompatibleGenerator(TextGenerator):
    """Text generation through the OpenAI chat completions API."""

    def __init__(self, config: GenerationConfig, client: Optional[AsyncOpenAI] = None):
        """Initialize the client.

        Args:
            config: Run configuration (provider, model, timeouts).
            client: Preconfigured SDK client; built lazily when omitted.
        """
        super().__init__(config)
        self._client = client

    @property
    def base_url(self) -> Optional[str]:
        if self.config.api_endpoint:
            return self.config.api_endpoint
        return PROVIDER_BASE_URLS.get(self.config.provider)

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            api_key = self.get_api_key() or PLACEHOLDER_API_KEY
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=self.base_url,
                timeout=self.config.request_timeout,
                max_retries=0,
            )
        return self._client

    async def generate(self, prompt: str, model: Optional[str] = None) -> str:
        client = self._get_client()
        model_name = model or self.model

        extra_headers = None
        if self.config.provider == LLMProvider.OPENROUTER:
            extra_headers = {"X-Title": "chunknote"}

        try:
            response = await client.chat.completions.create(
                model=model_name,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                messages=[
                    {"role": "system", "content": self.system_prompt},
                    {"role": "user", "content": prompt},
                ],
                extra_headers=extra_headers,
            )
        except openai.APITimeoutError as e:
            raise RequestTimeoutError(f"{self.config.provider.value} request timed out: {e}") from e
        except openai.APIConnectionError as e:
            raise NetworkError(f"Cannot reach {self.config.provider.value}: {e}") from e
        except openai.APIStatusError as e:
            raise error_from_status(
                e.status_code, f"{self.config.provider.value} API call failed: {e}"
            ) from e
        except openai.OpenAIError as e:
            raise LLMError(f"{self.config.provider.value} API call failed: {e}") from e

        if not response.choices:
            raise LLMError(f"Empty response from {self.config.provider.value}")
        return self.finish(response.choices[0].message.content)
