"""Anthropic Claude client."""

from typing import Optional

import anthropic
from anthropic import AsyncAnthropic

from chunknote.config import GenerationConfig
from chunknote.llm.base import TextGenerator
from chunknote.llm.exceptions import (
    LLMError,
    NetworkError,
    RequestTimeoutError,
    error_from_status,
)


class AnthropicGenerator(TextGenerator):
    """Text generation through the Anthropic messages API."""

    def __init__(self, config: GenerationConfig, client: Optional[AsyncAnthropic] = None):
        """Initialize the client.

        Args:
            config: Run configuration (model, timeouts).
            client: Preconfigured SDK client; built lazily when omitted.
        """
        super().__init__(config)
        self._client = client

    def _get_client(self) -> AsyncAnthropic:
        if self._client is None:
            self._client = AsyncAnthropic(
                api_key=self.get_api_key(),
                base_url=self.config.api_endpoint,
                timeout=self.config.request_timeout,
                max_retries=0,
            )
        return self._client

    async def generate(self, prompt: str, model: Optional[str] = None) -> str:
        client = self._get_client()

        try:
            message = await client.messages.create(
                model=model or self.model,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
                system=self.system_prompt,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APITimeoutError as e:
            raise RequestTimeoutError(f"Anthropic request timed out: {e}") from e
        except anthropic.APIConnectionError as e:
            raise NetworkError(f"Cannot reach Anthropic: {e}") from e
        except anthropic.APIStatusError as e:
            raise error_from_status(e.status_code, f"Anthropic API call failed: {e}") from e
        except anthropic.AnthropicError as e:
            raise LLMError(f"Anthropic API call failed: {e}") from e

        # Concatenate text blocks; tool or thinking blocks carry no `text`
        raw_response = "".join(
            getattr(block, "text", "") for block in message.content
        )
        return self.finish(raw_response)
