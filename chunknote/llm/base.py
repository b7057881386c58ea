"""Base class and shared utilities for text-generation clients."""

import os
from abc import ABC, abstractmethod
from typing import Optional

from chunknote.config import GenerationConfig, get_api_key_env_var
from chunknote.llm.exceptions import LLMError, MissingAPIKeyError
from chunknote.llm.prompts import SYSTEM_PROMPT
from chunknote.styles import clean_generated_text


class TextGenerator(ABC):
    """Abstract base class for text-generation clients.

    A client turns one prompt into one string. It raises the LLMError
    taxonomy (RateLimitError, ServerError, AuthenticationError, ...) so the
    pipeline can decide what to retry.
    """

    def __init__(self, config: GenerationConfig):
        self.config = config
        self.model = config.model_name
        self.system_prompt = SYSTEM_PROMPT

    @abstractmethod
    async def generate(self, prompt: str, model: Optional[str] = None) -> str:
        """Generate text for a prompt.

        Args:
            prompt: The user prompt.
            model: Model override for this call. Defaults to the configured model.

        Returns:
            The generated text, with reasoning blocks removed.

        Raises:
            MissingAPIKeyError: If the API key is not set.
            LLMError: For other failures, typed by cause.
        """
        pass

    def get_api_key(self) -> Optional[str]:
        """Get the API key for the configured provider.

        Checks in order:
        1. Environment variable (including a loaded .env file)
        2. ~/.chunknote/credentials file

        Returns:
            The API key, or None for providers that need no key.

        Raises:
            MissingAPIKeyError: If a required key is not found.
        """
        env_var_name = get_api_key_env_var(self.config.provider)
        if env_var_name is None:
            return None

        api_key = os.getenv(env_var_name)
        if api_key:
            return api_key

        from chunknote.global_config import GlobalConfigError, get_credential

        try:
            api_key = get_credential(env_var_name)
        except GlobalConfigError as e:
            raise MissingAPIKeyError(str(e)) from e
        if api_key:
            return api_key

        if self.config.is_local_provider:
            return None

        provider_name = self.config.provider.value
        raise MissingAPIKeyError(
            f"{provider_name} API key not found. Set it using:\n"
            f"  1. Environment variable: export {env_var_name}=your_key_here\n"
            f"  2. A .env file in the working directory\n"
            f"  3. Manually add {env_var_name}=... to ~/.chunknote/credentials"
        )

    def finish(self, raw_response: Optional[str]) -> str:
        """Clean a raw response and reject empty output.

        Raises:
            LLMError: If the model returned no usable text.
        """
        text = clean_generated_text(raw_response or "")
        if not text:
            raise LLMError(f"Empty response from {self.config.provider.value}")
        return text
