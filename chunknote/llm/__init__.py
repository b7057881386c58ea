"""Text-generation clients for chunknote.

This module provides a unified `generate(prompt)` interface over the
supported providers. Anthropic uses its own SDK; every other provider is
reached through an OpenAI-compatible endpoint.
"""

from dotenv import load_dotenv

from chunknote.config import GenerationConfig, LLMProvider
from chunknote.llm.base import TextGenerator
from chunknote.llm.exceptions import (
    AuthenticationError,
    JSONParseError,
    LLMError,
    MissingAPIKeyError,
    ModelNotFoundError,
    NetworkError,
    RateLimitError,
    RequestTimeoutError,
    ServerError,
    error_from_status,
)

# Load environment variables from .env file
load_dotenv()


def get_generator(config: GenerationConfig) -> TextGenerator:
    """Get a text-generation client for the configured provider.

    Args:
        config: Run configuration.

    Returns:
        An instance of the appropriate client.
    """
    if config.provider == LLMProvider.ANTHROPIC:
        from chunknote.llm.anthropic_client import AnthropicGenerator

        return AnthropicGenerator(config)

    from chunknote.llm.openai_client import OpenAICompatibleGenerator

    return OpenAICompatibleGenerator(config)


# Export commonly used items
__all__ = [
    "TextGenerator",
    "LLMError",
    "MissingAPIKeyError",
    "JSONParseError",
    "RateLimitError",
    "ServerError",
    "RequestTimeoutError",
    "NetworkError",
    "AuthenticationError",
    "ModelNotFoundError",
    "error_from_status",
    "get_generator",
]
