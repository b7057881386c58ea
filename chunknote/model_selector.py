"""Choosing the model used for per-chunk (Map stage) calls.

Chunk summaries are short and numerous, so a cheaper sibling of the primary
model is used when one is known. An explicit `chunk_model` always wins, local
providers are never downgraded, and an invalid choice falls back to the
primary model instead of failing the run.
"""

import re
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Pattern

from loguru import logger

from chunknote.config import LOCAL_PROVIDERS, GenerationConfig

# (matches primary model, lightweight replacement)
DowngradeRule = tuple[Callable[[str], bool], str]

DEFAULT_DOWNGRADE_RULES: Mapping[str, tuple[DowngradeRule, ...]] = MappingProxyType({
    "openai": (
        (lambda m: m.startswith("gpt-4") and "mini" not in m, "gpt-4o-mini"),
    ),
    "gemini": (
        (lambda m: m in ("gemini-pro", "gemini-1.5-pro"), "gemini-1.5-flash"),
    ),
    "google": (
        (lambda m: m in ("gemini-pro", "gemini-1.5-pro"), "gemini-1.5-flash"),
    ),
    "anthropic": (
        (lambda m: "opus" in m or "sonnet" in m, "claude-3-5-haiku-latest"),
    ),
})

# Model names a provider can serve; providers not listed accept any valid name
DEFAULT_PROVIDER_PATTERNS: Mapping[str, Pattern[str]] = MappingProxyType({
    "openai": re.compile(r"^(gpt-|text-|davinci|curie|babbage|ada|o\d)"),
    "gemini": re.compile(r"^gemini-"),
    "google": re.compile(r"^gemini-"),
    "anthropic": re.compile(r"^claude-"),
})

MODEL_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+$")
MIN_MODEL_NAME_LENGTH = 3
MAX_MODEL_NAME_LENGTH = 100


def _provider_key(provider) -> str:
    return str(getattr(provider, "value", provider) or "").lower()


class ModelSelector:
    """Selects and validates the Map-stage model.

    Args:
        downgrade_rules: Premium-to-lightweight rules keyed by provider.
        local_providers: Providers that are never downgraded.
        provider_patterns: Naming patterns a provider's models must match.
    """

    def __init__(
        self,
        downgrade_rules: Mapping[str, tuple[DowngradeRule, ...]] = DEFAULT_DOWNGRADE_RULES,
        local_providers: frozenset[str] = LOCAL_PROVIDERS,
        provider_patterns: Mapping[str, Pattern[str]] = DEFAULT_PROVIDER_PATTERNS,
    ):
        self.downgrade_rules = downgrade_rules
        self.local_providers = local_providers
        self.provider_patterns = provider_patterns

    def select_map_model(self, config: GenerationConfig) -> str:
        """Pick the model for chunk summarization.

        Args:
            config: Run configuration.

        Returns:
            chunk_model exactly as configured when it is not blank, else
            the downgraded primary model, else the primary model unchanged.
        """
        if config.chunk_model and config.chunk_model.strip():
            return config.chunk_model

        provider = _provider_key(config.provider)
        model = config.model_name

        if provider in self.local_providers:
            return model

        for matches, replacement in self.downgrade_rules.get(provider, ()):
            if matches(model.lower()):
                logger.debug(f"Using {replacement} for chunk summaries instead of {model}")
                return replacement

        return model

    def validate_model(self, model_id: Optional[str], provider=None) -> bool:
        """Check that a model id is well formed and fits the provider.

        Args:
            model_id: Model to check.
            provider: Provider (enum or name); skips the family check when None.

        Returns:
            True if the model can be used.
        """
        if not model_id:
            return False
        # Surrounding spaces are tolerated; any other whitespace is malformed
        model_id = model_id.strip(" ")
        if not MIN_MODEL_NAME_LENGTH <= len(model_id) <= MAX_MODEL_NAME_LENGTH:
            return False
        if not MODEL_NAME_PATTERN.fullmatch(model_id):
            return False

        if provider is None:
            return True
        pattern = self.provider_patterns.get(_provider_key(provider))
        if pattern is None:
            return True
        return bool(pattern.match(model_id.lower()))

    def select_and_validate_map_model(self, config: GenerationConfig) -> str:
        """Select the Map model, falling back to the primary model if invalid.

        Never raises: a bad selection is logged and replaced.
        """
        selected = self.select_map_model(config)
        if self.validate_model(selected, config.provider):
            return selected

        logger.warning(
            f"Chunk model '{selected}' is not valid for provider "
            f"{_provider_key(config.provider)}, falling back to {config.model_name}"
        )
        if not self.validate_model(config.model_name, config.provider):
            logger.error(f"Primary model '{config.model_name}' also failed validation; using it anyway")
        return config.model_name
