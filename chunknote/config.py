"""Configuration for chunknote.

Settings are read from ~/.chunknote/config.yaml (never written) and can be
overridden per run, e.g. from CLI flags.
"""

from enum import Enum
from types import MappingProxyType
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from chunknote.exceptions import ConfigError


class LLMProvider(Enum):
    """Supported text-generation providers."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GOOGLE = "google"
    GEMINI = "gemini"
    MISTRAL = "mistral"
    COHERE = "cohere"
    GROQ = "groq"
    OPENROUTER = "openrouter"
    DEEPSEEK = "deepseek"
    QWEN = "qwen"
    AZURE = "azure"
    OLLAMA = "ollama"
    LMSTUDIO = "lmstudio"
    LOCALAI = "localai"
    CUSTOM = "custom"


class CommitFormat(Enum):
    """Commit message formats."""

    CONVENTIONAL = "conventional"
    SIMPLE = "simple"


class Language(Enum):
    """Output languages with dedicated keyword tables."""

    ENGLISH = "en-US"
    CHINESE = "zh-CN"


# ============================================================
# DEFAULT FALLBACK VALUES
# ============================================================

DEFAULT_PROVIDER = LLMProvider.OPENAI
DEFAULT_MODEL = "gpt-4o"
DEFAULT_MAX_TOKENS = 1500
DEFAULT_TEMPERATURE = 0.3
DEFAULT_LANGUAGE = Language.ENGLISH.value
DEFAULT_REQUEST_TIMEOUT = 60.0

# Large diff handling
DEFAULT_SAFETY_MARGIN_PERCENT = 85
DEFAULT_MAX_CONCURRENT_REQUESTS = 5
DEFAULT_TOKEN_LIMIT = 4096
DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_RETRY_DELAY = 1.0
CHARS_PER_TOKEN = 4
CJK_CHARS_PER_TOKEN = 1.5

# Smart filter
DEFAULT_MIN_FILES_THRESHOLD = 3
DEFAULT_MAX_FILE_LIST_SIZE = 500
DEFAULT_FILTER_TIMEOUT = 10.0


# ============================================================
# MODEL CONTEXT WINDOWS
# ============================================================

MODEL_TOKEN_LIMITS = MappingProxyType({
    # OpenAI
    "gpt-3.5-turbo": 4096,
    "gpt-3.5-turbo-16k": 16385,
    "gpt-4": 8192,
    "gpt-4-32k": 32768,
    "gpt-4-turbo": 128000,
    "gpt-4-turbo-preview": 128000,
    "gpt-4o": 128000,
    "gpt-4o-mini": 128000,
    "gpt-4.1": 1000000,
    "gpt-4.1-mini": 1000000,
    "gpt-4.1-nano": 1000000,
    # Anthropic
    "claude-3-opus": 200000,
    "claude-3-sonnet": 200000,
    "claude-3-haiku": 200000,
    "claude-3.5-sonnet": 200000,
    "claude-3.5-haiku": 200000,
    "claude-3-5-sonnet": 200000,
    "claude-3-5-haiku": 200000,
    "claude-sonnet-4": 200000,
    # Google
    "gemini-pro": 32000,
    "gemini-1.0-pro": 32000,
    "gemini-1.5-pro": 1000000,
    "gemini-1.5-flash": 1000000,
    "gemini-2.0-flash": 1000000,
    "gemini-2.5-pro": 1000000,
    "gemini-2.5-flash": 1000000,
    # Qwen
    "qwen-turbo": 8000,
    "qwen-plus": 32000,
    "qwen-max": 32000,
    "qwen-max-longcontext": 30000,
    "qwen2-72b-instruct": 32000,
    "qwen2.5-72b-instruct": 32000,
    # DeepSeek
    "deepseek-chat": 64000,
    "deepseek-coder": 64000,
    # Others
    "llama-3-70b": 8192,
    "llama-3.1-70b": 128000,
    "llama-3.1-405b": 128000,
    "mistral-large": 32000,
    "mixtral-8x7b": 32000,
})


# ============================================================
# PROVIDER ENDPOINTS AND API KEYS
# ============================================================

# OpenAI-compatible base URLs; None means the SDK default
PROVIDER_BASE_URLS = MappingProxyType({
    LLMProvider.OPENAI: None,
    LLMProvider.AZURE: None,
    LLMProvider.OPENROUTER: "https://openrouter.ai/api/v1",
    LLMProvider.GROQ: "https://api.groq.com/openai/v1",
    LLMProvider.MISTRAL: "https://api.mistral.ai/v1",
    LLMProvider.GOOGLE: "https://generativelanguage.googleapis.com/v1beta/openai/",
    LLMProvider.GEMINI: "https://generativelanguage.googleapis.com/v1beta/openai/",
    LLMProvider.COHERE: "https://api.cohere.ai/compatibility/v1",
    LLMProvider.DEEPSEEK: "https://api.deepseek.com",
    LLMProvider.QWEN: "https://dashscope.aliyuncs.com/compatible-mode/v1",
    LLMProvider.OLLAMA: "http://localhost:11434/v1",
    LLMProvider.LMSTUDIO: "http://localhost:1234/v1",
    LLMProvider.LOCALAI: "http://localhost:8080/v1",
    LLMProvider.CUSTOM: None,
})

# Providers with no public endpoint; api_endpoint must be configured
ENDPOINT_REQUIRED_PROVIDERS = frozenset({LLMProvider.AZURE, LLMProvider.CUSTOM})

API_KEY_ENV_VARS = MappingProxyType({
    LLMProvider.ANTHROPIC: "ANTHROPIC_API_KEY",
    LLMProvider.OPENAI: "OPENAI_API_KEY",
    LLMProvider.AZURE: "AZURE_OPENAI_API_KEY",
    LLMProvider.GOOGLE: "GOOGLE_API_KEY",
    LLMProvider.GEMINI: "GOOGLE_API_KEY",
    LLMProvider.MISTRAL: "MISTRAL_API_KEY",
    LLMProvider.COHERE: "COHERE_API_KEY",
    LLMProvider.GROQ: "GROQ_API_KEY",
    LLMProvider.OPENROUTER: "OPENROUTER_API_KEY",
    LLMProvider.DEEPSEEK: "DEEPSEEK_API_KEY",
    LLMProvider.QWEN: "DASHSCOPE_API_KEY",
    LLMProvider.CUSTOM: "CHUNKNOTE_API_KEY",
})

LOCAL_PROVIDERS = frozenset({"ollama", "lmstudio", "localai", "custom"})


def get_api_key_env_var(provider: LLMProvider) -> Optional[str]:
    """Get the environment variable name for the API key.

    Args:
        provider: The LLM provider.

    Returns:
        The environment variable name, or None for keyless local providers.
    """
    return API_KEY_ENV_VARS.get(provider)


class GenerationConfig(BaseModel):
    """Settings for one commit message generation run.

    Attributes:
        provider: Text-generation provider.
        model_name: Primary model, used for the merge stage and direct calls.
        chunk_model: Explicit model for per-chunk calls; wins over downgrading.
        language: Output language code (e.g. en-US, zh-CN).
        commit_format: Required commit message format.
        concurrency_limit: Maximum simultaneous model calls.
        max_retries: Total attempts per model call.
        initial_retry_delay: Base backoff delay in seconds.
        request_timeout: Per-call timeout in seconds.
        safety_margin_percent: Share of the context window treated as usable.
        custom_token_limit: Overrides model context-window detection when set.
    """

    provider: LLMProvider = DEFAULT_PROVIDER
    model_name: str = DEFAULT_MODEL
    chunk_model: Optional[str] = None
    language: str = DEFAULT_LANGUAGE
    commit_format: CommitFormat = CommitFormat.CONVENTIONAL
    max_tokens: int = Field(DEFAULT_MAX_TOKENS, gt=0)
    temperature: float = Field(DEFAULT_TEMPERATURE, ge=0.0, le=2.0)
    concurrency_limit: int = Field(DEFAULT_MAX_CONCURRENT_REQUESTS, ge=1)
    max_retries: int = Field(DEFAULT_MAX_RETRIES, ge=1)
    initial_retry_delay: float = Field(DEFAULT_INITIAL_RETRY_DELAY, ge=0.0)
    request_timeout: float = Field(DEFAULT_REQUEST_TIMEOUT, gt=0.0)
    enable_map_reduce: bool = True
    enable_smart_filter: bool = True
    safety_margin_percent: int = Field(DEFAULT_SAFETY_MARGIN_PERCENT, gt=0, le=100)
    custom_token_limit: Optional[int] = None
    min_files_threshold: int = Field(DEFAULT_MIN_FILES_THRESHOLD, ge=0)
    max_file_list_size: int = Field(DEFAULT_MAX_FILE_LIST_SIZE, ge=1)
    filter_timeout: float = Field(DEFAULT_FILTER_TIMEOUT, gt=0.0)
    api_endpoint: Optional[str] = None

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    @field_validator("model_name")
    @classmethod
    def model_name_must_not_be_empty(cls, v: str) -> str:
        """Ensure the primary model is set."""
        if not v or not v.strip():
            raise ValueError("model_name cannot be empty")
        return v.strip()

    @property
    def is_local_provider(self) -> bool:
        """Whether the provider runs on the user's own machine."""
        return self.provider.value in LOCAL_PROVIDERS


def load_config(**overrides: Any) -> GenerationConfig:
    """Build the effective configuration.

    Values are layered: built-in defaults, then ~/.chunknote/config.yaml,
    then any non-None keyword overrides.

    Args:
        **overrides: Field values that take precedence over the config file.

    Returns:
        The validated GenerationConfig.

    Raises:
        ConfigError: If the config file cannot be read or a value is invalid,
            or the provider needs an api_endpoint that is not set.
    """
    # Import here to keep the config models importable without touching disk
    from chunknote import global_config

    values: dict[str, Any] = {}
    try:
        stored = global_config.load_global_config()
    except global_config.GlobalConfigError as e:
        raise ConfigError(str(e)) from e

    known_fields = set(GenerationConfig.model_fields)
    for key, value in stored.items():
        if key in known_fields:
            values[key] = value

    for key, value in overrides.items():
        if value is not None:
            values[key] = value

    try:
        config = GenerationConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    if config.provider in ENDPOINT_REQUIRED_PROVIDERS and not config.api_endpoint:
        raise ConfigError(
            f"Provider '{config.provider.value}' requires api_endpoint to be set in config.yaml"
        )
    return config
