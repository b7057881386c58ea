"""LLM-related exception classes.

Contains all exception classes for text-generation calls:
- LLMError: Base exception for LLM-related errors
- MissingAPIKeyError: Raised when API key is not set
- JSONParseError: Raised when LLM response cannot be parsed
- Transient errors (retried): RateLimitError, ServerError,
  RequestTimeoutError, NetworkError
- Permanent errors (never retried): AuthenticationError, ModelNotFoundError
"""

from typing import Optional


class LLMError(Exception):
    """Base exception for LLM-related errors.

    Attributes:
        status_code: HTTP status returned by the provider, if any.
        retryable: Whether a later attempt may succeed. None means unknown.
    """

    retryable: Optional[bool] = None

    def __init__(self, message: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MissingAPIKeyError(LLMError):
    """Raised when the required API key is not set."""

    retryable = False


class JSONParseError(LLMError):
    """Raised when the LLM response cannot be parsed as valid JSON."""

    retryable = False


class RateLimitError(LLMError):
    """Raised when the provider throttles the request (HTTP 429)."""

    retryable = True


class ServerError(LLMError):
    """Raised on provider-side failures (HTTP 5xx)."""

    retryable = True


class RequestTimeoutError(LLMError):
    """Raised when a call does not finish within its timeout."""

    retryable = True


class NetworkError(LLMError):
    """Raised when the provider cannot be reached."""

    retryable = True


class AuthenticationError(LLMError):
    """Raised when the API key is rejected (HTTP 401/403)."""

    retryable = False


class ModelNotFoundError(LLMError):
    """Raised when the model or endpoint does not exist (HTTP 404)."""

    retryable = False


def error_from_status(status_code: Optional[int], message: str) -> LLMError:
    """Map an HTTP status code onto the error taxonomy.

    Args:
        status_code: Status returned by the provider, or None.
        message: Human-readable error text.

    Returns:
        The matching LLMError subclass instance.
    """
    if status_code in (401, 403):
        return AuthenticationError(message, status_code)
    if status_code == 404:
        return ModelNotFoundError(message, status_code)
    if status_code == 408:
        return RequestTimeoutError(message, status_code)
    if status_code == 429:
        return RateLimitError(message, status_code)
    if status_code is not None and 500 <= status_code < 600:
        return ServerError(message, status_code)
    return LLMError(message, status_code)
