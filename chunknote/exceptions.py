"""Core exception classes.

Contains exception classes raised outside the LLM layer:
- ChunknoteError: Base exception for chunknote errors
- QueueClearedError: Raised for pending queue tasks dropped by clear()
- ConfigError: Raised when configuration values are invalid
"""


class ChunknoteError(Exception):
    """Base exception for chunknote errors."""

    pass


class QueueClearedError(ChunknoteError):
    """Raised for a queued task that was dropped before it started."""

    pass


class ConfigError(ChunknoteError):
    """Raised when configuration cannot be loaded or is invalid."""

    pass
