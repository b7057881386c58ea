"""Commit message format rules for chunknote.

This package provides:
- constants: CONVENTIONAL_TYPES, CONVENTIONAL_PATTERN, CHANGE_TYPE_KEYWORDS
- inference: is_conventional_format, detect_change_type, clean_generated_text
"""

from chunknote.styles.constants import (
    CHANGE_TYPE_KEYWORDS,
    CONVENTIONAL_PATTERN,
    CONVENTIONAL_TYPES,
    DEFAULT_CHANGE_TYPE,
)
from chunknote.styles.inference import (
    clean_generated_text,
    detect_change_type,
    is_conventional_format,
)


__all__ = [
    # Constants
    "CHANGE_TYPE_KEYWORDS",
    "CONVENTIONAL_PATTERN",
    "CONVENTIONAL_TYPES",
    "DEFAULT_CHANGE_TYPE",
    # Inference
    "clean_generated_text",
    "detect_change_type",
    "is_conventional_format",
]
