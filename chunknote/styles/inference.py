"""Inference and cleanup helpers for generated commit messages.

Contains functions for:
- Checking the conventional commit format
- Detecting the change type from message wording
- Removing reasoning blocks and markdown fences from model output
"""

import re
from typing import Optional

from chunknote.styles.constants import (
    CHANGE_TYPE_KEYWORDS,
    CONVENTIONAL_PATTERN,
    DEFAULT_CHANGE_TYPE,
)

THINK_BLOCK_PATTERN = re.compile(r"<think>.*?</think>", re.IGNORECASE | re.DOTALL)
THINK_TAG_PATTERN = re.compile(r"</?think>", re.IGNORECASE)
EXTRA_BLANK_LINES_PATTERN = re.compile(r"\n\s*\n\s*\n")


def is_conventional_format(message: str) -> bool:
    """Check whether a message starts with `type(scope): subject`.

    Args:
        message: Commit message text.

    Returns:
        True if the first line is a conventional commit subject.
    """
    return bool(CONVENTIONAL_PATTERN.match(message.strip()))


def _keyword_matches(keyword: str, text: str) -> bool:
    if keyword.isascii():
        return re.search(r"(?<![a-z0-9])" + re.escape(keyword), text) is not None
    # CJK text has no word boundaries
    return keyword in text


def detect_change_type(message: str, language: Optional[str] = None) -> str:
    """Infer the conventional commit type from message wording.

    English keywords are always checked; the keywords of `language` are
    checked too when a table exists for it.

    Args:
        message: Commit message text.
        language: Output language code (e.g. "zh-CN").

    Returns:
        The first type whose keywords appear, or "chore".
    """
    text = message.lower()

    localized = {}
    if language and language != "en-US":
        localized = dict(CHANGE_TYPE_KEYWORDS.get(language, ()))

    for change_type, keywords in CHANGE_TYPE_KEYWORDS["en-US"]:
        candidates = keywords + localized.get(change_type, ())
        if any(_keyword_matches(k, text) for k in candidates):
            return change_type

    return DEFAULT_CHANGE_TYPE


def clean_generated_text(text: str) -> str:
    """Strip reasoning blocks and wrapping markdown fences from model output.

    Args:
        text: Raw generated text.

    Returns:
        The cleaned, whitespace-trimmed message.
    """
    cleaned = text or ""

    if "think>" in cleaned.lower():
        cleaned = THINK_BLOCK_PATTERN.sub("", cleaned)
        cleaned = THINK_TAG_PATTERN.sub("", cleaned)
        cleaned = EXTRA_BLANK_LINES_PATTERN.sub("\n\n", cleaned)

    cleaned = cleaned.strip()

    # Remove markdown code fences if the model included them despite instructions
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines).strip()

    return cleaned
