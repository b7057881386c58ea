"""Token estimation for diffs and prompts.

The estimate is a character-count approximation, not a real tokenizer:
CJK ideographs and full-width punctuation are denser than Latin text, so the
two are counted separately.
"""

import math
import re
from typing import Mapping, Optional

from loguru import logger

from chunknote.config import (
    CHARS_PER_TOKEN,
    CJK_CHARS_PER_TOKEN,
    DEFAULT_SAFETY_MARGIN_PERCENT,
    DEFAULT_TOKEN_LIMIT,
    MODEL_TOKEN_LIMITS,
)

CJK_PATTERN = re.compile(r"[\u4e00-\u9fff\u3000-\u303f\uff00-\uffef]")


class TokenEstimator:
    """Estimates token cost and knows the input budget of a model.

    Args:
        model_name: Model whose context window bounds a single call.
        safety_margin_percent: Share of the context window treated as usable.
        custom_token_limit: Overrides model detection when set and positive.
        model_limits: Lookup table of context windows keyed by model name.
    """

    def __init__(
        self,
        model_name: str,
        safety_margin_percent: int = DEFAULT_SAFETY_MARGIN_PERCENT,
        custom_token_limit: Optional[int] = None,
        model_limits: Mapping[str, int] = MODEL_TOKEN_LIMITS,
    ):
        self.model_name = model_name
        self.safety_margin_percent = safety_margin_percent
        self.custom_token_limit = custom_token_limit
        self.model_limits = model_limits

    def estimate(self, text: str) -> int:
        """Estimate the token count of text.

        Args:
            text: Any prompt or diff text.

        Returns:
            Approximate number of tokens (0 for empty text).
        """
        if not text:
            return 0

        cjk_count = len(CJK_PATTERN.findall(text))
        other_count = len(text) - cjk_count

        return math.ceil(cjk_count / CJK_CHARS_PER_TOKEN) + math.ceil(other_count / CHARS_PER_TOKEN)

    def get_model_limit(self, model_name: Optional[str] = None) -> int:
        """Get the context window of a model.

        Matches the exact name first, then the longest known name contained in
        the given one (so "gpt-4o-mini-2024-07-18" resolves to "gpt-4o-mini").

        Args:
            model_name: Model to look up. Defaults to this estimator's model.

        Returns:
            The known limit, or DEFAULT_TOKEN_LIMIT for unknown models.
        """
        name = (model_name or self.model_name or "").lower()

        if name in self.model_limits:
            return self.model_limits[name]

        candidates = [key for key in self.model_limits if key in name]
        if candidates:
            return self.model_limits[max(candidates, key=len)]

        logger.debug(f"Unknown model '{name}', using default token limit {DEFAULT_TOKEN_LIMIT}")
        return DEFAULT_TOKEN_LIMIT

    def get_raw_limit(self) -> int:
        """Context window before the safety margin is applied."""
        if self.custom_token_limit and self.custom_token_limit > 0:
            return self.custom_token_limit
        return self.get_model_limit()

    def get_effective_limit(self) -> int:
        """Usable token budget for one call.

        Returns:
            floor(raw limit * safety_margin_percent / 100)
        """
        return math.floor(self.get_raw_limit() * self.safety_margin_percent / 100)

    def needs_split(self, text: str) -> bool:
        """Check whether text exceeds the effective limit."""
        return self.estimate(text) > self.get_effective_limit()

    def config_info(self) -> dict:
        """Describe the current budget (for logging and the estimate command)."""
        return {
            "model": self.model_name,
            "model_limit": self.get_model_limit(),
            "custom_limit": self.custom_token_limit,
            "safety_margin_percent": self.safety_margin_percent,
            "effective_limit": self.get_effective_limit(),
        }
