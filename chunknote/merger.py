"""Reduce stage: merge chunk summaries into one commit message.

When the merge prompt itself is over budget, summaries are merged in groups
first and the group results are merged again, until the prompt fits.
"""

import asyncio
import math
from typing import Optional

from loguru import logger

from chunknote.config import CommitFormat, GenerationConfig
from chunknote.llm.base import TextGenerator
from chunknote.llm.exceptions import LLMError, RequestTimeoutError
from chunknote.llm.prompts import build_merge_prompt
from chunknote.models import ChunkSummary
from chunknote.queue import RequestQueue
from chunknote.retry import Sleep, is_retryable_error, retry_with_backoff
from chunknote.styles import clean_generated_text, detect_change_type, is_conventional_format
from chunknote.tokens import TokenEstimator

MAX_MERGE_DEPTH = 5
PROMPT_OVERHEAD_TOKENS = 500
MERGE_PRIORITY = 1

FAILURE_PREFIX = "Could not generate commit message"


def format_commit_message(message: str, config: GenerationConfig) -> str:
    """Clean generated text and enforce the configured commit format.

    Text that already starts with `type(scope): subject` is returned as is;
    otherwise, for the conventional format, a type detected from the wording
    is prepended.

    Args:
        message: Raw merged text.
        config: Run configuration (commit format and language).

    Returns:
        The final commit message.
    """
    formatted = clean_generated_text(message)
    if not formatted:
        return formatted

    if config.commit_format == CommitFormat.CONVENTIONAL and not is_conventional_format(formatted):
        change_type = detect_change_type(formatted, config.language)
        formatted = f"{change_type}: {formatted}"

    return formatted


class SummaryMerger:
    """Combines chunk summaries into a single commit message.

    Args:
        generator: Text-generation client (uses its primary model).
        estimator: Token estimator that knows the merge model's budget.
        queue: Request queue for merge calls; one is created per merge when
            omitted.
        max_depth: Maximum number of grouped merge rounds.
        sleep: Backoff sleep function (replaceable in tests).
    """

    def __init__(
        self,
        generator: TextGenerator,
        estimator: TokenEstimator,
        queue: Optional[RequestQueue] = None,
        max_depth: int = MAX_MERGE_DEPTH,
        sleep: Sleep = asyncio.sleep,
    ):
        self.generator = generator
        self.estimator = estimator
        self.queue = queue
        self.max_depth = max_depth
        self.sleep = sleep

    async def merge(self, summaries: list[ChunkSummary], config: GenerationConfig) -> str:
        """Merge chunk summaries into the final commit message.

        Failed summaries are left out of the prose. If none succeeded, the
        returned message lists every chunk's error instead.

        Args:
            summaries: One summary per chunk, in chunk order.
            config: Run configuration.

        Returns:
            The commit message, or a failure message starting with
            FAILURE_PREFIX.

        Raises:
            LLMError: If the final merge call fails after all retries.
        """
        if not summaries:
            return f"{FAILURE_PREFIX}: no changes were summarized"

        successful = [s for s in summaries if s.success and s.summary]
        if not successful:
            errors = "; ".join(s.error or "Unknown error" for s in summaries if not s.success)
            return f"{FAILURE_PREFIX}: {errors or 'every summary was empty'}"

        skipped = len(summaries) - len(successful)
        if skipped:
            logger.warning(f"Merging {len(successful)} summaries, skipping {skipped} failed chunk(s)")

        if len(successful) == 1:
            return format_commit_message(successful[0].summary, config)

        queue = self.queue or RequestQueue(config.concurrency_limit)
        return await self._reduce(successful, config, queue)

    async def _reduce(
        self,
        units: list[ChunkSummary],
        config: GenerationConfig,
        queue: RequestQueue,
    ) -> str:
        depth = 0
        while True:
            prompt = build_merge_prompt(units, config.commit_format, config.language)
            if not self.estimator.needs_split(prompt):
                merged = await self._generate(prompt, config, queue)
                return format_commit_message(merged, config)

            if depth >= self.max_depth:
                logger.warning(f"Reached merge depth {depth}, joining {len(units)} summaries")
                return format_commit_message(self._join(units), config)

            group_size = self.calculate_group_size(units)
            if group_size >= len(units):
                logger.warning(f"Cannot group {len(units)} summaries further, joining them")
                return format_commit_message(self._join(units), config)

            groups = [units[i:i + group_size] for i in range(0, len(units), group_size)]
            depth += 1
            logger.info(f"Merge prompt over budget; merging {len(groups)} group(s) at depth {depth}")

            merged_groups = await asyncio.gather(
                *(self._merge_group(group, config, queue) for group in groups)
            )
            units = [
                ChunkSummary(file_path=f"group-{i}", summary=text, chunk_index=i, success=True)
                for i, text in enumerate(merged_groups)
            ]

    async def _merge_group(
        self,
        group: list[ChunkSummary],
        config: GenerationConfig,
        queue: RequestQueue,
    ) -> str:
        prompt = build_merge_prompt(group, config.commit_format, config.language)
        try:
            return clean_generated_text(await self._generate(prompt, config, queue))
        except LLMError as e:
            logger.warning(f"Group merge failed ({e}), keeping its summaries as is")
            return self._join(group)

    def calculate_group_size(self, units: list[ChunkSummary]) -> int:
        """Number of summaries per group so a group's prompt fits the budget.

        At least 2, so every grouped round strictly reduces the number of
        summaries.
        """
        total_tokens = sum(self.estimator.estimate(u.summary) for u in units)
        average = total_tokens / len(units)
        available = self.estimator.get_effective_limit() - PROMPT_OVERHEAD_TOKENS
        if average <= 0:
            return len(units)

        group_size = max(2, math.floor(available / average))
        return min(group_size, len(units))

    async def _generate(self, prompt: str, config: GenerationConfig, queue: RequestQueue) -> str:
        async def call_model() -> str:
            try:
                return await asyncio.wait_for(
                    self.generator.generate(prompt),
                    timeout=config.request_timeout,
                )
            except asyncio.TimeoutError:
                raise RequestTimeoutError(f"Merge call timed out after {config.request_timeout}s")

        async def submit() -> str:
            return await queue.enqueue(call_model, priority=MERGE_PRIORITY)

        text = await retry_with_backoff(
            submit,
            max_attempts=config.max_retries,
            base_delay=config.initial_retry_delay,
            should_retry=is_retryable_error,
            sleep=self.sleep,
        )
        if not clean_generated_text(text):
            raise LLMError("Model returned an empty commit message")
        return text

    @staticmethod
    def _join(units: list[ChunkSummary]) -> str:
        return "\n".join(u.summary for u in units)
