"""End-to-end commit message generation for staged changes of any size.

Flow:
1. Optional smart filter (fails open)
2. Render the remaining changes into one diff
3. If the diff fits the model's budget, generate directly
4. Otherwise split, summarize chunks with the Map model, merge with the
   primary model
"""

import asyncio
import math
import time
from typing import Optional

from loguru import logger

from chunknote.changes import changes_to_diff
from chunknote.chunk_processor import ChunkProcessor, ProgressCallback
from chunknote.config import GenerationConfig
from chunknote.llm.base import TextGenerator
from chunknote.llm.exceptions import RequestTimeoutError
from chunknote.llm.prompts import build_commit_prompt
from chunknote.merger import FAILURE_PREFIX, SummaryMerger, format_commit_message
from chunknote.model_selector import ModelSelector
from chunknote.models import ChangeRecord, ProcessConfig
from chunknote.queue import RequestQueue
from chunknote.retry import Sleep, is_retryable_error, retry_with_backoff
from chunknote.smart_filter import SmartDiffFilter, format_filter_stats
from chunknote.splitter import DiffSplitter
from chunknote.tokens import TokenEstimator

TRUNCATION_NOTICE = "[Note: the diff was truncated to fit the model's token limit]"
TRUNCATION_KEEP_RATIO = 0.9

# Cost of a Map model relative to the primary model
MODEL_RELATIVE_COSTS = {
    "gpt-4o-mini": 0.1,
    "gemini-1.5-flash": 0.05,
    "gpt-3.5-turbo": 0.05,
    "claude-3-5-haiku-latest": 0.1,
}


def calculate_token_savings(map_model: str, chunk_count: int) -> int:
    """Estimate the cost saved by summarizing chunks with a cheaper model.

    Compares N chunk calls plus one merge call on the primary model with the
    same calls where the chunk calls use `map_model`.

    Args:
        map_model: Model used for chunk calls.
        chunk_count: Number of chunks summarized.

    Returns:
        Saving as a whole percentage.
    """
    cost = MODEL_RELATIVE_COSTS.get(map_model, 1.0)
    traditional = chunk_count + 1
    hybrid = chunk_count * cost + 1
    return round((traditional - hybrid) / traditional * 100)


def truncate_diff(diff: str, estimator: TokenEstimator, limit: int) -> str:
    """Cut a diff down to `limit` tokens by repeatedly keeping the first 90% of lines.

    A notice is appended when anything was removed.
    """
    truncated = diff
    while estimator.estimate(truncated) > limit:
        lines = truncated.split("\n")
        truncated = "\n".join(lines[:math.floor(len(lines) * TRUNCATION_KEEP_RATIO)])

    if truncated != diff:
        truncated += f"\n\n{TRUNCATION_NOTICE}"
    return truncated


class LargeDiffHandler:
    """Generates one commit message from a list of staged changes.

    Args:
        generator: Text-generation client for the configured provider.
        config: Run configuration.
        selector: Map model selector.
        sleep: Backoff sleep function (replaceable in tests).
        on_progress: Called with (completed, total) as chunks finish.
    """

    def __init__(
        self,
        generator: TextGenerator,
        config: GenerationConfig,
        selector: Optional[ModelSelector] = None,
        sleep: Sleep = asyncio.sleep,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.generator = generator
        self.config = config
        self.selector = selector or ModelSelector()
        self.sleep = sleep
        self.on_progress = on_progress
        self.estimator = TokenEstimator(
            config.model_name,
            safety_margin_percent=config.safety_margin_percent,
            custom_token_limit=config.custom_token_limit,
        )

    def needs_large_diff_handling(self, changes: list[ChangeRecord]) -> bool:
        """Check whether the rendered changes exceed one call's budget."""
        return self.estimator.needs_split(changes_to_diff(changes))

    async def handle(self, changes: list[ChangeRecord]) -> str:
        """Generate the commit message for a set of changes.

        Args:
            changes: Staged changes in their original order.

        Returns:
            The commit message, or an explicit failure message when nothing
            could be summarized.

        Raises:
            LLMError: If a direct or final merge call fails after all retries.
        """
        if not changes:
            return f"{FAILURE_PREFIX}: no staged changes"

        if self.config.enable_smart_filter:
            result = await SmartDiffFilter(
                self.generator,
                min_files_threshold=self.config.min_files_threshold,
                max_file_list_size=self.config.max_file_list_size,
                filter_timeout=self.config.filter_timeout,
            ).filter_changes(changes)
            logger.info(format_filter_stats(result.stats))
            changes = result.filtered_changes

        diff = changes_to_diff(changes)
        limit = self.estimator.get_effective_limit()

        if not self.config.enable_map_reduce:
            logger.info("Map-reduce disabled; truncating diff to the token limit")
            return await self._generate_direct(truncate_diff(diff, self.estimator, limit))

        if not self.estimator.needs_split(diff):
            return await self._generate_direct(diff)

        return await self._handle_with_map_reduce(diff)

    async def _handle_with_map_reduce(self, diff: str) -> str:
        started = time.monotonic()
        config = self.config

        selected = self.selector.select_map_model(config)
        map_model = self.selector.select_and_validate_map_model(config)
        used_fallback = map_model != selected
        logger.info(f"Map stage model: {map_model}; reduce stage model: {config.model_name}")

        map_estimator = TokenEstimator(
            map_model,
            safety_margin_percent=config.safety_margin_percent,
            custom_token_limit=config.custom_token_limit,
        )
        chunk_limit = min(self.estimator.get_effective_limit(), map_estimator.get_effective_limit())

        chunks = DiffSplitter(self.estimator).split(diff, chunk_limit)
        if not chunks:
            return f"{FAILURE_PREFIX}: nothing to summarize"

        queue = RequestQueue(config.concurrency_limit)
        process_config = ProcessConfig(
            concurrency=config.concurrency_limit,
            model_id=map_model,
            language=config.language,
            timeout=config.request_timeout,
            max_attempts=config.max_retries,
            initial_retry_delay=config.initial_retry_delay,
        )
        summaries = await ChunkProcessor(self.generator, queue, sleep=self.sleep).process_chunks(
            chunks, process_config, on_progress=self.on_progress
        )

        merger = SummaryMerger(self.generator, self.estimator, queue, sleep=self.sleep)
        message = await merger.merge(summaries, config)

        elapsed = time.monotonic() - started
        if map_model != config.model_name and not used_fallback:
            savings = calculate_token_savings(map_model, len(chunks))
            logger.info(
                f"Processed {len(chunks)} chunk(s) in {elapsed:.1f}s with {map_model}; "
                f"estimated savings {savings}% versus {config.model_name} alone"
            )
        else:
            logger.info(f"Processed {len(chunks)} chunk(s) in {elapsed:.1f}s")

        return message

    async def _generate_direct(self, diff: str) -> str:
        prompt = build_commit_prompt(diff, self.config.commit_format, self.config.language)
        timeout = self.config.request_timeout

        async def call_model() -> str:
            try:
                return await asyncio.wait_for(self.generator.generate(prompt), timeout=timeout)
            except asyncio.TimeoutError:
                raise RequestTimeoutError(f"Commit message call timed out after {timeout}s")

        message = await retry_with_backoff(
            call_model,
            max_attempts=self.config.max_retries,
            base_delay=self.config.initial_retry_delay,
            should_retry=is_retryable_error,
            sleep=self.sleep,
        )
        return format_commit_message(message, self.config)
