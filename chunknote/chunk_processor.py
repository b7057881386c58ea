"""Map stage: summarize every diff chunk through the bounded queue.

Each chunk gets its own retry loop around its queue submission, so a chunk
waiting out a backoff does not hold a concurrency slot. All chunks settle
independently; one chunk running out of attempts never cancels the others.
"""

import asyncio
from typing import Callable, Optional

from loguru import logger

from chunknote.llm.base import TextGenerator
from chunknote.llm.exceptions import RequestTimeoutError
from chunknote.llm.prompts import build_chunk_prompt
from chunknote.models import ChunkSummary, DiffChunk, ProcessConfig
from chunknote.queue import RequestQueue
from chunknote.retry import Sleep, is_retryable_error, retry_with_backoff

ProgressCallback = Callable[[int, int], None]


class ChunkProcessor:
    """Summarizes diff chunks concurrently with retry.

    Args:
        generator: Text-generation client.
        queue: Shared request queue; a private one sized from the process
            config is created per call when omitted.
        sleep: Backoff sleep function (replaceable in tests).
    """

    def __init__(
        self,
        generator: TextGenerator,
        queue: Optional[RequestQueue] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.generator = generator
        self.queue = queue
        self.sleep = sleep

    async def process_chunks(
        self,
        chunks: list[DiffChunk],
        config: ProcessConfig,
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[ChunkSummary]:
        """Summarize all chunks.

        Args:
            chunks: Chunks from the splitter.
            config: Map-stage settings.
            on_progress: Called with (completed, total) after each chunk settles.

        Returns:
            Exactly one ChunkSummary per chunk, sorted by chunk_index.
        """
        if not chunks:
            return []

        queue = self.queue or RequestQueue(config.concurrency)
        total = len(chunks)
        completed = 0

        async def run(chunk: DiffChunk) -> ChunkSummary:
            nonlocal completed
            result = await self.process_chunk(chunk, config, queue)
            completed += 1
            if on_progress is not None:
                on_progress(completed, total)
            return result

        logger.info(f"Summarizing {total} chunk(s) with model {config.model_id or 'default'}")
        results = await asyncio.gather(*(run(chunk) for chunk in chunks))

        failed = [r for r in results if not r.success]
        if failed:
            logger.warning(f"{len(failed)} of {total} chunk(s) failed")

        return sorted(results, key=lambda r: r.chunk_index)

    async def process_chunk(
        self,
        chunk: DiffChunk,
        config: ProcessConfig,
        queue: Optional[RequestQueue] = None,
    ) -> ChunkSummary:
        """Summarize one chunk, retrying transient failures.

        Never raises for model errors; a chunk that cannot be summarized is
        returned with success=False and the error text.
        """
        queue = queue or self.queue or RequestQueue(config.concurrency)
        prompt = build_chunk_prompt(chunk, config.language)

        async def call_model() -> str:
            try:
                return await asyncio.wait_for(
                    self.generator.generate(prompt, model=config.model_id),
                    timeout=config.timeout,
                )
            except asyncio.TimeoutError:
                raise RequestTimeoutError(
                    f"Chunk {chunk.chunk_index} of {chunk.file_path} timed out after {config.timeout}s"
                )

        async def submit() -> str:
            return await queue.enqueue(call_model, priority=config.priority)

        try:
            summary = await retry_with_backoff(
                submit,
                max_attempts=config.max_attempts,
                base_delay=config.initial_retry_delay,
                should_retry=is_retryable_error,
                sleep=self.sleep,
            )
        except Exception as e:
            logger.error(f"Failed to summarize chunk {chunk.chunk_index} ({chunk.file_path}): {e}")
            return ChunkSummary(
                file_path=chunk.file_path,
                summary="",
                chunk_index=chunk.chunk_index,
                success=False,
                error=str(e) or type(e).__name__,
            )

        return ChunkSummary(
            file_path=chunk.file_path,
            summary=summary.strip(),
            chunk_index=chunk.chunk_index,
            success=True,
        )
