"""Hierarchical splitting of oversized unified diffs.

A diff is cut as coarsely as the token budget allows: per file first, then
per hunk for files that are still too large, then into groups of lines for
hunks that are still too large. Every chunk repeats the header it was cut
from, so the model always knows which file it is looking at.
"""

import re
from dataclasses import replace
from typing import Optional

from loguru import logger

from chunknote.models import DiffChunk, SplitLevel
from chunknote.tokens import TokenEstimator

FILE_HEADER_PATTERN = re.compile(r"^diff --git a/.+ b/(.+)$")
HUNK_HEADER_PATTERN = re.compile(r"^@@\s+-\d+(?:,\d+)?\s+\+\d+(?:,\d+)?\s+@@(.*)$")

UNKNOWN_FILE = "unknown"

# Lines that belong to a file's header rather than its changed content
FILE_HEADER_PREFIXES = (
    "diff --git ",
    "index ",
    "--- ",
    "+++ ",
    "new file mode",
    "deleted file mode",
    "old mode",
    "new mode",
    "similarity index",
    "dissimilarity index",
    "rename from",
    "rename to",
    "copy from",
    "copy to",
    "Binary files",
)


def extract_file_path(diff_text: str) -> str:
    """Find the file a diff fragment belongs to.

    Looks at the `diff --git` header, then `+++ b/`, then `--- a/`.

    Args:
        diff_text: A diff fragment.

    Returns:
        The file path, or "unknown" if none of the headers is present.
    """
    lines = diff_text.split("\n")

    for line in lines:
        match = FILE_HEADER_PATTERN.match(line)
        if match:
            return match.group(1).strip()

    for line in lines:
        if line.startswith("+++ b/"):
            return line[len("+++ b/"):].strip()

    for line in lines:
        if line.startswith("--- a/"):
            return line[len("--- a/"):].strip()

    return UNKNOWN_FILE


def extract_function_name(hunk_header: str) -> Optional[str]:
    """Get the enclosing-scope text git appends to a hunk header.

    Example: "@@ -10,4 +10,6 @@ def load(path):" -> "def load(path):"
    """
    match = HUNK_HEADER_PATTERN.match(hunk_header)
    if not match:
        return None
    name = match.group(1).strip()
    return name or None


class DiffSplitter:
    """Splits a unified diff into chunks that each fit a token budget.

    Args:
        estimator: Token estimator used to measure chunk sizes.
    """

    def __init__(self, estimator: TokenEstimator):
        self.estimator = estimator

    def split(self, diff_text: str, max_tokens: int) -> list[DiffChunk]:
        """Split a diff so each chunk fits within max_tokens.

        Files that fit are kept whole; larger files are split by hunk, and
        hunks that are still too large are split by line. A single line that
        alone exceeds the budget is kept as its own chunk.

        Args:
            diff_text: Full unified diff.
            max_tokens: Token budget per chunk.

        Returns:
            Chunks in original file/hunk/line order, indexed 0..N-1, each with
            total_chunks set to N. Empty input yields an empty list.
        """
        if not diff_text or not diff_text.strip():
            return []

        chunks: list[DiffChunk] = []
        for file_chunk in self.split_by_files(diff_text):
            if self.estimator.estimate(file_chunk.content) <= max_tokens:
                chunks.append(file_chunk)
                continue

            logger.debug(f"{file_chunk.file_path} exceeds {max_tokens} tokens, splitting by hunks")
            for hunk_chunk in self.split_by_hunks(file_chunk):
                if self.estimator.estimate(hunk_chunk.content) <= max_tokens:
                    chunks.append(hunk_chunk)
                else:
                    logger.debug(f"Hunk in {hunk_chunk.file_path} exceeds {max_tokens} tokens, splitting by lines")
                    chunks.extend(self.split_by_lines(hunk_chunk, max_tokens))

        total = len(chunks)
        indexed = [replace(chunk, chunk_index=i, total_chunks=total) for i, chunk in enumerate(chunks)]
        logger.info(f"Split diff into {total} chunk(s)")
        return indexed

    def split_by_files(self, diff_text: str) -> list[DiffChunk]:
        """Partition a multi-file diff into one chunk per file.

        Text before the first `diff --git` line becomes its own chunk when it
        is not blank.
        """
        sections: list[list[str]] = []
        current: list[str] = []

        for line in diff_text.split("\n"):
            if FILE_HEADER_PATTERN.match(line) and current:
                sections.append(current)
                current = []
            current.append(line)
        if current:
            sections.append(current)

        chunks = []
        for lines in sections:
            content = "\n".join(lines).strip("\n")
            if not content.strip():
                continue
            header = self._file_header(content.split("\n"))
            chunks.append(
                DiffChunk(
                    file_path=extract_file_path(content),
                    content=content,
                    chunk_index=len(chunks),
                    source_level=SplitLevel.FILE,
                    file_header=header,
                )
            )
        return chunks

    def split_by_hunks(self, chunk: DiffChunk) -> list[DiffChunk]:
        """Partition one file's diff into per-hunk chunks.

        Each hunk chunk starts with the file header. A file without hunks
        (e.g. a binary change) is returned unchanged.
        """
        lines = chunk.content.split("\n")
        hunk_starts = [i for i, line in enumerate(lines) if HUNK_HEADER_PATTERN.match(line)]
        if not hunk_starts:
            return [chunk]

        header_lines = lines[:hunk_starts[0]]
        header = "\n".join(header_lines)
        bounds = hunk_starts + [len(lines)]

        chunks = []
        for start, end in zip(bounds, bounds[1:]):
            hunk_lines = lines[start:end]
            chunks.append(
                DiffChunk(
                    file_path=chunk.file_path,
                    content="\n".join(header_lines + hunk_lines),
                    chunk_index=chunk.chunk_index + len(chunks),
                    source_level=SplitLevel.HUNK,
                    file_header=header,
                    function_name=extract_function_name(hunk_lines[0]),
                )
            )
        return chunks

    def split_by_lines(self, chunk: DiffChunk, max_tokens: int) -> list[DiffChunk]:
        """Pack a chunk's changed lines into groups that fit max_tokens.

        The header (file header plus the hunk header, if any) is repeated at
        the top of every group.
        """
        lines = chunk.content.split("\n")
        header_end = self._header_end(lines)
        header_lines = lines[:header_end]
        body = lines[header_end:]
        if not body:
            return [replace(chunk, source_level=SplitLevel.LINE)]

        header_tokens = self.estimator.estimate("\n".join(header_lines) + "\n") if header_lines else 0
        budget = max_tokens - header_tokens

        groups: list[list[str]] = []
        current: list[str] = []
        current_tokens = 0
        for line in body:
            line_tokens = self.estimator.estimate(line + "\n")
            if current and current_tokens + line_tokens > budget:
                groups.append(current)
                current = []
                current_tokens = 0
            if line_tokens > budget:
                logger.warning(
                    f"Line in {chunk.file_path} needs {line_tokens} tokens, "
                    f"more than the {max(budget, 0)} available; keeping it whole"
                )
            current.append(line)
            current_tokens += line_tokens
        if current:
            groups.append(current)

        return [
            DiffChunk(
                file_path=chunk.file_path,
                content="\n".join(header_lines + group),
                chunk_index=chunk.chunk_index + i,
                source_level=SplitLevel.LINE,
                file_header=chunk.file_header,
                function_name=chunk.function_name,
            )
            for i, group in enumerate(groups)
        ]

    @staticmethod
    def _file_header(lines: list[str]) -> str:
        header = []
        for line in lines:
            if HUNK_HEADER_PATTERN.match(line) or not line.startswith(FILE_HEADER_PREFIXES):
                break
            header.append(line)
        return "\n".join(header)

    @staticmethod
    def _header_end(lines: list[str]) -> int:
        for i, line in enumerate(lines):
            if HUNK_HEADER_PATTERN.match(line):
                return i + 1
        for i, line in enumerate(lines):
            if not line.startswith(FILE_HEADER_PREFIXES):
                return i
        return len(lines)
