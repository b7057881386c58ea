"""LLM-assisted pre-filter that drops noise files before summarizing.

The filter asks the model which of the changed files carry the core change
(lockfiles, build output and generated code usually do not). It fails open:
any error, timeout or unusable answer returns the original change list, so
filtering can never block or corrupt a run.
"""

import asyncio
import json
from typing import Optional

from loguru import logger

from chunknote.config import (
    DEFAULT_FILTER_TIMEOUT,
    DEFAULT_MAX_FILE_LIST_SIZE,
    DEFAULT_MIN_FILES_THRESHOLD,
)
from chunknote.llm.base import TextGenerator
from chunknote.llm.exceptions import JSONParseError, RequestTimeoutError
from chunknote.llm.prompts import build_filter_prompt
from chunknote.models import ChangeRecord, FilterResult, FilterStats

# Change sets this small are never worth a model call
TRIVIAL_FILE_COUNT = 2


def parse_filter_result(raw_response: str) -> list[str]:
    """Parse the model's answer as a JSON array of paths.

    Args:
        raw_response: The raw text response from the LLM.

    Returns:
        The list of paths.

    Raises:
        JSONParseError: If the response is not a JSON array of strings.
    """
    cleaned = (raw_response or "").strip()

    # Remove markdown code fences if the model included them despite instructions
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines)

    # Find the first [ and last ]
    first_bracket = cleaned.find("[")
    last_bracket = cleaned.rfind("]")
    if first_bracket != -1 and last_bracket > first_bracket:
        cleaned = cleaned[first_bracket:last_bracket + 1]

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise JSONParseError(
            f"Failed to parse filter response as JSON.\n"
            f"Error: {e}\n"
            f"Raw response:\n{raw_response}"
        )

    if not isinstance(parsed, list):
        raise JSONParseError(f"Filter response is not a JSON array: {raw_response}")
    if not all(isinstance(item, str) for item in parsed):
        raise JSONParseError(f"Filter response contains non-string entries: {raw_response}")

    return parsed


def format_filter_stats(stats: FilterStats) -> str:
    """Render filter statistics as a one-line status message."""
    if not stats.filtered:
        reason = stats.skip_reason or ""
        if "Too few files" in reason or reason.startswith("Only "):
            return f"Smart Filter: Skipped (only {stats.total_files} files)"
        if "Too many files" in reason:
            return f"Smart Filter: Skipped ({stats.total_files} files, too large for filtering)"
        if "Empty" in reason:
            return "Smart Filter: Skipped (empty file list)"
        if reason:
            return f"Smart Filter: Skipped ({reason})"
        return "Smart Filter: Skipped"

    if stats.ignored_files == 0:
        return f"Smart Filter: Analyzed {stats.total_files} files, all are core files"

    return (
        f"Smart Filter: Analyzed {stats.total_files} files, focused on "
        f"{stats.core_files} core files (ignored {stats.ignored_files} noise files)"
    )


class SmartDiffFilter:
    """Keeps only the changes the model considers core to the commit.

    Args:
        generator: Text-generation client.
        min_files_threshold: Below this many files, filtering is skipped.
        max_file_list_size: Above this many files, filtering is skipped.
        filter_timeout: Seconds to wait for the model before failing open.
        model: Model override for the filter call.
    """

    def __init__(
        self,
        generator: TextGenerator,
        min_files_threshold: int = DEFAULT_MIN_FILES_THRESHOLD,
        max_file_list_size: int = DEFAULT_MAX_FILE_LIST_SIZE,
        filter_timeout: float = DEFAULT_FILTER_TIMEOUT,
        model: Optional[str] = None,
    ):
        self.generator = generator
        self.min_files_threshold = min_files_threshold
        self.max_file_list_size = max_file_list_size
        self.filter_timeout = filter_timeout
        self.model = model

    async def filter_changes(self, changes: list[ChangeRecord]) -> FilterResult:
        """Filter a change list down to its core files.

        Never raises; every failure returns the original list.

        Args:
            changes: Staged changes in their original order.

        Returns:
            The kept changes (original order preserved) and statistics.
        """
        total = len(changes)

        if total == 0:
            return self._skipped(changes, "Empty file list")
        if total <= TRIVIAL_FILE_COUNT:
            return self._skipped(changes, f"Only {total} file(s), no filtering needed")
        if total < self.min_files_threshold:
            return self._skipped(
                changes, f"Too few files (< {self.min_files_threshold}), no filtering needed"
            )
        if total > self.max_file_list_size:
            return self._skipped(
                changes,
                f"Too many files (> {self.max_file_list_size}), skipping to prevent context overflow",
            )

        try:
            prompt = build_filter_prompt(self.build_file_list(changes))
            try:
                response = await asyncio.wait_for(
                    self.generator.generate(prompt, model=self.model),
                    timeout=self.filter_timeout,
                )
            except asyncio.TimeoutError:
                raise RequestTimeoutError(f"Filter call timed out after {self.filter_timeout}s")
            paths = parse_filter_result(response)
        except Exception as e:
            logger.warning(f"Smart filter failed, using all files: {e}")
            return self._skipped(changes, f"Filtering failed: {e}")

        valid_paths = self._validate_paths(paths, changes)
        if not valid_paths:
            logger.warning("Smart filter returned no usable paths, using all files")
            return self._skipped(changes, "AI returned empty list or all paths invalid")

        kept = [change for change in changes if change.path in valid_paths]
        stats = FilterStats(
            total_files=total,
            core_files=len(kept),
            ignored_files=total - len(kept),
            filtered=True,
        )
        return FilterResult(filtered_changes=kept, stats=stats)

    @staticmethod
    def build_file_list(changes: list[ChangeRecord]) -> list[dict]:
        """Describe changes as {"path", "status"} entries for the prompt."""
        return [{"path": change.path, "status": change.status.value} for change in changes]

    @staticmethod
    def _validate_paths(paths: list[str], changes: list[ChangeRecord]) -> set[str]:
        known = {change.path for change in changes}
        invalid = [path for path in paths if path not in known]
        if invalid:
            shown = ", ".join(invalid[:5])
            more = "..." if len(invalid) > 5 else ""
            logger.warning(f"Smart filter returned {len(invalid)} unknown path(s), ignored: {shown}{more}")
        return {path for path in paths if path in known}

    @staticmethod
    def _skipped(changes: list[ChangeRecord], reason: str) -> FilterResult:
        total = len(changes)
        stats = FilterStats(
            total_files=total,
            core_files=total,
            ignored_files=0,
            filtered=False,
            skip_reason=reason,
        )
        return FilterResult(filtered_changes=list(changes), stats=stats)
