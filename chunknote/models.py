"""Data models shared across the map-reduce pipeline.

Contains:
- ChangeStatus / ChangeRecord: staged file changes handed to the pipeline
- SplitLevel / DiffChunk: token-bounded fragments produced by the splitter
- ChunkSummary: the outcome of summarizing one chunk
- ProcessConfig: settings for the chunk (Map) stage
- FilterStats / FilterResult: smart filter output
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ChangeStatus(Enum):
    """Git status of a staged file."""

    ADDED = "Added"
    MODIFIED = "Modified"
    DELETED = "Deleted"
    RENAMED = "Renamed"
    COPIED = "Copied"


@dataclass(frozen=True)
class ChangeRecord:
    """A single staged file change.

    Attributes:
        path: Repository-relative file path.
        status: How the file changed.
        diff_text: Unified diff body for the file.
        additions: Number of added lines.
        deletions: Number of deleted lines.
    """

    path: str
    status: ChangeStatus
    diff_text: str = ""
    additions: int = 0
    deletions: int = 0


class SplitLevel(Enum):
    """Granularity at which a chunk was cut."""

    FILE = "file"
    HUNK = "hunk"
    LINE = "line"


@dataclass(frozen=True)
class DiffChunk:
    """A fragment of an oversized diff, summarized on its own.

    Attributes:
        file_path: File the fragment belongs to ("unknown" if not detectable).
        content: Diff text of the fragment, including its file header.
        chunk_index: Position in the original diff order (0-based).
        source_level: Split strategy that produced the fragment.
        total_chunks: Number of chunks in the split result.
        file_header: The `diff --git` header block of the file.
        function_name: Enclosing function from the hunk header, if any.
    """

    file_path: str
    content: str
    chunk_index: int
    source_level: SplitLevel
    total_chunks: int = 1
    file_header: str = ""
    function_name: Optional[str] = None


@dataclass(frozen=True)
class ChunkSummary:
    """Result of summarizing one DiffChunk.

    A failed summary has an empty `summary` and a human-readable `error`.
    """

    file_path: str
    summary: str
    chunk_index: int
    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class ProcessConfig:
    """Settings for the chunk summarization stage.

    Attributes:
        concurrency: Maximum simultaneous model calls.
        model_id: Model used for chunk calls; None uses the client default.
        language: Output language code.
        timeout: Per-call timeout in seconds.
        max_attempts: Total attempts per chunk before it is marked failed.
        initial_retry_delay: Base backoff delay in seconds.
        priority: Queue priority for this stage's calls (higher runs sooner).
    """

    concurrency: int = 5
    model_id: Optional[str] = None
    language: str = "en-US"
    timeout: float = 60.0
    max_attempts: int = 3
    initial_retry_delay: float = 1.0
    priority: int = 0


@dataclass
class FilterStats:
    """Statistics reported by the smart filter."""

    total_files: int
    core_files: int
    ignored_files: int
    filtered: bool
    skip_reason: Optional[str] = None


@dataclass
class FilterResult:
    """Output of the smart filter: the kept changes plus statistics."""

    filtered_changes: list[ChangeRecord] = field(default_factory=list)
    stats: FilterStats = field(
        default_factory=lambda: FilterStats(0, 0, 0, False, "Empty file list")
    )
