"""Conversion between unified diff text and ChangeRecord lists.

- parse_unified_diff: `git diff --cached` output -> ordered ChangeRecords
- changes_to_diff: ChangeRecords -> one diff text for the model
"""

import re

from chunknote.models import ChangeRecord, ChangeStatus

DIFF_HEADER_PATTERN = re.compile(r"^diff --git a/(.+?) b/(.+)$")


def _status_from_header(header_lines: list[str]) -> ChangeStatus:
    for line in header_lines:
        if line.startswith("new file mode"):
            return ChangeStatus.ADDED
        if line.startswith("deleted file mode"):
            return ChangeStatus.DELETED
        if line.startswith("rename from") or line.startswith("rename to"):
            return ChangeStatus.RENAMED
        if line.startswith("copy from") or line.startswith("copy to"):
            return ChangeStatus.COPIED
    return ChangeStatus.MODIFIED


def _build_record(lines: list[str]) -> ChangeRecord:
    match = DIFF_HEADER_PATTERN.match(lines[0])
    path = match.group(2).strip() if match else "unknown"

    header_lines = []
    body_start = len(lines)
    for i, line in enumerate(lines[1:], start=1):
        if line.startswith("@@"):
            body_start = i
            break
        header_lines.append(line)

    additions = 0
    deletions = 0
    for line in lines[body_start:]:
        if line.startswith("+"):
            additions += 1
        elif line.startswith("-"):
            deletions += 1

    return ChangeRecord(
        path=path,
        status=_status_from_header(header_lines),
        diff_text="\n".join(lines[1:]).strip("\n"),
        additions=additions,
        deletions=deletions,
    )


def parse_unified_diff(diff_text: str) -> list[ChangeRecord]:
    """Split a multi-file unified diff into ChangeRecords.

    Args:
        diff_text: Output of `git diff` (or `git diff --cached`).

    Returns:
        One record per file, in diff order. Text before the first
        `diff --git` line is ignored.
    """
    records = []
    current: list[str] = []

    for line in diff_text.splitlines():
        if DIFF_HEADER_PATTERN.match(line):
            if current:
                records.append(_build_record(current))
            current = [line]
        elif current:
            current.append(line)

    if current:
        records.append(_build_record(current))

    return records


def changes_to_diff(changes: list[ChangeRecord]) -> str:
    """Render change records as one diff text.

    Each record becomes a `diff --git` header, a status line ("new file" for
    added files, the status name otherwise) and its diff text.

    Args:
        changes: Records in the order they should appear.

    Returns:
        The combined diff, records separated by blank lines.
    """
    parts = []
    for change in changes:
        status_line = "new file" if change.status == ChangeStatus.ADDED else change.status.value
        parts.append(f"diff --git a/{change.path} b/{change.path}\n{status_line}\n{change.diff_text}")
    return "\n\n".join(parts)
