"""Prompt for merging chunk summaries into one commit message (Reduce stage)."""

from chunknote.config import CommitFormat
from chunknote.llm.prompts.commit import format_instructions
from chunknote.llm.prompts.system import language_instruction
from chunknote.models import ChunkSummary

USER_PROMPT_TEMPLATE_MERGE = """Merge the following summaries of code changes into one coherent git commit message.

{format_instructions}

Rules:
- Combine related changes; do not list every summary separately.
- Only describe changes present in the summaries.
- {language_instruction}

SUMMARIES:
{summaries}"""


def build_merge_prompt(
    summaries: list[ChunkSummary],
    commit_format: CommitFormat,
    language: str,
) -> str:
    """Build the merge prompt, grouping summaries by file.

    Args:
        summaries: Successful chunk summaries, in chunk order.
        commit_format: Required commit message format.
        language: Output language code.

    Returns:
        The formatted user prompt.
    """
    by_file: dict[str, list[str]] = {}
    for summary in summaries:
        by_file.setdefault(summary.file_path, []).append(summary.summary)

    sections = []
    for file_path, file_summaries in by_file.items():
        lines = [f"File: {file_path}"]
        lines.extend(f"  - {text}" for text in file_summaries)
        sections.append("\n".join(lines))

    return USER_PROMPT_TEMPLATE_MERGE.format(
        format_instructions=format_instructions(commit_format),
        language_instruction=language_instruction(language),
        summaries="\n\n".join(sections),
    )
