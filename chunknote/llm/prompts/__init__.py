"""LLM prompt templates for chunknote.

This package contains the prompt templates for every pipeline stage:
- system: The shared system prompt and language instruction
- commit: Single-call commit message for diffs that fit the budget
- chunk: Per-chunk summary (Map stage)
- merge: Summary merging (Reduce stage)
- filter: Core-file selection for the smart filter
"""

from chunknote.llm.prompts.system import SYSTEM_PROMPT, language_instruction
from chunknote.llm.prompts.commit import USER_PROMPT_TEMPLATE_COMMIT, build_commit_prompt
from chunknote.llm.prompts.chunk import USER_PROMPT_TEMPLATE_CHUNK, build_chunk_prompt
from chunknote.llm.prompts.merge import USER_PROMPT_TEMPLATE_MERGE, build_merge_prompt
from chunknote.llm.prompts.filter import (
    FILTER_SYSTEM_PROMPT,
    USER_PROMPT_TEMPLATE_FILTER,
    build_filter_prompt,
)


__all__ = [
    # System prompt
    "SYSTEM_PROMPT",
    "language_instruction",
    # Stage prompts
    "USER_PROMPT_TEMPLATE_COMMIT",
    "USER_PROMPT_TEMPLATE_CHUNK",
    "USER_PROMPT_TEMPLATE_MERGE",
    "FILTER_SYSTEM_PROMPT",
    "USER_PROMPT_TEMPLATE_FILTER",
    # Builders
    "build_commit_prompt",
    "build_chunk_prompt",
    "build_merge_prompt",
    "build_filter_prompt",
]
