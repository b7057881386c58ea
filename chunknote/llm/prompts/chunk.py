"""Prompt for summarizing one chunk of an oversized diff (Map stage)."""

from chunknote.llm.prompts.system import language_instruction
from chunknote.models import DiffChunk

USER_PROMPT_TEMPLATE_CHUNK = """Summarize the following fragment of a larger git diff in 1-3 short sentences.
The summary will be merged with summaries of the other fragments into one commit message.

Rules:
- Describe only what changed in this fragment and, when evident, why.
- Do not write a full commit message and do not add a type prefix.
- {language_instruction}

{context}

CHANGES:
{content}"""


def build_chunk_prompt(chunk: DiffChunk, language: str) -> str:
    """Build the summarization prompt for one chunk.

    The prompt names the file, the chunk's position, the split level, and
    the enclosing function when the hunk header provides one.

    Args:
        chunk: The diff fragment.
        language: Output language code.

    Returns:
        The formatted user prompt.
    """
    context = [
        f"File: {chunk.file_path}",
        f"Chunk: {chunk.chunk_index + 1}/{chunk.total_chunks}",
        f"Split level: {chunk.source_level.value}",
    ]
    if chunk.function_name:
        context.append(f"Function: {chunk.function_name}")

    return USER_PROMPT_TEMPLATE_CHUNK.format(
        language_instruction=language_instruction(language),
        context="\n".join(context),
        content=chunk.content,
    )
