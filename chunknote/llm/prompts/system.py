"""System prompt for commit message generation.

Shared across all providers and every pipeline stage that writes prose.
"""

SYSTEM_PROMPT = """You are an expert software engineer writing git commit messages.
Be precise: only describe changes actually shown in the diff or summaries.
Output plain text only. Do not use <think> tags or show your reasoning.
Do not include XML tags, markdown fences, or commentary."""

LANGUAGE_NAMES = {
    "en-US": "English",
    "zh-CN": "Simplified Chinese",
}


def language_instruction(language: str) -> str:
    """Build the sentence telling the model which language to write in.

    Args:
        language: Language code such as en-US or zh-CN. Unknown codes are
            passed through verbatim.

    Returns:
        A one-line instruction.
    """
    name = LANGUAGE_NAMES.get(language, language or "English")
    return f"Write the result in {name}."
