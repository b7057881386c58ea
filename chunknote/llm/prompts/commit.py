"""Prompt for generating a commit message from a diff that fits in one call."""

from chunknote.config import CommitFormat
from chunknote.llm.prompts.system import language_instruction

CONVENTIONAL_FORMAT_INSTRUCTIONS = """Use the Conventional Commits format:
<type>(<scope>): <subject>

<body>

- "type" is one of: feat, fix, docs, style, refactor, test, chore, perf, ci, build, revert
  * feat: new feature or capability
  * fix: bug fix
  * docs: documentation only changes
  * style: formatting, whitespace (no logic change)
  * refactor: code change that neither fixes a bug nor adds a feature
  * test: adding or updating tests
  * chore: maintenance tasks, tooling
- "scope" is optional and names the area of code affected.
- The subject is in imperative mood, at most 72 characters, without a trailing period."""

SIMPLE_FORMAT_INSTRUCTIONS = """Write a subject line in imperative mood (at most 72 characters),
then a blank line, then a short body describing what changed and why."""

USER_PROMPT_TEMPLATE_COMMIT = """Write a git commit message for the following staged changes.

{format_instructions}

Rules:
- Only describe changes shown in the diff. Do not infer or assume other changes.
- Focus on what the code does differently, not on file names or paths.
- {language_instruction}

STAGED DIFF:
{diff}"""


def format_instructions(commit_format: CommitFormat) -> str:
    """Get the formatting rules for a commit format."""
    if commit_format == CommitFormat.CONVENTIONAL:
        return CONVENTIONAL_FORMAT_INSTRUCTIONS
    return SIMPLE_FORMAT_INSTRUCTIONS


def build_commit_prompt(diff: str, commit_format: CommitFormat, language: str) -> str:
    """Build the prompt for a single-call commit message.

    Args:
        diff: Unified diff of the staged changes.
        commit_format: Required commit message format.
        language: Output language code.

    Returns:
        The formatted user prompt.
    """
    return USER_PROMPT_TEMPLATE_COMMIT.format(
        format_instructions=format_instructions(commit_format),
        language_instruction=language_instruction(language),
        diff=diff,
    )
