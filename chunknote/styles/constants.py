"""Constants for chunknote commit formatting.

Contains:
- CONVENTIONAL_TYPES: Valid conventional commit types
- CONVENTIONAL_PATTERN: Regex a conventional subject line must match
- CHANGE_TYPE_KEYWORDS: Wording that hints at a commit type, per language
- DEFAULT_CHANGE_TYPE: Type used when no keyword matches
"""

import re
from types import MappingProxyType

# Valid conventional commit types
CONVENTIONAL_TYPES = (
    "feat",
    "fix",
    "docs",
    "style",
    "refactor",
    "test",
    "chore",
    "perf",
    "ci",
    "build",
    "revert",
)

CONVENTIONAL_PATTERN = re.compile(
    r"^(" + "|".join(CONVENTIONAL_TYPES) + r")(\(.+\))?:\s*.+"
)

# Checked in order; the first type with a matching keyword wins.
# English keywords match at the start of a word ("fixes", not "prefix").
CHANGE_TYPE_KEYWORDS = MappingProxyType({
    "en-US": (
        ("fix", ("fix", "bug")),
        ("feat", ("add", "feat", "implement", "introduce")),
        ("docs", ("doc", "readme")),
        ("refactor", ("refactor", "restructure", "optimi")),
        ("test", ("test",)),
        ("style", ("style", "format")),
    ),
    "zh-CN": (
        ("fix", ("修复", "缺陷")),
        ("feat", ("添加", "新增")),
        ("docs", ("文档",)),
        ("refactor", ("重构", "优化")),
        ("test", ("测试",)),
        ("style", ("格式",)),
    ),
})

DEFAULT_CHANGE_TYPE = "chore"
