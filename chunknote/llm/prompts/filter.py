"""Prompt asking the model which changed files carry the core change."""

import json

FILTER_SYSTEM_PROMPT = """You are a senior tech lead reviewing the list of files in a git change.
Identify the files that represent the core logic of the change.

Ignore noise files:
1. Lockfiles: package-lock.json, pnpm-lock.yaml, yarn.lock, poetry.lock, Cargo.lock, Gemfile.lock
2. Build output: files under dist/, build/, out/, .next/, target/, bin/, obj/
3. Generated code: *.generated.ts, *_pb2.py, *.pb.go, *.g.cs
4. Test snapshots: __snapshots__/, *.snap
5. Minified bundles: *.min.js, *.min.css, *.bundle.js
6. Static assets: images, fonts, *.png, *.jpg, *.svg, *.woff
7. IDE settings: .vscode/, .idea/, *.iml
8. Temporary files: *.tmp, *.log, *.cache

Keep core files:
1. Hand-written source code
2. Configuration such as pyproject.toml, package.json, tsconfig.json (not lockfiles)
3. Documentation such as README.md and CHANGELOG.md
4. Tests (not snapshots)
5. Stylesheets (not minified)

Output ONLY a JSON array of the file paths to keep. No explanation, no markdown fences.

Example:
Input: [{"path": "src/index.ts", "status": "Modified"}, {"path": "package-lock.json", "status": "Modified"}]
Output: ["src/index.ts"]"""

USER_PROMPT_TEMPLATE_FILTER = """Analyze the following file list and return the paths of the core files:

{file_list_json}

Return ONLY a JSON array of strings, e.g. ["src/app.py", "README.md"]"""


def build_filter_prompt(file_list: list[dict]) -> str:
    """Build the core-file filter prompt.

    Args:
        file_list: Entries of the form {"path": ..., "status": ...}.

    Returns:
        The system instructions followed by the user prompt.
    """
    user_prompt = USER_PROMPT_TEMPLATE_FILTER.format(
        file_list_json=json.dumps(file_list, ensure_ascii=False)
    )
    return f"{FILTER_SYSTEM_PROMPT}\n\n{user_prompt}"
