"""Shared test fixtures and configuration."""

import tempfile
from pathlib import Path
from typing import Callable, Optional, Union

import pytest

from chunknote.config import GenerationConfig
from chunknote.llm.base import TextGenerator
from chunknote.tokens import TokenEstimator


class FakeGenerator(TextGenerator):
    """Scripted text generator that records every call.

    `responder` is either a fixed string or a callable taking the prompt and
    returning a string (or raising).
    """

    def __init__(
        self,
        responder: Union[str, Callable[[str], str]] = "feat: add feature",
        config: Optional[GenerationConfig] = None,
    ):
        super().__init__(config or GenerationConfig())
        self.responder = responder
        self.calls: list[tuple[str, Optional[str]]] = []

    async def generate(self, prompt: str, model: Optional[str] = None) -> str:
        self.calls.append((prompt, model))
        if callable(self.responder):
            return self.responder(prompt)
        return self.responder


class CharEstimator(TokenEstimator):
    """Estimator counting one token per character with a fixed budget."""

    def __init__(self, limit: int):
        super().__init__("test-model")
        self.limit = limit

    def estimate(self, text: str) -> int:
        return len(text)

    def get_effective_limit(self) -> int:
        return self.limit


class RecordingSleep:
    """Replacement for asyncio.sleep that records delays without waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_generator():
    """A generator that always answers with a conventional message."""
    return FakeGenerator()


@pytest.fixture
def no_sleep():
    """A sleep function that returns immediately and records delays."""
    return RecordingSleep()


@pytest.fixture
def isolated_config_dir(temp_dir, mocker):
    """Point ~/.chunknote at an empty temporary directory."""
    mocker.patch("chunknote.global_config._CONFIG_DIR", temp_dir)
    return temp_dir


@pytest.fixture
def sample_diff():
    """A three-file unified diff as produced by `git diff --cached`."""
    return """diff --git a/src/app.py b/src/app.py
index 1234567..abcdefg 100644
--- a/src/app.py
+++ b/src/app.py
@@ -1,3 +1,4 @@ def main():
 import os
+import sys
 
 def main():
@@ -10,2 +11,3 @@ def helper():
     return 1
+    # done
diff --git a/README.md b/README.md
new file mode 100644
index 0000000..e69de29
--- /dev/null
+++ b/README.md
@@ -0,0 +1,2 @@
+# Project
+Docs
diff --git a/old.txt b/old.txt
deleted file mode 100644
index e69de29..0000000
--- a/old.txt
+++ /dev/null
@@ -1 +0,0 @@
-obsolete
"""
