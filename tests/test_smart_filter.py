"""Tests for chunknote.smart_filter module."""

import asyncio
import json

import pytest

from chunknote.llm.exceptions import JSONParseError, RateLimitError
from chunknote.models import ChangeRecord, ChangeStatus, FilterStats
from chunknote.smart_filter import SmartDiffFilter, format_filter_stats, parse_filter_result
from tests.conftest import FakeGenerator


def _changes(*paths):
    return [ChangeRecord(path=p, status=ChangeStatus.MODIFIED) for p in paths]


FILES = ("src/app.py", "package-lock.json", "src/util.py", "dist/bundle.js")


class TestParseFilterResult:
    """Tests for parse_filter_result."""

    def test_plain_array(self):
        """Test parsing a bare JSON array."""
        assert parse_filter_result('["a.py", "b.py"]') == ["a.py", "b.py"]

    def test_fenced_array(self):
        """Test that markdown fences are stripped."""
        assert parse_filter_result('```json\n["a.py"]\n```') == ["a.py"]

    def test_array_inside_prose(self):
        """Test that the array is extracted from surrounding text."""
        assert parse_filter_result('Core files: ["a.py"] (done)') == ["a.py"]

    def test_empty_array(self):
        """Test that an empty array parses to an empty list."""
        assert parse_filter_result("[]") == []

    @pytest.mark.parametrize(
        "raw",
        ["not json", '{"files": "a.py"}', "[1, 2]", ""],
    )
    def test_invalid_responses(self, raw):
        """Test that anything but an array of strings is rejected."""
        with pytest.raises(JSONParseError):
            parse_filter_result(raw)


class TestFormatFilterStats:
    """Tests for format_filter_stats."""

    def test_too_few(self):
        """Test the message for a skipped small change set."""
        stats = FilterStats(2, 2, 0, False, "Only 2 file(s), no filtering needed")
        assert format_filter_stats(stats) == "Smart Filter: Skipped (only 2 files)"

    def test_too_many(self):
        """Test the message for a skipped oversized change set."""
        stats = FilterStats(900, 900, 0, False, "Too many files (> 500), skipping")
        assert format_filter_stats(stats) == "Smart Filter: Skipped (900 files, too large for filtering)"

    def test_empty(self):
        """Test the message for an empty change set."""
        stats = FilterStats(0, 0, 0, False, "Empty file list")
        assert format_filter_stats(stats) == "Smart Filter: Skipped (empty file list)"

    def test_failure_reason_shown(self):
        """Test that other skip reasons are shown verbatim."""
        stats = FilterStats(5, 5, 0, False, "Filtering failed: boom")
        assert format_filter_stats(stats) == "Smart Filter: Skipped (Filtering failed: boom)"

    def test_all_core(self):
        """Test the message when nothing was ignored."""
        stats = FilterStats(4, 4, 0, True)
        assert format_filter_stats(stats) == "Smart Filter: Analyzed 4 files, all are core files"

    def test_noise_ignored(self):
        """Test the message when noise files were dropped."""
        stats = FilterStats(4, 2, 2, True)
        assert format_filter_stats(stats) == (
            "Smart Filter: Analyzed 4 files, focused on 2 core files (ignored 2 noise files)"
        )


class TestSmartDiffFilter:
    """Tests for SmartDiffFilter.filter_changes."""

    async def test_keeps_core_files_in_original_order(self):
        """Test that the kept files follow the input order, not the answer's."""
        generator = FakeGenerator('["src/util.py", "src/app.py"]')
        result = await SmartDiffFilter(generator).filter_changes(_changes(*FILES))

        assert [c.path for c in result.filtered_changes] == ["src/app.py", "src/util.py"]
        assert result.stats.filtered is True
        assert result.stats.total_files == 4
        assert result.stats.core_files == 2
        assert result.stats.ignored_files == 2

    async def test_prompt_lists_every_file(self):
        """Test that the prompt describes each change with its status."""
        generator = FakeGenerator('["src/app.py"]')
        await SmartDiffFilter(generator).filter_changes(_changes(*FILES))

        prompt, _ = generator.calls[0]
        for path in FILES:
            assert json.dumps(path) in prompt
        assert '"Modified"' in prompt

    async def test_filter_model_override(self):
        """Test that the filter call uses the configured model."""
        generator = FakeGenerator('["src/app.py"]')
        await SmartDiffFilter(generator, model="gpt-4o-mini").filter_changes(_changes(*FILES))

        assert generator.calls[0][1] == "gpt-4o-mini"

    @pytest.mark.parametrize("count", [0, 1, 2])
    async def test_trivial_sets_skipped_without_call(self, count):
        """Test that tiny change sets are never sent to the model."""
        generator = FakeGenerator('["x"]')
        changes = _changes(*FILES[:count])

        result = await SmartDiffFilter(generator).filter_changes(changes)

        assert generator.calls == []
        assert result.filtered_changes == changes
        assert result.stats.filtered is False

    async def test_below_min_threshold_skipped(self):
        """Test the configurable lower bound."""
        generator = FakeGenerator('["src/app.py"]')
        result = await SmartDiffFilter(generator, min_files_threshold=5).filter_changes(_changes(*FILES))

        assert generator.calls == []
        assert "Too few files" in result.stats.skip_reason

    async def test_above_max_size_skipped(self):
        """Test the configurable upper bound."""
        generator = FakeGenerator('["src/app.py"]')
        result = await SmartDiffFilter(generator, max_file_list_size=3).filter_changes(_changes(*FILES))

        assert generator.calls == []
        assert "Too many files" in result.stats.skip_reason
        assert len(result.filtered_changes) == 4

    async def test_unknown_paths_ignored(self):
        """Test that hallucinated paths are dropped."""
        generator = FakeGenerator('["src/app.py", "src/ghost.py"]')
        result = await SmartDiffFilter(generator).filter_changes(_changes(*FILES))

        assert [c.path for c in result.filtered_changes] == ["src/app.py"]

    @pytest.mark.parametrize("answer", ["[]", '["ghost.py"]'])
    async def test_no_usable_paths_falls_back(self, answer):
        """Test that an empty or all-invalid answer keeps every file."""
        generator = FakeGenerator(answer)
        changes = _changes(*FILES)

        result = await SmartDiffFilter(generator).filter_changes(changes)

        assert result.filtered_changes == changes
        assert result.stats.filtered is False
        assert result.stats.skip_reason == "AI returned empty list or all paths invalid"

    async def test_unparseable_answer_falls_back(self):
        """Test that a non-JSON answer keeps every file."""
        generator = FakeGenerator("I think all files matter.")
        changes = _changes(*FILES)

        result = await SmartDiffFilter(generator).filter_changes(changes)

        assert result.filtered_changes == changes
        assert result.stats.skip_reason.startswith("Filtering failed:")

    async def test_model_error_falls_back(self):
        """Test that a model error keeps every file."""
        def fail(prompt):
            raise RateLimitError("slow down", status_code=429)

        changes = _changes(*FILES)
        result = await SmartDiffFilter(FakeGenerator(fail)).filter_changes(changes)

        assert result.filtered_changes == changes
        assert "slow down" in result.stats.skip_reason

    async def test_timeout_falls_back(self):
        """Test that a slow model keeps every file."""
        class SlowGenerator(FakeGenerator):
            async def generate(self, prompt, model=None):
                await asyncio.sleep(1)
                return '["src/app.py"]'

        changes = _changes(*FILES)
        result = await SmartDiffFilter(SlowGenerator(), filter_timeout=0.01).filter_changes(changes)

        assert result.filtered_changes == changes
        assert "timed out" in result.stats.skip_reason
