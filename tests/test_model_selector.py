"""Tests for chunknote.model_selector module."""

from types import MappingProxyType

import pytest

from chunknote.config import GenerationConfig, LLMProvider
from chunknote.model_selector import ModelSelector


def _config(provider=LLMProvider.OPENAI, model="gpt-4o", chunk_model=None):
    return GenerationConfig(provider=provider, model_name=model, chunk_model=chunk_model)


class TestSelectMapModel:
    """Tests for ModelSelector.select_map_model."""

    def test_explicit_chunk_model_wins(self):
        """Test that an explicit chunk model is returned exactly as configured."""
        selector = ModelSelector()
        assert selector.select_map_model(_config(chunk_model="  gpt-4o-mini  ")) == "  gpt-4o-mini  "

    def test_blank_chunk_model_is_ignored(self):
        """Test that a whitespace-only chunk model falls through to downgrading."""
        selector = ModelSelector()
        assert selector.select_map_model(_config(chunk_model="   ")) == "gpt-4o-mini"

    @pytest.mark.parametrize(
        "provider,model,expected",
        [
            (LLMProvider.OPENAI, "gpt-4o", "gpt-4o-mini"),
            (LLMProvider.OPENAI, "gpt-4-turbo", "gpt-4o-mini"),
            (LLMProvider.OPENAI, "gpt-4o-mini", "gpt-4o-mini"),
            (LLMProvider.OPENAI, "gpt-3.5-turbo", "gpt-3.5-turbo"),
            (LLMProvider.AZURE, "gpt-4", "gpt-4"),
            (LLMProvider.GEMINI, "gemini-1.5-pro", "gemini-1.5-flash"),
            (LLMProvider.GOOGLE, "gemini-pro", "gemini-1.5-flash"),
            (LLMProvider.GEMINI, "gemini-2.0-flash", "gemini-2.0-flash"),
            (LLMProvider.ANTHROPIC, "claude-3-opus", "claude-3-5-haiku-latest"),
            (LLMProvider.ANTHROPIC, "claude-sonnet-4", "claude-3-5-haiku-latest"),
            (LLMProvider.ANTHROPIC, "claude-3-haiku", "claude-3-haiku"),
        ],
    )
    def test_downgrade_rules(self, provider, model, expected):
        """Test that premium models are replaced by their lightweight sibling."""
        assert ModelSelector().select_map_model(_config(provider, model)) == expected

    def test_local_provider_never_downgraded(self):
        """Test that local providers keep the primary model."""
        selector = ModelSelector()
        assert selector.select_map_model(_config(LLMProvider.OLLAMA, "gpt-4")) == "gpt-4"

    def test_provider_without_rules_keeps_model(self):
        """Test that providers with no rules use the primary model."""
        selector = ModelSelector()
        assert selector.select_map_model(_config(LLMProvider.GROQ, "llama-3.1-70b")) == "llama-3.1-70b"

    def test_selection_is_deterministic(self):
        """Test that repeated calls return the same model."""
        selector = ModelSelector()
        config = _config(LLMProvider.ANTHROPIC, "claude-3-opus")
        assert selector.select_map_model(config) == selector.select_map_model(config)

    def test_custom_rules(self):
        """Test that injected downgrade rules replace the defaults."""
        rules = MappingProxyType({"openai": ((lambda m: True, "tiny-model"),)})
        selector = ModelSelector(downgrade_rules=rules)
        assert selector.select_map_model(_config(model="gpt-3.5-turbo")) == "tiny-model"


class TestValidateModel:
    """Tests for ModelSelector.validate_model."""

    @pytest.mark.parametrize(
        "model_id",
        [None, "", "ab", "a" * 101, "gpt 4", "vendor/model", "gpt-4o\n", "gpt-4o\t"],
    )
    def test_malformed_names_rejected(self, model_id):
        """Test the length and character checks."""
        assert ModelSelector().validate_model(model_id) is False

    def test_well_formed_name_without_provider(self):
        """Test that any well-formed name passes without a provider."""
        assert ModelSelector().validate_model("anything-1.0") is True

    def test_surrounding_spaces_tolerated(self):
        """Test that spaces around an otherwise valid name are ignored."""
        assert ModelSelector().validate_model("  gpt-4o-mini  ", LLMProvider.OPENAI) is True

    @pytest.mark.parametrize(
        "model_id,provider,expected",
        [
            ("gpt-4o", LLMProvider.OPENAI, True),
            ("o1-mini", LLMProvider.OPENAI, True),
            ("claude-3-haiku", LLMProvider.OPENAI, False),
            ("gemini-1.5-flash", LLMProvider.GEMINI, True),
            ("gpt-4o", LLMProvider.GEMINI, False),
            ("claude-3-haiku", LLMProvider.ANTHROPIC, True),
            ("llama-3.1-70b", LLMProvider.GROQ, True),
            ("anything", "openai", False),
        ],
    )
    def test_provider_family(self, model_id, provider, expected):
        """Test that models must belong to the provider's family."""
        assert ModelSelector().validate_model(model_id, provider) is expected


class TestSelectAndValidate:
    """Tests for ModelSelector.select_and_validate_map_model."""

    def test_valid_selection_returned(self):
        """Test that a valid selection is used as is."""
        assert ModelSelector().select_and_validate_map_model(_config()) == "gpt-4o-mini"

    def test_wrong_family_falls_back_to_primary(self):
        """Test that a chunk model from another provider is replaced."""
        config = _config(chunk_model="claude-3-haiku")
        assert ModelSelector().select_and_validate_map_model(config) == "gpt-4o"

    def test_malformed_chunk_model_falls_back(self):
        """Test that an unusable chunk model name is replaced."""
        config = _config(chunk_model="bad name!")
        assert ModelSelector().select_and_validate_map_model(config) == "gpt-4o"

    def test_invalid_primary_still_returned(self):
        """Test that the primary model is returned even when it is invalid."""
        config = _config(LLMProvider.OPENROUTER, "anthropic/claude-3-opus", chunk_model="x/y")
        assert ModelSelector().select_and_validate_map_model(config) == "anthropic/claude-3-opus"

    def test_padded_chunk_model_kept_verbatim(self):
        """Test that a padded but valid chunk model is not replaced."""
        config = _config(chunk_model="  gpt-4o-mini  ")
        assert ModelSelector().select_and_validate_map_model(config) == "  gpt-4o-mini  "

    def test_azure_deployment_not_downgraded(self):
        """Test that Azure deployment names are used as configured."""
        config = _config(LLMProvider.AZURE, "gpt-4")
        assert ModelSelector().select_and_validate_map_model(config) == "gpt-4"
