"""
Unit tests for configuration management.

Tests cover:
- Default values
- Environment variable overrides
- YAML configuration files
- Keyword overrides
- Derived settings
"""

import pytest
from pydantic import ValidationError
from pydantic_settings import SettingsConfigDict

from kubelens.config import (
    BLOCKED_COMMANDS_EXTRA_ENV,
    DEFAULT_MARKDOWN_FORMAT_PROMPT,
    DEFAULT_PLAIN_FORMAT_PROMPT,
    Config,
    DomainPrompt,
    load_config,
)
from kubelens.enums import BaselineLevel


class TestDefaults:
    """Tests for default configuration values."""

    def test_execution_defaults(self, config):
        assert config.diagnostic_verb == "kubectl"
        assert config.kubectl_binary == "kubectl"
        assert config.shell_prefix == "$"
        assert config.command_timeout_seconds == 30
        assert config.safe_mode is False

    def test_command_lists(self, config):
        assert "get" in config.allowed_commands
        assert "logs --tail 10" in config.allowed_commands
        assert "delete" in config.blocked_commands
        assert "exec" in config.blocked_commands

    def test_retrieval_defaults(self, config):
        assert config.retries == 3
        assert config.max_suggestions == 12
        assert config.disable_secret_filter is False
        assert {d.name for d in config.domain_prompts} >= {"errors", "performance", "storage", "rbac"}

    def test_baseline_defaults(self):
        config = Config(_env_file=None)
        assert config.enable_baseline is True
        assert config.baseline_level is BaselineLevel.MINIMAL
        assert config.baseline_include_metrics is True

    def test_lists_not_shared(self, make_config):
        """Each instance gets its own copy of the default lists."""
        first = make_config()
        first.blocked_commands.append("get")
        assert "get" not in make_config().blocked_commands


class TestEnvironment:
    """Tests for KUBELENS_* environment variables."""

    def test_scalar_override(self, monkeypatch):
        monkeypatch.setenv("KUBELENS_COMMAND_TIMEOUT_SECONDS", "60")
        assert Config(_env_file=None).command_timeout_seconds == 60

    def test_bool_override(self, monkeypatch):
        monkeypatch.setenv("KUBELENS_SAFE_MODE", "true")
        assert Config(_env_file=None).safe_mode is True

    def test_list_override(self, monkeypatch):
        monkeypatch.setenv("KUBELENS_BLOCKED_COMMANDS", '["delete", "apply"]')
        assert Config(_env_file=None).blocked_commands == ["delete", "apply"]

    def test_extra_deny_list_not_a_setting(self, monkeypatch):
        """The deny-list extras variable is read per batch, not at load time."""
        monkeypatch.setenv(BLOCKED_COMMANDS_EXTRA_ENV, "top")
        assert "top" not in Config(_env_file=None).blocked_commands

    def test_baseline_level_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("KUBELENS_BASELINE_LEVEL", " Comprehensive ")
        assert Config(_env_file=None).baseline_level is BaselineLevel.COMPREHENSIVE

    def test_unknown_baseline_level_rejected(self):
        with pytest.raises(ValidationError):
            Config(_env_file=None, baseline_level="everything")

    def test_keyword_beats_environment(self, monkeypatch):
        monkeypatch.setenv("KUBELENS_COMMAND_TIMEOUT_SECONDS", "60")
        assert Config(_env_file=None, command_timeout_seconds=5).command_timeout_seconds == 5


class TestYamlConfig:
    """Tests for YAML configuration files."""

    def test_yaml_values_loaded(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "llm_model: gpt-4o\n"
            "safe_mode: true\n"
            "blocked_commands:\n"
            "  - delete\n"
            "domain_prompts:\n"
            "  - name: nodes\n"
            "    pattern: \"\\\\bnodes?\\\\b\"\n"
            "    prompt: Check node conditions.\n"
            "    commands: [\"get nodes -o wide\"]\n"
        )

        class FileConfig(Config):
            model_config = SettingsConfigDict(yaml_file=[str(config_file)])

        config = FileConfig(_env_file=None)
        assert config.llm_model == "gpt-4o"
        assert config.safe_mode is True
        assert config.blocked_commands == ["delete"]
        assert config.domain_prompts[0].name == "nodes"
        assert config.domain_prompts[0].pattern == r"\bnodes?\b"
        assert config.domain_prompts[0].use_default_commands is True

    def test_environment_beats_yaml(self, tmp_path, monkeypatch):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("retries: 5\n")
        monkeypatch.setenv("KUBELENS_RETRIES", "1")

        class FileConfig(Config):
            model_config = SettingsConfigDict(yaml_file=[str(config_file)])

        assert FileConfig(_env_file=None).retries == 1


class TestValidation:
    """Tests for field validation."""

    def test_timeout_must_be_positive(self, make_config):
        with pytest.raises(ValidationError):
            make_config(command_timeout_seconds=0)

    def test_reserve_percent_bounded(self, make_config):
        with pytest.raises(ValidationError):
            make_config(input_token_reserve_percent=150)

    def test_domain_prompt_from_dict(self, make_config):
        config = make_config(domain_prompts=[{"name": "x", "pattern": "x", "prompt": "p"}])
        assert config.domain_prompts == [DomainPrompt(name="x", pattern="x", prompt="p")]


class TestDerived:
    """Tests for derived settings."""

    def test_token_budget(self, make_config):
        budget = make_config(max_tokens=8000, input_token_reserve_percent=25).get_token_budget()
        assert budget.limit == 8000
        assert budget.input_reserve == 2000
        assert budget.max_output_tokens == 6000

    def test_output_format_prompt(self, make_config):
        assert make_config().get_output_format_prompt() == DEFAULT_MARKDOWN_FORMAT_PROMPT
        assert make_config(markdown_output=False).get_output_format_prompt() == DEFAULT_PLAIN_FORMAT_PROMPT


class TestLoadConfig:
    """Tests for load_config."""

    def test_overrides(self):
        config = load_config(safe_mode=True, command_timeout_seconds=9)
        assert config.safe_mode is True
        assert config.command_timeout_seconds == 9
