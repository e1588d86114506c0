"""Shared fixtures for kubelens tests."""

import pytest

from kubelens.config import BLOCKED_COMMANDS_EXTRA_ENV, Config
from kubelens.execution.base import BatchResult, Command, CommandResult
from kubelens.llm.provider import LLMResponse


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep deny-list extras and config overrides from the host out of tests."""
    monkeypatch.delenv(BLOCKED_COMMANDS_EXTRA_ENV, raising=False)
    for name in (
        "KUBELENS_SAFE_MODE",
        "KUBELENS_COMMAND_TIMEOUT_SECONDS",
        "KUBELENS_RETRIES",
        "KUBELENS_ENABLE_BASELINE",
        "KUBELENS_BASELINE_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_config():
    """Build a Config that ignores .env files.

    The first-turn baseline batch is off unless a test asks for it.
    """
    def _make(**overrides) -> Config:
        overrides.setdefault("enable_baseline", False)
        return Config(_env_file=None, **overrides)
    return _make


@pytest.fixture
def config(make_config) -> Config:
    return make_config()


@pytest.fixture
def make_batch():
    """Build a BatchResult of successful results from (command, output) pairs."""
    def _make(*pairs) -> BatchResult:
        return BatchResult(
            results=[CommandResult(command=Command.parse(raw), output=output) for raw, output in pairs]
        )
    return _make


@pytest.fixture
def llm_response():
    def _make(content: str) -> LLMResponse:
        return LLMResponse(content=content, model="gpt-4o-mini")
    return _make
