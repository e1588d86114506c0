"""
LLM access: provider abstraction, prompt construction and parsing of
suggested commands.
"""

from .provider import (
    LLMResponse,
    LLMProvider,
    OpenAIProvider,
    LLMError,
    LLMRateLimitError,
    LLMAuthenticationError,
    LLMTimeoutError,
    create_provider,
)
from .prompts import build_analysis_prompt, build_suggestion_prompt
from .suggestions import parse_suggested_commands

__all__ = [
    "LLMResponse",
    "LLMProvider",
    "OpenAIProvider",
    "LLMError",
    "LLMRateLimitError",
    "LLMAuthenticationError",
    "LLMTimeoutError",
    "create_provider",
    "build_analysis_prompt",
    "build_suggestion_prompt",
    "parse_suggested_commands",
]
