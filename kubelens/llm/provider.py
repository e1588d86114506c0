"""
LLM Provider abstraction layer.

The diagnostics pipeline needs exactly two things from a model: a silent
single-prompt completion for command suggestions (``generate_text``) and a
chat completion over the conversation history for the answer
(``complete``). OpenAIProvider implements both for any OpenAI-compatible
endpoint, with retries for rate limits and timeouts.
"""

import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

import openai
import structlog

from kubelens.config import Config
from kubelens.context import Message, estimate_tokens
from kubelens.enums import MessageRole

logger = structlog.get_logger(__name__)


@dataclass
class LLMResponse:
    """Response from an LLM provider.

    Attributes:
        content: The generated text content
        model: The model that generated the response
        usage: Token usage information (prompt_tokens, completion_tokens, total_tokens)
        finish_reason: Reason for completion (stop, length, etc.)
    """
    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)
    finish_reason: Optional[str] = None


class LLMError(Exception):
    """Base exception for LLM provider errors."""
    pass


class LLMRateLimitError(LLMError):
    """Raised when rate limit is exceeded."""
    pass


class LLMAuthenticationError(LLMError):
    """Raised when authentication fails."""
    pass


class LLMTimeoutError(LLMError):
    """Raised when request times out."""
    pass


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    Implementations must provide complete(); generate_text() is built on it.
    """

    @abstractmethod
    def complete(
        self,
        messages: Union[str, List[Message]],
        max_tokens: Optional[int] = None,
        temperature: float = 0.0,
    ) -> LLMResponse:
        """Generate a completion from the given messages.

        Args:
            messages: Either a string (converted to a user message) or the
                conversation so far, oldest first
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature

        Returns:
            LLMResponse containing the generated text and metadata

        Raises:
            LLMError: Base exception for LLM errors
            LLMRateLimitError: When rate limit is exceeded
            LLMAuthenticationError: When authentication fails
            LLMTimeoutError: When request times out
        """
        pass

    def generate_text(self, prompt: str) -> str:
        """Complete a single prompt without any conversation history.

        Raises:
            LLMError: If the request fails
        """
        return self.complete(prompt).content

    @staticmethod
    def _normalize_messages(messages: Union[str, List[Message]]) -> List[Message]:
        if isinstance(messages, str):
            return [Message(role=MessageRole.HUMAN, content=messages)]
        return list(messages)


class OpenAIProvider(LLMProvider):
    """OpenAI (or OpenAI-compatible) API provider.

    Attributes:
        api_key: API key
        model: Model to use
        base_url: Optional custom base URL
    """

    DEFAULT_TIMEOUT = 60
    MAX_RETRIES = 3

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
    ):
        """Initialize OpenAI provider.

        Raises:
            LLMAuthenticationError: If API key is not provided
        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise LLMAuthenticationError(
                "OpenAI API key not provided. Set OPENAI_API_KEY environment variable "
                "or pass api_key parameter."
            )

        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self._client = None

    @property
    def client(self) -> openai.OpenAI:
        """Lazy initialization of OpenAI client."""
        if self._client is None:
            kwargs = {"api_key": self.api_key, "timeout": self.timeout}
            if self.base_url:
                kwargs["base_url"] = self.base_url
            self._client = openai.OpenAI(**kwargs)
        return self._client

    def complete(
        self,
        messages: Union[str, List[Message]],
        max_tokens: Optional[int] = None,
        temperature: float = 0.0,
    ) -> LLMResponse:
        """Generate a completion using the chat completions API."""
        api_messages = [message.to_dict() for message in self._normalize_messages(messages)]
        request_params = {
            "model": self.model,
            "messages": api_messages,
            "temperature": temperature,
        }
        if max_tokens is not None:
            request_params["max_tokens"] = max_tokens

        logger.debug(
            "LLM request",
            model=self.model,
            messages=len(api_messages),
            estimated_tokens=sum(estimate_tokens(m["content"]) for m in api_messages),
        )

        for attempt in range(self.max_retries):
            try:
                response = self.client.chat.completions.create(**request_params)
            except openai.AuthenticationError as e:
                raise LLMAuthenticationError(f"Authentication failed: {e}") from e
            except openai.RateLimitError as e:
                if attempt < self.max_retries - 1:
                    # Exponential backoff: 1s, 2s, 4s
                    time.sleep(2 ** attempt)
                    continue
                raise LLMRateLimitError(f"Rate limit exceeded after {self.max_retries} retries: {e}") from e
            except openai.APITimeoutError as e:
                if attempt < self.max_retries - 1:
                    continue
                raise LLMTimeoutError(f"Request timed out: {e}") from e
            except openai.OpenAIError as e:
                raise LLMError(f"OpenAI API error: {e}") from e

            choice = response.choices[0]
            usage = {}
            if response.usage is not None:
                usage = {
                    "prompt_tokens": response.usage.prompt_tokens,
                    "completion_tokens": response.usage.completion_tokens,
                    "total_tokens": response.usage.total_tokens,
                }
            return LLMResponse(
                content=choice.message.content or "",
                model=response.model,
                usage=usage,
                finish_reason=choice.finish_reason,
            )

        raise LLMError(f"Failed after {self.max_retries} retries")


def create_provider(config: Config) -> LLMProvider:
    """Create the LLM provider described by the configuration.

    Raises:
        LLMAuthenticationError: If the configured API key variable is unset
    """
    return OpenAIProvider(
        api_key=os.getenv(config.llm_api_key_env),
        model=config.llm_model,
        base_url=config.llm_base_url,
        timeout=config.llm_timeout_seconds,
        max_retries=config.llm_max_retries,
    )
