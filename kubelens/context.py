"""Context window management for kubelens chat sessions.

Estimates token usage, keeps the conversation history inside the model's
context window and derives how many tokens are left for the answer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import structlog

from kubelens.enums import MessageRole

logger = structlog.get_logger(__name__)

# Word runs and single punctuation characters each count as one token.
_TOKEN_PATTERN = re.compile(r"\w+|[^\w\s]")


def estimate_tokens(text: str) -> int:
    """Estimate token count by counting words and punctuation marks.

    Deliberately approximate; only used for budgeting.

    Args:
        text: The text to estimate tokens for.

    Returns:
        Estimated token count (0 for empty text).
    """
    if not text:
        return 0
    return len(_TOKEN_PATTERN.findall(text))


def _format_tokens(count: int) -> str:
    """Format token count with k suffix for readability."""
    if count >= 1000:
        return f"{count / 1000:.1f}k"
    return str(count)


@dataclass
class Message:
    """A single conversation message."""

    role: MessageRole
    content: str

    @property
    def token_count(self) -> int:
        """Estimated tokens of the message content."""
        return estimate_tokens(self.content)

    def to_dict(self) -> dict[str, str]:
        """Convert to the role/content mapping used by chat APIs."""
        return {"role": self.role.value, "content": self.content}


@dataclass
class TokenBudget:
    """Split of the context window between input and the model's answer.

    Attributes:
        limit: Total context window size in tokens.
        input_reserve_percent: Share of the window reserved for input.
        min_input_reserve: Lower bound for the input reservation.
        min_output_tokens: Lower bound for the answer allowance.
    """

    limit: int
    input_reserve_percent: int = 20
    min_input_reserve: int = 1024
    min_output_tokens: int = 512

    @property
    def input_reserve(self) -> int:
        """Tokens reserved for the prompt and history."""
        return max(self.limit * self.input_reserve_percent // 100, self.min_input_reserve)

    @property
    def max_output_tokens(self) -> int:
        """Tokens the model may spend on its answer."""
        return max(self.limit - self.input_reserve, self.min_output_tokens)

    @property
    def context_limit(self) -> int:
        """Upper bound for grounding context before it gets shortened."""
        return 2 * self.limit


def count_history_tokens(history: list[Message]) -> int:
    """Sum of per-message token estimates."""
    return sum(message.token_count for message in history)


def trim_history(history: list[Message], limit: int) -> list[Message]:
    """Drop the oldest messages until the history fits in ``limit`` tokens.

    Removal only ever happens at the head, so the most recent turns survive.
    The list is modified in place and also returned for convenience.

    Args:
        history: Conversation history, oldest message first.
        limit: Maximum total token estimate.

    Returns:
        The same list, now at or under ``limit`` tokens or empty.
    """
    total = count_history_tokens(history)
    if total <= limit:
        return history

    removed = 0
    while history and total > limit:
        dropped = history.pop(0)
        total -= dropped.token_count
        removed += 1

    logger.warning(
        "Conversation history trimmed",
        removed_messages=removed,
        remaining_messages=len(history),
        remaining_tokens=total,
        limit=limit,
    )
    return history


@dataclass
class ContextUsage:
    """Snapshot of history usage against the token budget, for display."""

    model: str
    budget: TokenBudget
    history_tokens: int
    message_count: int

    @property
    def utilization_pct(self) -> float:
        """History usage as a percentage of the window."""
        if self.budget.limit <= 0:
            return 0.0
        return self.history_tokens / self.budget.limit * 100

    def render(self) -> str:
        """Render the usage summary as Markdown."""
        lines = [
            "## Context Usage\n",
            f"{self.model} · "
            f"{_format_tokens(self.history_tokens)}/{_format_tokens(self.budget.limit)} "
            f"tokens ({self.utilization_pct:.1f}%)\n",
            f"- Messages: {self.message_count}",
            f"- Input reserve: {_format_tokens(self.budget.input_reserve)} tokens",
            f"- Answer allowance: {_format_tokens(self.budget.max_output_tokens)} tokens",
        ]
        if self.utilization_pct > 80:
            lines.append("")
            lines.append(
                "**Warning:** Context window is over 80% full. "
                "Older messages will be dropped."
            )
        return "\n".join(lines)
