"""
Chat session state for kubelens.

A ChatSession owns everything that lives across turns:
- the conversation history, kept inside the token budget
- the last question that was not a direct command
- the number of questions asked so far
"""

import threading
from dataclasses import dataclass
from typing import List, Optional

import structlog

from kubelens.config import Config
from kubelens.context import ContextUsage, Message, count_history_tokens, trim_history
from kubelens.enums import MessageRole
from kubelens.execution.engine import ExecutionEngine
from kubelens.llm.provider import LLMProvider
from kubelens.rag import DiagnosticContext, DiagnosticRetriever

logger = structlog.get_logger(__name__)

EXIT_COMMANDS = ("bye", "exit", "quit")


class SessionError(Exception):
    """Base exception for session-related errors."""


class EmptyInputError(SessionError):
    """Raised when a turn is submitted without any text."""


@dataclass
class TurnResult:
    """Answer to one user turn and the context it was grounded on."""

    answer: str
    context: DiagnosticContext

    @property
    def grounded(self) -> bool:
        return not self.context.is_empty


class ChatSession:
    """Conversation with the assistant, one turn at a time."""

    def __init__(
        self,
        config: Config,
        provider: LLMProvider,
        engine: Optional[ExecutionEngine] = None,
        retriever: Optional[DiagnosticRetriever] = None,
    ):
        """
        Args:
            config: Loaded configuration
            provider: LLM used for suggestions and answers
            engine: Command engine (built from config if omitted)
            retriever: Diagnostic retriever (built from the above if omitted)
        """
        self.config = config
        self.provider = provider
        self.budget = config.get_token_budget()
        self.cancel_event = threading.Event()
        if retriever is None:
            engine = engine or ExecutionEngine.from_config(config)
            retriever = DiagnosticRetriever(config, provider, engine, cancel_event=self.cancel_event)
        self.retriever = retriever

        self.history: List[Message] = []
        self.last_query = ""
        self.turn_index = 0

    @staticmethod
    def is_exit_command(text: str) -> bool:
        return text.strip().lower() in EXIT_COMMANDS

    def cancel(self) -> None:
        """Stop diagnostic retries of the turn in progress."""
        self.cancel_event.set()

    def build_context(self, user_input: str) -> DiagnosticContext:
        """Run the diagnostic phase of a turn and update the turn counters.

        Raises:
            EmptyInputError: If the input is blank
            RetrievalCancelledError: If cancelled between attempts
        """
        text = user_input.strip()
        if not text:
            raise EmptyInputError("Nothing to ask")

        self.cancel_event.clear()
        command = self.retriever.parse_input(text)
        if command.is_shell:
            return self.retriever.build_diagnostic_context(command, self.last_query, self.turn_index)

        self.last_query = text
        self.turn_index += 1
        return self.retriever.build_diagnostic_context(text, self.last_query, self.turn_index)

    def ask(self, user_input: str) -> TurnResult:
        """Answer one user turn.

        Args:
            user_input: A question, or a shell-prefixed command

        Returns:
            TurnResult with the answer and its grounding context

        Raises:
            EmptyInputError: If the input is blank
            RetrievalCancelledError: If cancelled between attempts
            LLMError: If the answer request fails
        """
        context = self.build_context(user_input)
        if context.is_empty:
            logger.warning("Answering without diagnostic context", query=user_input.strip())
        # A failed direct command falls back to the question it belongs to
        prompt = context.text or context.query

        message = Message(role=MessageRole.HUMAN, content=prompt)
        # The new prompt is always sent; older turns make room for it
        trim_history(self.history, max(self.budget.limit - message.token_count, 0))
        self.history.append(message)
        try:
            response = self.provider.complete(self.history, max_tokens=self.budget.max_output_tokens)
        except Exception:
            self.history.pop()
            raise

        self.history.append(Message(role=MessageRole.ASSISTANT, content=response.content))
        trim_history(self.history, self.budget.limit)
        return TurnResult(answer=response.content, context=context)

    def usage(self) -> ContextUsage:
        """Current history usage against the token budget."""
        return ContextUsage(
            model=self.config.llm_model,
            budget=self.budget,
            history_tokens=count_history_tokens(self.history),
            message_count=len(self.history),
        )

    def reset(self) -> None:
        """Forget the conversation."""
        self.history.clear()
        self.last_query = ""
        self.turn_index = 0
