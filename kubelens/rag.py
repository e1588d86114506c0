"""Diagnostic retrieval: turns a question into grounding context for the LLM.

For a regular question the LLM suggests read-only commands, which are run,
redacted and aggregated. On the first question a baseline batch of
cluster-wide commands runs as well and its results come first. Input that
starts with the shell prefix is run as-is instead. The aggregated output is bounded in size and wrapped in
the analysis template together with the task.

A failed diagnostic phase is not fatal: the returned context is simply
empty and the caller sends the question without grounding.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Optional, Union

import structlog

from kubelens.baseline import baseline_commands
from kubelens.config import Config
from kubelens.context import estimate_tokens
from kubelens.enums import AttemptStatus
from kubelens.execution.base import BatchResult, Command, CommandResult
from kubelens.execution.engine import ExecutionEngine
from kubelens.llm.prompts import build_analysis_prompt, build_suggestion_prompt
from kubelens.llm.provider import LLMError, LLMProvider
from kubelens.llm.suggestions import parse_suggested_commands
from kubelens.redaction import redact, sanitize_command

logger = structlog.get_logger(__name__)

SECTION_DELIMITER = "\n\n---\n\n"
OMISSION_MARKER = "(Some command outputs were omitted for brevity)"
TRUNCATION_MARKER = "\n...(output truncated)..."


class RetrievalError(Exception):
    """Base exception for diagnostic retrieval."""

    pass


class RetrievalCancelledError(RetrievalError):
    """Raised when the operator cancels retrieval between attempts."""

    pass


@dataclass
class AttemptOutcome:
    """Result of one suggest-and-execute attempt."""

    status: AttemptStatus
    commands: list[str] = field(default_factory=list)
    batch: Optional[BatchResult] = None

    @property
    def should_retry(self) -> bool:
        return self.status is not AttemptStatus.SUCCESS


@dataclass
class DiagnosticContext:
    """Grounding context built for one user turn.

    Attributes:
        text: LLM-ready context; empty when no diagnostics are available
        query: The task shown to the LLM
        commands: Commands that were run in the final attempt
        results: Their results, in batch order
        attempts: Suggestion attempts made (0 in direct-command mode)
    """

    text: str = ""
    query: str = ""
    commands: list[str] = field(default_factory=list)
    results: list[CommandResult] = field(default_factory=list)
    attempts: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.text

    @property
    def failed_results(self) -> list[CommandResult]:
        return [result for result in self.results if result.error is not None]


def aggregate_results(results: list[CommandResult], redact_output: bool = True) -> str:
    """Concatenate successful results into one delimited block.

    Failed and skipped results are left out. With redaction on, credentials
    typed into the command line are masked as well as the output.
    """
    parts = []
    for result in results:
        if not result.succeeded:
            continue
        command = result.command.raw
        output = result.output
        if redact_output:
            command = sanitize_command(command)
            output = redact(output)
        parts.append(f"Command: {command}\n\nOutput:\n{output}{SECTION_DELIMITER}")
    return "".join(parts)


def _truncate(text: str, max_tokens: int) -> str:
    # Every token spans at least one character
    keep = max(max_tokens - estimate_tokens(TRUNCATION_MARKER), 0)
    return text[:keep] + TRUNCATION_MARKER


def bound_context(text: str, max_tokens: int) -> str:
    """Shrink aggregated output that exceeds ``max_tokens``.

    Keeps the first and last command sections with an omission marker in
    between. Without at least two sections, or when those two are still too
    large, the text is cut at a character boundary instead.

    Args:
        text: Aggregated command output
        max_tokens: Token bound for the result, markers included

    Returns:
        Text of at most ``max_tokens`` estimated tokens
    """
    if estimate_tokens(text) <= max_tokens:
        return text

    sections = [section for section in text.split(SECTION_DELIMITER) if section.strip()]
    if len(sections) < 2:
        logger.info("Truncating oversized command output", max_tokens=max_tokens)
        return _truncate(text, max_tokens)

    bounded = sections[0] + SECTION_DELIMITER + OMISSION_MARKER + SECTION_DELIMITER + sections[-1]
    logger.info(
        "Omitting command outputs from context",
        sections=len(sections),
        omitted=len(sections) - 2,
        max_tokens=max_tokens,
    )
    if estimate_tokens(bounded) > max_tokens:
        return _truncate(bounded, max_tokens)
    return bounded


class DiagnosticRetriever:
    """Builds grounding context from live cluster diagnostics."""

    def __init__(
        self,
        config: Config,
        provider: LLMProvider,
        engine: ExecutionEngine,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        Args:
            config: Loaded configuration
            provider: LLM used for command suggestions
            engine: Engine that runs the commands
            cancel_event: Set to stop retrying between attempts
        """
        self.config = config
        self.provider = provider
        self.engine = engine
        self.cancel_event = cancel_event or threading.Event()

    def parse_input(self, text: str) -> Command:
        """Tag user input with its command kind; questions have none."""
        return Command.parse(text, self.config.diagnostic_verb, self.config.shell_prefix)

    def build_diagnostic_context(
        self,
        query: Union[str, Command],
        last_query: str = "",
        turn_index: int = 1,
    ) -> DiagnosticContext:
        """Build the grounding context for one user turn.

        Args:
            query: What the user typed this turn, raw or already parsed
            last_query: Most recent question that was not a direct command
            turn_index: 1-based count of questions so far

        Returns:
            DiagnosticContext; its text is empty when nothing useful ran

        Raises:
            RetrievalCancelledError: If cancelled between attempts
        """
        command = query if isinstance(query, Command) else self.parse_input(query)
        if command.is_shell:
            return self._run_direct(command, last_query)

        query = command.raw
        if self.cancel_event.is_set():
            raise RetrievalCancelledError("Diagnostic retrieval cancelled")
        baseline = self._run_baseline() if turn_index == 1 else BatchResult()

        attempts = max(1, self.config.retries)
        outcome = AttemptOutcome(status=AttemptStatus.NO_COMMANDS)
        attempt = 0
        while attempt < attempts:
            if self.cancel_event.is_set():
                raise RetrievalCancelledError("Diagnostic retrieval cancelled")
            attempt += 1

            outcome = self._attempt(query, turn_index)
            if not outcome.should_retry:
                break
            logger.info("Retrying command suggestion", attempt=attempt, max_attempts=attempts, reason=outcome.status.value)

        baseline_commands_run = [result.command.raw for result in baseline.results]
        if outcome.status is AttemptStatus.SUCCESS:
            return self._finish(
                query,
                baseline_commands_run + outcome.commands,
                baseline.results + outcome.batch.results,
                attempts=attempt,
            )

        logger.warning("No usable diagnostics after retries", attempts=attempt, reason=outcome.status.value)
        results = baseline.results + (outcome.batch.results if outcome.batch else [])
        commands = baseline_commands_run + outcome.commands
        if baseline.successful:
            return self._finish(query, commands, results, attempts=attempt)
        return DiagnosticContext(query=query, commands=commands, results=results, attempts=attempt)

    def _run_direct(self, command: Command, last_query: str) -> DiagnosticContext:
        task = last_query
        if not task:
            task = command.raw if self.config.disable_secret_filter else sanitize_command(command.raw)
        batch = self.engine.execute_batch([command])
        for result in batch.results:
            if result.error is not None:
                logger.warning("Direct command failed", command=sanitize_command(result.command.raw), error=str(result.error))
        return self._finish(task, [command.raw], batch.results, attempts=0)

    def _run_baseline(self) -> BatchResult:
        commands = baseline_commands(self.config)
        if not commands:
            return BatchResult()

        logger.info("Running baseline diagnostics", commands=len(commands), level=self.config.baseline_level.value)
        batch = self.engine.execute_batch(commands)
        if batch.error is not None:
            logger.warning("Some baseline commands failed", error=str(batch.error))
        logger.info("Baseline collected results", successful=len(batch.successful))
        return batch

    def _attempt(self, query: str, turn_index: int) -> AttemptOutcome:
        prompt = build_suggestion_prompt(self.config, query, turn_index)
        try:
            response = self.provider.generate_text(prompt)
        except LLMError as e:
            logger.warning("Command suggestion request failed", error=str(e))
            return AttemptOutcome(status=AttemptStatus.LLM_ERROR)

        commands = parse_suggested_commands(
            response,
            self.config.allowed_commands,
            diagnostic_verb=self.config.diagnostic_verb,
            max_suggestions=self.config.max_suggestions,
        )
        if not commands:
            logger.info("No commands suggested")
            return AttemptOutcome(status=AttemptStatus.NO_COMMANDS)

        logger.info("Suggested commands", commands=commands)
        batch = self.engine.execute_batch(commands)
        if batch.error is not None:
            logger.warning("Some diagnostic commands failed", error=str(batch.error))
        if not batch.successful:
            return AttemptOutcome(status=AttemptStatus.EMPTY_RESULTS, commands=commands, batch=batch)
        return AttemptOutcome(status=AttemptStatus.SUCCESS, commands=commands, batch=batch)

    def _finish(self, task: str, commands: list[str], results: list[CommandResult], attempts: int) -> DiagnosticContext:
        aggregated = aggregate_results(results, redact_output=not self.config.disable_secret_filter)
        if not aggregated:
            return DiagnosticContext(query=task, commands=commands, results=results, attempts=attempts)

        # The analysis template counts against the bound too
        wrapper_tokens = estimate_tokens(build_analysis_prompt(self.config, "", task))
        max_context = max(self.config.get_token_budget().context_limit - wrapper_tokens - 1, 0)
        bounded = bound_context(aggregated, max_context)
        return DiagnosticContext(
            text=build_analysis_prompt(self.config, bounded, task),
            query=task,
            commands=commands,
            results=results,
            attempts=attempts,
        )
