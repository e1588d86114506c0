"""Batch execution of diagnostic and shell commands.

Commands are checked by the CommandPolicy first; anything invalid or blocked
gets its failed result without a process ever being spawned. In safe mode
the operator approves the batch once and commands run one after another.
Otherwise every command gets its own worker thread.

Workers only write their own result slot and post a ProgressEvent on a
bounded queue. The calling thread is the single consumer of that queue and
the only place progress counters change.
"""

import queue
import threading
import time
from typing import List, Optional, Sequence, Union

import structlog

from kubelens.config import Config
from kubelens.execution.base import (
    BatchExecutionError,
    BatchProgress,
    BatchResult,
    Command,
    CommandResult,
    ExecutionFailedError,
    ExecutionTimeoutError,
    ProgressEvent,
    ProgressListener,
)
from kubelens.execution.policy import CommandPolicy
from kubelens.utils.command import run_command

logger = structlog.get_logger(__name__)

TIMEOUT_MARKER = "\n*** COMMAND TIMED OUT AFTER %d SECONDS ***\n"
NO_OUTPUT_MESSAGE = "No output from command: %s"


class ExecutionEngine:
    """Runs batches of commands under the configured time and safety limits."""

    def __init__(
        self,
        policy: CommandPolicy,
        timeout: int = 30,
        safe_mode: bool = False,
        kubectl_binary: str = "kubectl",
        confirmer=None,
        listener: Optional[ProgressListener] = None,
    ):
        """Initialize the engine.

        Args:
            policy: Shape and deny-list checks
            timeout: Per-command deadline in seconds
            safe_mode: Confirm the batch and run sequentially
            kubectl_binary: Binary that replaces the diagnostic verb
            confirmer: Object with ``confirm_batch(commands) -> List[int]``,
                required in safe mode (defaults to a ConfirmationManager)
            listener: Optional progress listener
        """
        self.policy = policy
        self.timeout = timeout
        self.safe_mode = safe_mode
        self.kubectl_binary = kubectl_binary
        self.listener = listener or ProgressListener()

        if safe_mode and confirmer is None:
            from kubelens.ui.confirmation import ConfirmationManager
            confirmer = ConfirmationManager()
        self.confirmer = confirmer

    @classmethod
    def from_config(
        cls,
        config: Config,
        confirmer=None,
        listener: Optional[ProgressListener] = None,
    ) -> "ExecutionEngine":
        return cls(
            policy=CommandPolicy.from_config(config),
            timeout=config.command_timeout_seconds,
            safe_mode=config.safe_mode,
            kubectl_binary=config.kubectl_binary,
            confirmer=confirmer,
            listener=listener,
        )

    def execute_batch(self, commands: Sequence[Union[Command, str]]) -> BatchResult:
        """Execute a batch of commands.

        Args:
            commands: Commands or raw command strings, in submission order

        Returns:
            BatchResult with one result per command, in submission order,
            and the aggregated error of every failed command
        """
        batch = [c if isinstance(c, Command) else self.policy.parse(c) for c in commands]
        if not batch:
            return BatchResult()

        started = time.monotonic()
        results: List[Optional[CommandResult]] = [None] * len(batch)
        progress = BatchProgress(total=len(batch))
        events: List[ProgressEvent] = []

        def consume(event: ProgressEvent) -> None:
            progress.record(event)
            events.append(event)
            self.listener.command_finished(results[event.index], progress)

        blocked = self.policy.blocked_commands()
        runnable: List[int] = []
        for index, command in enumerate(batch):
            error = self.policy.check(command, blocked)
            if error is None:
                runnable.append(index)
            else:
                results[index] = CommandResult(command=command, error=error)

        if self.safe_mode and runnable:
            runnable = self._confirm(batch, runnable, results)

        self.listener.batch_started(len(batch))
        for index, result in enumerate(results):
            if result is not None:
                consume(ProgressEvent(index, result.command, result.status))

        if self.safe_mode:
            for index in runnable:
                results[index] = self._execute(batch[index])
                consume(ProgressEvent(index, batch[index], results[index].status, results[index].duration))
        else:
            self._execute_parallel(batch, runnable, results, consume)

        duration = time.monotonic() - started
        self.listener.batch_finished(progress, duration)

        final_results: List[CommandResult] = list(results)
        errors = [result.error for result in final_results if result.error is not None]
        logger.info(
            "Batch executed",
            total=progress.total,
            completed=progress.completed,
            failed=progress.failed,
            skipped=progress.skipped,
            duration_seconds=round(duration, 3),
        )
        return BatchResult(
            results=final_results,
            error=BatchExecutionError(errors) if errors else None,
            events=events,
        )

    def _confirm(
        self,
        batch: List[Command],
        runnable: List[int],
        results: List[Optional[CommandResult]],
    ) -> List[int]:
        """Ask the operator to approve the runnable commands.

        Declined commands get a skipped result. Returns the approved indices.
        """
        selected = set(self.confirmer.confirm_batch([batch[index] for index in runnable]))
        approved = []
        for position, index in enumerate(runnable):
            if position in selected:
                approved.append(index)
            else:
                results[index] = CommandResult(command=batch[index], skipped=True)
        if len(approved) < len(runnable):
            logger.info("Commands skipped by operator", skipped=len(runnable) - len(approved))
        return approved

    def _execute_parallel(self, batch, runnable, results, consume) -> None:
        events: "queue.Queue[ProgressEvent]" = queue.Queue(maxsize=max(len(runnable), 1))

        def worker(index: int) -> None:
            command = batch[index]
            try:
                result = self._execute(command)
            except Exception as exc:  # noqa: BLE001 - reported as the command's failure
                logger.exception("Unexpected error executing command", command=command.raw)
                result = CommandResult(command=command, error=ExecutionFailedError(command.raw, str(exc)))
            results[index] = result
            events.put(ProgressEvent(index, command, result.status, result.duration))

        threads = [
            threading.Thread(target=worker, args=(index,), name=f"kubelens-cmd-{index}", daemon=True)
            for index in runnable
        ]
        for thread in threads:
            thread.start()
        for _ in threads:
            consume(events.get())
        for thread in threads:
            thread.join()

    def _command_line(self, command: Command) -> str:
        if command.is_shell:
            return command.text
        return self.kubectl_binary + command.text[len(self.policy.diagnostic_verb):]

    def _execute(self, command: Command) -> CommandResult:
        """Run one validated command and translate its outcome."""
        try:
            outcome = run_command(self._command_line(command), timeout=self.timeout)
        except OSError as exc:
            return CommandResult(command=command, error=ExecutionFailedError(command.raw, str(exc)))

        if outcome.timed_out:
            logger.warning("Command timed out", command=command.raw, timeout=self.timeout)
            return CommandResult(
                command=command,
                output=outcome.output + TIMEOUT_MARKER % self.timeout,
                error=ExecutionTimeoutError(command.raw, self.timeout),
                duration=outcome.duration,
            )

        if outcome.returncode != 0:
            return CommandResult(
                command=command,
                output=outcome.output,
                error=ExecutionFailedError(command.raw, f"exit status {outcome.returncode}", outcome.returncode),
                duration=outcome.duration,
            )

        output = outcome.output if outcome.output.strip() else NO_OUTPUT_MESSAGE % command.raw
        return CommandResult(command=command, output=output, duration=outcome.duration)


def execute_batch(
    commands: Sequence[Union[Command, str]],
    config: Config,
    confirmer=None,
    listener: Optional[ProgressListener] = None,
) -> BatchResult:
    """Execute a batch with an engine built from configuration."""
    return ExecutionEngine.from_config(config, confirmer=confirmer, listener=listener).execute_batch(commands)
