"""Data models and errors for command execution.

A Command is parsed once from the raw string and carries its kind from then
on. Every command handed to the engine yields exactly one CommandResult, in
the position it was submitted.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from kubelens.enums import CommandKind, ProgressStatus


class CommandError(Exception):
    """Base exception for a single command in a batch.

    These are carried on CommandResult.error, never raised out of the engine.
    """

    def __init__(self, command: str, message: str):
        self.command = command
        super().__init__(message)


class InvalidCommandError(CommandError):
    """Raised when a command has neither the diagnostic nor the shell shape."""

    def __init__(self, command: str, diagnostic_verb: str, shell_prefix: str):
        self.diagnostic_verb = diagnostic_verb
        self.shell_prefix = shell_prefix
        super().__init__(
            command,
            f"invalid command '{command}': must start with '{diagnostic_verb}' or '{shell_prefix}'",
        )


class BlockedCommandError(CommandError):
    """Raised when a diagnostic command matches the deny-list."""

    def __init__(self, command: str, entry: str):
        self.entry = entry
        super().__init__(command, f"command '{command}' is blocked: matches '{entry}'")


class ExecutionTimeoutError(CommandError):
    """Raised when a command exceeds its deadline and its process group is killed."""

    def __init__(self, command: str, timeout: int):
        self.timeout = timeout
        super().__init__(command, f"command '{command}' timed out after {timeout} seconds")


class ExecutionFailedError(CommandError):
    """Raised when a command exits non-zero or cannot be started."""

    def __init__(self, command: str, reason: str, exit_code: Optional[int] = None):
        self.exit_code = exit_code
        super().__init__(command, f"command '{command}' failed: {reason}")


class BatchExecutionError(Exception):
    """Aggregate of every per-command failure in a batch."""

    def __init__(self, errors: List[CommandError]):
        self.errors = list(errors)
        super().__init__("; ".join(str(error) for error in self.errors))


@dataclass(frozen=True)
class Command:
    """A command string tagged with its kind.

    Attributes:
        raw: The command as submitted, whitespace-stripped
        text: The command line to run (shell prefix removed)
        kind: DIAGNOSTIC, SHELL, or None for an unrecognized shape
    """

    raw: str
    text: str
    kind: Optional[CommandKind]

    @classmethod
    def parse(cls, raw: str, diagnostic_verb: str = "kubectl", shell_prefix: str = "$") -> "Command":
        """Parse a raw command string, deriving its kind from the prefix."""
        stripped = raw.strip()
        if shell_prefix and stripped.startswith(shell_prefix):
            return cls(raw=stripped, text=stripped[len(shell_prefix):].strip(), kind=CommandKind.SHELL)
        if stripped == diagnostic_verb or stripped.startswith(diagnostic_verb + " "):
            return cls(raw=stripped, text=stripped, kind=CommandKind.DIAGNOSTIC)
        return cls(raw=stripped, text=stripped, kind=None)

    @property
    def is_valid(self) -> bool:
        return self.kind is not None and bool(self.text)

    @property
    def is_shell(self) -> bool:
        return self.kind is CommandKind.SHELL

    def __str__(self) -> str:
        return self.raw


@dataclass(frozen=True)
class CommandResult:
    """Result of one command in a batch.

    Attributes:
        command: The command this result belongs to
        output: Combined stdout/stderr, possibly partial on failure
        error: Failure reason, None on success or skip
        skipped: True when the operator declined the command
        duration: Wall-clock seconds spent running it
    """

    command: Command
    output: str = ""
    error: Optional[CommandError] = None
    skipped: bool = False
    duration: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.skipped

    @property
    def status(self) -> ProgressStatus:
        if self.skipped:
            return ProgressStatus.SKIPPED
        if self.error is not None:
            return ProgressStatus.FAILED
        return ProgressStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        """Convert CommandResult to dictionary for serialization."""
        return {
            "command": self.command.raw,
            "kind": self.command.kind.value if self.command.kind else None,
            "output": self.output,
            "error": str(self.error) if self.error else None,
            "skipped": self.skipped,
            "duration": round(self.duration, 3),
        }


@dataclass(frozen=True)
class ProgressEvent:
    """Notification that one command of a batch has finished."""

    index: int
    command: Command
    status: ProgressStatus
    duration: float = 0.0


@dataclass
class BatchProgress:
    """Running tally of a batch, owned by the single progress consumer."""

    total: int
    completed: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def finished(self) -> int:
        return self.completed + self.failed + self.skipped

    def record(self, event: ProgressEvent) -> None:
        if event.status is ProgressStatus.COMPLETED:
            self.completed += 1
        elif event.status is ProgressStatus.FAILED:
            self.failed += 1
        else:
            self.skipped += 1


@dataclass
class BatchResult:
    """Outcome of a batch.

    Attributes:
        results: One result per submitted command, in submission order
        error: Aggregate of every per-command failure, or None
        events: Progress events in the order the consumer received them
    """

    results: List[CommandResult] = field(default_factory=list)
    error: Optional[BatchExecutionError] = None
    events: List[ProgressEvent] = field(default_factory=list)

    @property
    def successful(self) -> List[CommandResult]:
        return [result for result in self.results if result.succeeded]


class ProgressListener:
    """Receives batch progress. All callbacks run on the consumer thread.

    Subclasses override what they need; the defaults do nothing.
    """

    def batch_started(self, total: int) -> None:
        pass

    def command_finished(self, result: CommandResult, progress: BatchProgress) -> None:
        pass

    def batch_finished(self, progress: BatchProgress, duration: float) -> None:
        pass
