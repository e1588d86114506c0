"""Command execution: validation, batch engine and result types."""

from kubelens.execution.base import (
    BatchExecutionError,
    BatchProgress,
    BatchResult,
    BlockedCommandError,
    Command,
    CommandError,
    CommandResult,
    ExecutionFailedError,
    ExecutionTimeoutError,
    InvalidCommandError,
    ProgressEvent,
    ProgressListener,
)
from kubelens.execution.engine import ExecutionEngine, execute_batch
from kubelens.execution.policy import CommandPolicy

__all__ = [
    "BatchExecutionError",
    "BatchProgress",
    "BatchResult",
    "BlockedCommandError",
    "Command",
    "CommandError",
    "CommandPolicy",
    "CommandResult",
    "ExecutionEngine",
    "ExecutionFailedError",
    "ExecutionTimeoutError",
    "InvalidCommandError",
    "ProgressEvent",
    "ProgressListener",
    "execute_batch",
]
