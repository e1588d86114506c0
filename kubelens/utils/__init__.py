"""
Utility functions and helpers.

Command execution with process-group timeouts and logging configuration.
"""

from kubelens.utils.command import (
    CommandOutput,
    is_verbose_commands,
    run_command,
    set_verbose_commands,
    terminate_process_tree,
)
from kubelens.utils.logging import configure_logging, level_from_verbosity

__all__ = [
    "CommandOutput",
    "is_verbose_commands",
    "run_command",
    "set_verbose_commands",
    "terminate_process_tree",
    "configure_logging",
    "level_from_verbosity",
]
