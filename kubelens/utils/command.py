"""Command execution utilities with verbose logging support.

Runs a single command line through the shell in its own process group so
that a timeout can kill the command together with everything it spawned.
"""

import os
import signal
import subprocess
import time
from dataclasses import dataclass
from typing import Dict, Optional

import structlog
from rich.console import Console

from kubelens.redaction import sanitize_command

logger = structlog.get_logger(__name__)


# Global flag for verbose command output
_VERBOSE_COMMANDS = False
_console = Console(stderr=True)

_VERBOSE_MAX_LINES = 50


def set_verbose_commands(enabled: bool) -> None:
    """Enable or disable verbose command output.

    Args:
        enabled: True to echo every command and its output to stderr
    """
    global _VERBOSE_COMMANDS
    _VERBOSE_COMMANDS = enabled


def is_verbose_commands() -> bool:
    """Check if verbose command output is enabled."""
    return _VERBOSE_COMMANDS


@dataclass
class CommandOutput:
    """Raw outcome of running one command line.

    Attributes:
        output: Combined stdout and stderr (partial if timed out)
        returncode: Exit code, None if the process was killed on timeout
        timed_out: True when the deadline expired
        duration: Wall-clock seconds
    """

    output: str
    returncode: Optional[int]
    timed_out: bool
    duration: float


def terminate_process_tree(process: subprocess.Popen) -> None:
    """Kill a process and every process in its group with SIGKILL.

    The process must have been started with ``start_new_session=True`` so
    that its group id equals its pid.
    """
    if hasattr(os, "killpg"):
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
    else:
        process.kill()


def run_command(
    command: str,
    timeout: float,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> CommandOutput:
    """Run a shell command line with a deadline.

    Args:
        command: Command line, interpreted by ``/bin/sh``
        timeout: Seconds before the whole process group is killed
        cwd: Working directory for command
        env: Environment variables

    Returns:
        CommandOutput with the collected output

    Raises:
        OSError: If the shell cannot be started
    """
    display = sanitize_command(command)
    logger.debug("Executing command", command=display, timeout=timeout)

    if _VERBOSE_COMMANDS:
        _console.print("\n[bold cyan]→ Executing command:[/bold cyan]")
        _console.print(f"  [dim]{display}[/dim]")

    start_time = time.monotonic()
    process = subprocess.Popen(
        command,
        shell=True,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        cwd=cwd,
        env=env,
        start_new_session=True,
    )

    timed_out = False
    try:
        raw_output, _ = process.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        timed_out = True
        terminate_process_tree(process)
        # Output read before the kill is kept by communicate()
        raw_output, _ = process.communicate()
    duration = time.monotonic() - start_time

    output = (raw_output or b"").decode("utf-8", errors="replace")
    returncode = None if timed_out else process.returncode

    logger.debug(
        "Command finished",
        command=display,
        returncode=returncode,
        timed_out=timed_out,
        duration_seconds=round(duration, 3),
    )

    if _VERBOSE_COMMANDS:
        _print_verbose_result(output, returncode, timed_out)

    return CommandOutput(output=output, returncode=returncode, timed_out=timed_out, duration=duration)


def _print_verbose_result(output: str, returncode: Optional[int], timed_out: bool) -> None:
    if timed_out:
        _console.print("  [bold red]Timed out[/bold red]")
    else:
        _console.print(f"  [dim]Exit code: {returncode}[/dim]")

    if output:
        _console.print("[bold green]  output:[/bold green]")
        lines = output.split("\n")
        if len(lines) > _VERBOSE_MAX_LINES:
            half = _VERBOSE_MAX_LINES // 2
            for line in lines[:half]:
                _console.print(f"    {line}", markup=False)
            _console.print(f"    [dim]... ({len(lines) - _VERBOSE_MAX_LINES} lines omitted) ...[/dim]")
            for line in lines[-half:]:
                _console.print(f"    {line}", markup=False)
        else:
            for line in lines:
                _console.print(f"    {line}", markup=False)

    _console.print()
