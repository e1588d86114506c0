"""
Rich-based output formatting for terminal display.

Provides status lines, command results, Markdown answers and live progress
for command batches.
"""

from __future__ import annotations
from typing import Optional, Sequence
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn, TaskID

from kubelens.execution.base import BatchProgress, CommandResult, ProgressListener


PREFIX = r"[bold cyan]\[kubelens][/bold cyan]"


class OutputFormatter:
    """Formats output with Rich styling."""

    # Status indicators
    SUCCESS = "✅"
    ERROR = "❌"
    WARNING = "⚠️"
    INFO = "ℹ️"
    PROGRESS = "⏳"

    def __init__(self, console: Optional[Console] = None):
        """
        Initialize output formatter.

        Args:
            console: Rich console instance (creates new one if not provided)
        """
        self.console = console or Console()

    def print_status(self, message: str, status: str = "info") -> None:
        """
        Print a status message with indicator.

        Args:
            message: Status message
            status: Status type (success, error, warning, info, progress)
        """
        icons = {
            "success": self.SUCCESS,
            "error": self.ERROR,
            "warning": self.WARNING,
            "info": self.INFO,
            "progress": self.PROGRESS
        }
        icon = icons.get(status, self.INFO)

        self.console.print(f"{PREFIX} {icon} {message}")

    def print_error(self, message: str, details: Optional[str] = None) -> None:
        """
        Print an error message with optional details.

        Args:
            message: Error message
            details: Optional detailed error information
        """
        self.console.print(f"\n[bold red]{self.ERROR} {escape(message)}[/bold red]")
        if details:
            self.console.print(f"[red]Error: {escape(details)}[/red]")

    def print_warning(self, message: str, details: Optional[str] = None) -> None:
        """
        Print a warning message.

        Args:
            message: Warning message
            details: Optional detailed information
        """
        self.console.print(f"\n[bold yellow]{self.WARNING} {escape(message)}[/bold yellow]")
        if details:
            self.console.print(f"[yellow]{escape(details)}[/yellow]")

    def print_command_result(self, result: CommandResult) -> None:
        """
        Print one command result as a panel.

        Args:
            result: Result to display
        """
        if result.skipped:
            self.console.print(f"[dim]- skipped: {escape(result.command.raw)}[/dim]")
            return

        if result.error is not None:
            title = f"{self.ERROR} {escape(result.command.raw)}"
            border_style = "red"
            body = result.output or str(result.error)
            if result.output:
                body += f"\n{result.error}"
        else:
            title = f"{self.SUCCESS} {escape(result.command.raw)}"
            border_style = "green"
            body = result.output

        self.console.print(Panel(escape(body.rstrip("\n")), title=title, border_style=border_style))

    def print_command_results(self, results: Sequence[CommandResult]) -> None:
        """Print every result of a batch in order."""
        for result in results:
            self.print_command_result(result)

    def print_markdown(self, markdown_text: str) -> None:
        """
        Print formatted markdown.

        Args:
            markdown_text: Markdown text to display
        """
        self.console.print(Markdown(markdown_text))

    def print_answer(self, text: str, markdown: bool = True) -> None:
        """Print the assistant's answer."""
        if markdown:
            self.print_markdown(text)
        else:
            self.console.print(text, markup=False)


class ConsoleProgress(ProgressListener):
    """Shows batch progress with a spinner and one line per finished command."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def batch_started(self, total: int) -> None:
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn(PREFIX),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )
        self._task = self._progress.add_task(f"Executing {total} command(s)...", total=total)
        self._progress.start()

    def command_finished(self, result: CommandResult, progress: BatchProgress) -> None:
        command = escape(result.command.raw)
        if result.skipped:
            line = f"  [dim]- skipped {command}[/dim]"
        elif result.error is not None:
            line = f"  [red]✗ {command}[/red] [dim]({result.duration * 1000:.0f}ms)[/dim]"
        else:
            line = f"  [green]✓[/green] {command} [dim]({result.duration * 1000:.0f}ms)[/dim]"

        if self._progress is None:
            self.console.print(line)
            return
        self._progress.console.print(line)
        self._progress.update(
            self._task,
            completed=progress.finished,
            description=f"Executing commands... {progress.finished}/{progress.total}",
        )

    def batch_finished(self, progress: BatchProgress, duration: float) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
        summary = f"{progress.completed}/{progress.total} succeeded"
        if progress.failed:
            summary += f", {progress.failed} failed"
        if progress.skipped:
            summary += f", {progress.skipped} skipped"
        self.console.print(f"{PREFIX} [dim]{summary} in {duration:.1f}s[/dim]")
