"""
Command-line interface for kubelens.

Main entry point for the kubelens CLI application.
"""
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.prompt import Prompt

from kubelens import __version__
from kubelens.config import Config, load_config
from kubelens.execution.engine import ExecutionEngine
from kubelens.llm.provider import LLMError, create_provider
from kubelens.rag import RetrievalCancelledError
from kubelens.session import ChatSession, EmptyInputError
from kubelens.ui.confirmation import ConfirmationManager
from kubelens.ui.output import ConsoleProgress, OutputFormatter
from kubelens.utils.command import set_verbose_commands
from kubelens.utils.logging import configure_logging, level_from_verbosity


app = typer.Typer(
    name="kubelens",
    help="Conversational Kubernetes diagnostics for SREs",
    add_completion=False,
)

console = Console()

VERBOSE_OPTION = typer.Option(0, "--verbose", "-v", count=True, help="Increase log verbosity (-vv also echoes every command)")
SAFE_MODE_OPTION = typer.Option(None, "--safe-mode/--no-safe-mode", help="Confirm each batch of commands and run them one at a time")
TIMEOUT_OPTION = typer.Option(None, "--timeout", "-t", min=1, help="Per-command timeout in seconds")
TRACE_FILE_OPTION = typer.Option(None, "--trace-file", help="Append all log events to this file")


def safe_md(s: str) -> str:
    """Ensure that Markdown code fences are properly closed."""
    fences = s.count("```")
    return s + ("\n```" if fences % 2 else "")


def _setup(
    verbose: int,
    safe_mode: Optional[bool],
    timeout: Optional[int],
    trace_file: Optional[Path],
) -> Config:
    """Configure logging and load configuration with CLI overrides."""
    configure_logging(level_from_verbosity(verbose), trace_file)
    if verbose >= 2:
        set_verbose_commands(True)

    overrides = {}
    if safe_mode is not None:
        overrides["safe_mode"] = safe_mode
    if timeout is not None:
        overrides["command_timeout_seconds"] = timeout
    return load_config(**overrides)


def _build_engine(config: Config) -> ExecutionEngine:
    return ExecutionEngine.from_config(
        config,
        confirmer=ConfirmationManager(console),
        listener=ConsoleProgress(console),
    )


def _build_session(config: Config) -> ChatSession:
    return ChatSession(config, create_provider(config), engine=_build_engine(config))


@app.command()
def version() -> None:
    """Display the version of kubelens."""
    typer.echo(f"kubelens version {__version__}")


@app.command("exec")
def exec_commands(
    commands: List[str] = typer.Argument(..., help="Commands to run, e.g. 'kubectl get pods' or '$ uptime'"),
    verbose: int = VERBOSE_OPTION,
    safe_mode: Optional[bool] = SAFE_MODE_OPTION,
    timeout: Optional[int] = TIMEOUT_OPTION,
    trace_file: Optional[Path] = TRACE_FILE_OPTION,
) -> None:
    """Run a batch of commands through the execution engine."""
    config = _setup(verbose, safe_mode, timeout, trace_file)
    formatter = OutputFormatter(console)

    batch = _build_engine(config).execute_batch(commands)
    formatter.print_command_results(batch.results)

    if batch.error is not None:
        typer.echo(f"Error: {batch.error}", err=True)
        raise typer.Exit(1)


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question about the cluster, or a '$'-prefixed command"),
    context_only: bool = typer.Option(False, "--context-only", help="Print the diagnostic context instead of asking for an answer"),
    verbose: int = VERBOSE_OPTION,
    safe_mode: Optional[bool] = SAFE_MODE_OPTION,
    timeout: Optional[int] = TIMEOUT_OPTION,
    trace_file: Optional[Path] = TRACE_FILE_OPTION,
) -> None:
    """Answer a single question grounded in live cluster diagnostics."""
    config = _setup(verbose, safe_mode, timeout, trace_file)
    formatter = OutputFormatter(console)

    try:
        session = _build_session(config)
        if context_only:
            context = session.build_context(question)
            if context.is_empty:
                formatter.print_warning("No diagnostic context could be built")
                raise typer.Exit(1)
            console.print(context.text, markup=False, highlight=False)
            return

        result = session.ask(question)
    except EmptyInputError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except LLMError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except (RetrievalCancelledError, KeyboardInterrupt):
        console.print("\n[yellow]Operation cancelled[/yellow]")
        raise typer.Exit(130)

    if not result.grounded:
        formatter.print_warning("Answering without diagnostic context")
    formatter.print_answer(safe_md(result.answer), markdown=config.markdown_output)


@app.command()
def chat(
    verbose: int = VERBOSE_OPTION,
    safe_mode: Optional[bool] = SAFE_MODE_OPTION,
    timeout: Optional[int] = TIMEOUT_OPTION,
    trace_file: Optional[Path] = TRACE_FILE_OPTION,
) -> None:
    """Start an interactive diagnostics conversation."""
    config = _setup(verbose, safe_mode, timeout, trace_file)
    formatter = OutputFormatter(console)

    try:
        session = _build_session(config)
    except LLMError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    console.print(
        f"[bold cyan]kubelens {__version__}[/bold cyan] "
        f"[dim]model: {config.llm_model} · safe mode: {'on' if config.safe_mode else 'off'}[/dim]"
    )
    console.print(
        f"[dim]Ask about your cluster, prefix a command with '{config.shell_prefix}' to run it, "
        f"/context for token usage, /reset to start over, 'exit' to quit.[/dim]\n"
    )

    while True:
        try:
            text = Prompt.ask("[bold cyan]❯[/bold cyan]", console=console)
        except (KeyboardInterrupt, EOFError):
            console.print()
            break

        text = text.strip()
        if not text:
            continue
        if ChatSession.is_exit_command(text):
            break
        if text == "/context":
            formatter.print_markdown(session.usage().render())
            continue
        if text == "/reset":
            session.reset()
            formatter.print_status("Conversation cleared", "success")
            continue

        try:
            result = session.ask(text)
        except (RetrievalCancelledError, KeyboardInterrupt):
            session.cancel()
            console.print("\n[yellow]Operation cancelled[/yellow]")
            continue
        except LLMError as e:
            formatter.print_error("LLM request failed", str(e))
            continue

        if not result.grounded:
            formatter.print_warning("Answering without diagnostic context")
        formatter.print_answer(safe_md(result.answer), markdown=config.markdown_output)
        console.print()

    console.print("[dim]Bye![/dim]")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
