"""
Safe-mode confirmation prompts.

One yes/no/edit question covers a whole batch of commands. "edit" opens a
small checklist where individual commands can be switched off.
"""

from __future__ import annotations
from typing import List, Optional, Sequence
from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from kubelens.enums import BatchDecision
from kubelens.execution.base import Command


PREFIX = r"[bold cyan]\[kubelens][/bold cyan]"

_DECISION_CHOICES = {
    "y": BatchDecision.YES,
    "n": BatchDecision.NO,
    "e": BatchDecision.EDIT,
}


class ConfirmationManager:
    """Manages the batch confirmation prompt."""

    def __init__(self, console: Optional[Console] = None):
        """
        Initialize confirmation manager.

        Args:
            console: Rich console instance (creates new one if not provided)
        """
        self.console = console or Console()

    def ask_decision(self) -> BatchDecision:
        """
        Ask whether to run the listed commands.

        Returns:
            The operator's decision; NO when the prompt is interrupted
        """
        try:
            answer = Prompt.ask(
                f"{PREFIX} Run these commands? (y)es / (n)o / (e)dit",
                choices=list(_DECISION_CHOICES),
                default="y",
                console=self.console,
            )
        except KeyboardInterrupt:
            self.console.print("\n[yellow]Operation cancelled[/yellow]")
            return BatchDecision.NO
        return _DECISION_CHOICES[answer]

    def confirm_batch(self, commands: Sequence[Command]) -> List[int]:
        """
        Show the batch and get the operator's approval.

        Args:
            commands: Commands about to run

        Returns:
            Positions (into ``commands``) of the approved commands
        """
        if not commands:
            return []

        self.console.print(f"\n{PREFIX} About to execute {len(commands)} command(s):")
        for idx, command in enumerate(commands, start=1):
            self.console.print(f"  {idx}. [yellow]{escape(command.raw)}[/yellow]")

        decision = self.ask_decision()
        if decision is BatchDecision.YES:
            return list(range(len(commands)))
        if decision is BatchDecision.NO:
            return []
        return self.edit_selection(commands)

    def edit_selection(self, commands: Sequence[Command]) -> List[int]:
        """
        Let the operator toggle commands on and off.

        Each answer is one or more command numbers to toggle; an empty answer
        accepts the current selection.

        Args:
            commands: Commands to choose from

        Returns:
            Positions of the commands left selected
        """
        selected = [True] * len(commands)

        while True:
            self.console.print()
            for idx, command in enumerate(commands, start=1):
                mark = "[green]x[/green]" if selected[idx - 1] else " "
                self.console.print(f"  [{mark}] {idx}. {escape(command.raw)}")

            try:
                answer = Prompt.ask(
                    f"{PREFIX} Toggle command numbers (Enter to run the selection)",
                    default="",
                    show_default=False,
                    console=self.console,
                )
            except KeyboardInterrupt:
                self.console.print("\n[yellow]Operation cancelled[/yellow]")
                return []

            tokens = answer.replace(",", " ").split()
            if not tokens:
                break

            for token in tokens:
                if token.isdigit() and 1 <= int(token) <= len(commands):
                    selected[int(token) - 1] = not selected[int(token) - 1]
                else:
                    self.console.print(f"[yellow]Ignoring '{escape(token)}': not a command number[/yellow]")

        return [idx for idx, keep in enumerate(selected) if keep]
