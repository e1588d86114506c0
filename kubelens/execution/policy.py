"""Command shape and deny-list checks.

Runs before anything is spawned. Shell commands are operator-issued and skip
the deny-list; diagnostic commands are checked against the configured
entries plus the extras in ``KUBELENS_BLOCKED_CMDS_EXTRA``, which is read
again for every batch.
"""

import os
import re
from typing import List, Optional, Sequence

import structlog

from kubelens.config import BLOCKED_COMMANDS_EXTRA_ENV, Config
from kubelens.execution.base import BlockedCommandError, Command, CommandError, InvalidCommandError

logger = structlog.get_logger(__name__)

# Shell operators separate words just like whitespace does
_WORD_SEPARATORS = re.compile(r"[\s;&|()<>`]+")


def _words(text: str) -> List[str]:
    return [word for word in _WORD_SEPARATORS.split(text) if word]


def _contains_sequence(words: List[str], needle: List[str]) -> bool:
    size = len(needle)
    return any(words[i:i + size] == needle for i in range(len(words) - size + 1))


class CommandPolicy:
    """Validates commands against their required shape and the deny-list."""

    def __init__(
        self,
        blocked_commands: Sequence[str],
        diagnostic_verb: str = "kubectl",
        shell_prefix: str = "$",
        extra_env: str = BLOCKED_COMMANDS_EXTRA_ENV,
    ):
        self.static_blocked = list(blocked_commands)
        self.diagnostic_verb = diagnostic_verb
        self.shell_prefix = shell_prefix
        self.extra_env = extra_env

    @classmethod
    def from_config(cls, config: Config) -> "CommandPolicy":
        return cls(
            blocked_commands=config.blocked_commands,
            diagnostic_verb=config.diagnostic_verb,
            shell_prefix=config.shell_prefix,
        )

    def parse(self, raw: str) -> Command:
        return Command.parse(raw, self.diagnostic_verb, self.shell_prefix)

    def blocked_commands(self) -> List[str]:
        """Static deny-list plus the environment extras, read right now."""
        extras = [
            entry.strip()
            for entry in os.environ.get(self.extra_env, "").split(",")
            if entry.strip()
        ]
        return self.static_blocked + extras

    def find_blocked_entry(self, command: Command, blocked: Optional[Sequence[str]] = None) -> Optional[str]:
        """Find the deny-list entry a diagnostic command matches.

        An entry matches when the command starts with ``<verb> <entry>`` or
        when the entry's words appear anywhere in the command as whole words.

        Returns:
            The matched entry, or None
        """
        if blocked is None:
            blocked = self.blocked_commands()

        normalized = " ".join(command.text.split())
        words = _words(command.text)
        for entry in blocked:
            entry_words = _words(entry)
            if not entry_words:
                continue
            if normalized.startswith(f"{self.diagnostic_verb} {entry}"):
                return entry
            if _contains_sequence(words, entry_words):
                return entry
        return None

    def check(self, command: Command, blocked: Optional[Sequence[str]] = None) -> Optional[CommandError]:
        """Check a command before it is run.

        Returns:
            The error the command must fail with, or None if it may run
        """
        if not command.is_valid:
            return InvalidCommandError(command.raw, self.diagnostic_verb, self.shell_prefix)
        if command.is_shell:
            return None

        entry = self.find_blocked_entry(command, blocked)
        if entry is not None:
            logger.warning("Blocked command", command=command.raw, entry=entry)
            return BlockedCommandError(command.raw, entry)
        return None
