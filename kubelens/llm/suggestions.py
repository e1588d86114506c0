"""Extraction of diagnostic commands from an LLM response."""

from __future__ import annotations

import json
import re
from typing import Sequence

import structlog

logger = structlog.get_logger(__name__)

# Commands the model did not fill in, e.g. "kubectl logs <pod-name>"
_PLACEHOLDER = re.compile(r"<[A-Za-z_-]+>")

_TRAILING_JUNK = " \t\r\"',;"


def build_command_pattern(allowed_commands: Sequence[str], diagnostic_verb: str = "kubectl") -> re.Pattern:
    """Pattern matching ``<verb> <allowed sub-command> ...`` up to the end of line.

    Backticks, ``%`` and ``#`` also end a match so that Markdown and
    comments around a command are left out.
    """
    alternatives = "|".join(re.escape(command) for command in allowed_commands)
    return re.compile(rf"{re.escape(diagnostic_verb)}\s(?:{alternatives})\s?[^`%#\n]*")


def _json_candidates(response: str) -> list[str]:
    """Strings of a JSON array in the response, if there is one."""
    start = response.find("[")
    end = response.rfind("]")
    if start < 0 or end <= start:
        return []
    try:
        data = json.loads(response[start:end + 1])
    except ValueError:
        return []
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, str)]


def _clean(candidates: Sequence[str], pattern: re.Pattern) -> list[str]:
    commands: list[str] = []
    for candidate in candidates:
        command = candidate.strip().rstrip(_TRAILING_JUNK)
        if not command or not pattern.match(command):
            continue
        if _PLACEHOLDER.search(command):
            logger.debug("Discarding command with placeholder", command=command)
            continue
        if command in commands:
            continue
        commands.append(command)
    return commands


def parse_suggested_commands(
    response: str,
    allowed_commands: Sequence[str],
    diagnostic_verb: str = "kubectl",
    max_suggestions: int = 0,
) -> list[str]:
    """Extract the commands an LLM suggested.

    A JSON array of command strings is used when the response contains one;
    otherwise commands are pulled out of free text. Only commands starting
    with an allowed sub-command survive, placeholders and exact repeats are
    dropped and order is preserved.

    Args:
        response: Raw LLM response
        allowed_commands: Allowed sub-commands (e.g. "get", "logs --tail 10")
        diagnostic_verb: Leading word of diagnostic commands
        max_suggestions: Cap on the number of commands (0 for no cap)

    Returns:
        Commands in the order they were suggested
    """
    if not response:
        return []

    pattern = build_command_pattern(allowed_commands, diagnostic_verb)
    commands = _clean(_json_candidates(response), pattern)
    if not commands:
        commands = _clean(pattern.findall(response), pattern)

    if max_suggestions > 0 and len(commands) > max_suggestions:
        logger.info("Capping suggested commands", suggested=len(commands), limit=max_suggestions)
        commands = commands[:max_suggestions]
    return commands
