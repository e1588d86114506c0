"""Structured logging configuration for kubelens.

Log output goes to stderr so it never mixes with answers on stdout. With a
trace file, every event (including DEBUG command and prompt traces) is
appended to that file instead.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

import structlog

_TRACE_FILE: Optional[TextIO] = None


def configure_logging(level: int = logging.WARNING, trace_file: Optional[Path] = None) -> None:
    """Configure structlog for kubelens.

    At DEBUG level, logs are verbose with full context.
    At WARNING level and above, only problems are logged.

    Args:
        level: Standard logging level (e.g., logging.DEBUG, logging.INFO).
        trace_file: Optional file to append all log events to.
    """
    global _TRACE_FILE

    if _TRACE_FILE is not None:
        _TRACE_FILE.close()
        _TRACE_FILE = None

    if trace_file is not None:
        trace_file.parent.mkdir(parents=True, exist_ok=True)
        _TRACE_FILE = open(trace_file, "a", encoding="utf-8")
        logger_factory = structlog.PrintLoggerFactory(file=_TRACE_FILE)
        renderer = structlog.dev.ConsoleRenderer(colors=False)
        level = logging.DEBUG
    else:
        logger_factory = structlog.PrintLoggerFactory(file=sys.stderr)
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=logger_factory,
        cache_logger_on_first_use=False,
    )


def level_from_verbosity(verbose: int) -> int:
    """Map a -v count to a logging level."""
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING
