"""Console diagnostics with Rich formatting.

This module provides:
1. Icon vocabulary (Icon class namespace)
2. Level-based styling
3. Core log functions (log, info, warn, error)
4. Domain-specific helpers (process_skipped, cycle_detected, etc.)
5. Structlog configuration (configure)

Everything goes to stderr; stdout is reserved for the tree itself.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from datetime import datetime

import structlog
from rich.console import Console
from rich.markup import escape

# Rich console for colorful human-readable diagnostics
_console = Console(stderr=True, highlight=False)


# ─────────────────────────────────────────────────────────────────────────────
# Icons
# ─────────────────────────────────────────────────────────────────────────────


class Icon:
    """Icon vocabulary for console output.

    Use via autocomplete: Icon.<TAB> to see all available icons.
    """

    OK = "[bold green]✓[/]"
    FAIL = "[bold red]✗[/]"
    SKIP = "[yellow]↷[/]"
    CYCLE = "[bold yellow]↻[/]"


# ─────────────────────────────────────────────────────────────────────────────
# Level Styles
# ─────────────────────────────────────────────────────────────────────────────

_LEVEL_STYLES = {
    "info": "[bright_blue]\\[info][/]",
    "warn": "[yellow]\\[warn][/]",
    "error": "[bold red]\\[err][/] ",
}


# ─────────────────────────────────────────────────────────────────────────────
# Core Functions
# ─────────────────────────────────────────────────────────────────────────────


def log(level: str, msg: str, icon: str = "") -> None:
    """Print a log message with timestamp and level.

    Args:
        level: Log level (info, warn, error)
        msg: Message to print (can include Rich markup)
        icon: Optional icon to show after level (e.g., Icon.OK)
    """
    ts = datetime.now().strftime("%H:%M:%S")
    lvl = _LEVEL_STYLES.get(level, f"[{level}]")
    icon_part = f" {icon}" if icon else ""
    _console.print(f"[dim]{ts}[/] {lvl}{icon_part} {msg}")


def info(msg: str, icon: str = "") -> None:
    """Log an info message."""
    log("info", msg, icon)


def warn(msg: str, icon: str = "") -> None:
    """Log a warning message."""
    log("warn", msg, icon)


def error(msg: str, icon: str = "") -> None:
    """Log an error message."""
    log("error", msg, icon)


# ─────────────────────────────────────────────────────────────────────────────
# Domain Helpers
# ─────────────────────────────────────────────────────────────────────────────


def process_skipped(pid: int, reason: str) -> None:
    """Log a process left out of the snapshot."""
    warn(f"Skipped PID [cyan]{pid}[/] [dim]— {escape(reason)}[/]", Icon.SKIP)


def cycle_detected(pids: Sequence[int]) -> None:
    """Log a parent loop in the raw process data."""
    chain = " → ".join(str(pid) for pid in pids)
    warn(f"Parent cycle [cyan]{chain}[/] — subtree skipped", Icon.CYCLE)


def root_not_found(pid: int) -> None:
    """Log a missing root PID."""
    error(f"No PID [cyan]{pid}[/] in process tree", Icon.FAIL)


def snapshot_summary(process_count: int, skipped_count: int) -> None:
    """Log the size of the built snapshot."""
    if skipped_count > 0:
        info(f"[dim]Snapshot: {process_count} processes, {skipped_count} skipped[/]", Icon.OK)
    else:
        info(f"[dim]Snapshot: {process_count} processes[/]", Icon.OK)


# ─────────────────────────────────────────────────────────────────────────────
# Structlog Configuration
# ─────────────────────────────────────────────────────────────────────────────


def _add_source(source: str) -> structlog.types.Processor:
    """Create a processor that adds a source field to log events."""

    def processor(
        logger: structlog.types.WrappedLogger,
        method_name: str,
        event_dict: structlog.types.EventDict,
    ) -> structlog.types.EventDict:
        event_dict["source"] = source
        return event_dict

    return processor


def configure(verbose: bool = False) -> None:
    """Configure structlog to write key/value events to stderr.

    Debug events (process resolution, backend selection) are only shown
    with verbose; warnings and errors always pass.

    Args:
        verbose: Lower the threshold to DEBUG.
    """
    level = logging.DEBUG if verbose else logging.WARNING

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=False),
            foreign_pre_chain=[
                structlog.processors.TimeStamper(fmt="%H:%M:%S", utc=False),
                structlog.processors.add_log_level,
                _add_source("pree"),
                structlog.processors.format_exc_info,
            ],
        )
    )

    stdlib_root = logging.getLogger()
    stdlib_root.setLevel(level)
    stdlib_root.handlers.clear()
    stdlib_root.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S", utc=False),
            structlog.processors.add_log_level,
            _add_source("pree"),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

