"""Terminal output for the specnorm CLI.

Normalized documents and endpoint tables go to stdout (or the ``--output``
file); every diagnostic goes to stderr, so ``specnorm --json normalize ...``
can be piped straight into ``jq``.  Rich rendering is used only when stdout
is a terminal and colour is allowed (``NO_COLOR``, ``TERM=dumb`` and
``--no-color`` all turn it off).

Library code never prints.  It logs, and :class:`OutputLogHandler` forwards
those records to the installed :class:`OutputManager`.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How stdout data is rendered; ``AUTO`` picks ``RICH`` or ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


def resolve_format(requested: OutputFormat, no_color: bool) -> OutputFormat:
    """Turn ``AUTO`` into a concrete format for the current stdout."""
    if requested is not OutputFormat.AUTO:
        return requested
    if _stdout_is_terminal() and not no_color:
        return OutputFormat.RICH
    return OutputFormat.PLAIN


class OutputManager:
    """Renders normalization results and diagnostics for one CLI invocation.

    Args:
        format: Requested stdout format.
        no_color: Disable colour even on a terminal.
        quiet: Hide success messages.
        verbose: Show debug messages.
        output_file: Append stdout data to this file instead.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
        output_file: Optional[str] = None,
    ) -> None:
        self._plain_stderr = no_color or _color_disabled_by_env()
        self._format = resolve_format(format, self._plain_stderr)
        self._quiet = quiet
        self._verbose = verbose
        self._output_file = output_file
        self._console = Console(
            file=sys.stdout,
            no_color=self._plain_stderr,
            force_terminal=self._format is OutputFormat.RICH,
        )
        self._err_console = Console(file=sys.stderr, no_color=self._plain_stderr, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    def print_document(self, data: Any) -> None:
        """Write a normalized document as JSON, highlighted in rich mode."""
        text = json.dumps(data, indent=2, ensure_ascii=False)
        if self._format is OutputFormat.RICH and not self._output_file:
            self._console.print(Syntax(text, "json", word_wrap=True))
            return
        self.print_data(text)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows as JSON records, tab-separated lines or a rich table."""
        if self._format is OutputFormat.JSON:
            self.print_data(json.dumps([dict(zip(headers, row)) for row in rows], indent=2))
        elif self._format is OutputFormat.PLAIN:
            self.print_data("\n".join("\t".join(line) for line in [headers, *rows]))
        else:
            table = Table(*headers, title=title, header_style="bold cyan")
            for row in rows:
                table.add_row(*row)
            self._console.print(table)

    def print_data(self, text: str) -> None:
        if not text.endswith("\n"):
            text += "\n"
        if self._output_file:
            with open(self._output_file, "a", encoding="utf-8") as handle:
                handle.write(text)
        else:
            sys.stdout.write(text)
            sys.stdout.flush()

    def success(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic("", "green", message)

    def warning(self, message: str) -> None:
        self._diagnostic("Warning: ", "yellow", message)

    def error(self, message: str) -> None:
        self._diagnostic("Error: ", "bold red", message)

    def debug(self, message: str) -> None:
        if self._verbose:
            self._diagnostic("debug: ", "dim", message)

    def _diagnostic(self, prefix: str, style: str, message: str) -> None:
        if self._plain_stderr:
            sys.stderr.write(f"{prefix}{message}\n")
            sys.stderr.flush()
        else:
            self._err_console.print(f"[{style}]{escape(prefix + message)}[/{style}]")


class OutputLogHandler(logging.Handler):
    """Forward ``specnorm`` log records to whichever manager is installed."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
        except Exception:  # noqa: BLE001
            self.handleError(record)
            return
        output = get_output()
        if record.levelno >= logging.ERROR:
            output.error(message)
        elif record.levelno >= logging.WARNING:
            output.warning(message)
        else:
            output.debug(message)


def _stdout_is_terminal() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _color_disabled_by_env() -> bool:
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, creating a default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None
