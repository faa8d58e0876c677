"""Terminal output for the spectool CLI.

Two streams, two jobs:

* **stdout** carries the product of a command -- a tool specification, a
  table of tools, a config dump -- and nothing else, so it can be piped into
  ``jq`` or redirected to a file.
* **stderr** carries everything addressed to the person at the terminal:
  progress notes, reference warnings, errors and hints.

:class:`OutputManager` owns both Rich consoles and the ``--json`` /
``--plain`` / ``--no-color`` / ``--quiet`` / ``--verbose`` switches. The root
callback in :mod:`spectool.app` builds one and installs it with
:func:`set_output`; commands then call the module-level helpers
(:func:`info`, :func:`warning`, :func:`print_table` ...).

Library code under :mod:`spectool.parser` and :mod:`spectool.synthesis`
never imports this module. It logs through :mod:`logging`, and
:func:`configure_logging` sends those records to stderr at a level that
follows the same flags.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How structured data is rendered on stdout.

    ``AUTO`` becomes ``RICH`` on an interactive, colour-capable terminal and
    ``PLAIN`` everywhere else.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


# (prefix, Rich style) per diagnostic level
_LEVELS: dict[str, tuple[str, str]] = {
    "info": ("", ""),
    "success": ("", "green"),
    "warning": ("Warning: ", "yellow"),
    "error": ("Error: ", "bold red"),
    "suggest": ("→ ", "dim"),
    "debug": ("[debug] ", "dim"),
}

# Levels that --quiet silences; warnings and errors always get through.
_CHATTY = frozenset({"info", "success", "suggest"})


class OutputManager:
    """Route command output to stdout and diagnostics to stderr.

    Args:
        format: Rendering for structured data; ``AUTO`` is resolved here.
        no_color: Turn off colour and markup (also implied by ``NO_COLOR``
            or ``TERM=dumb``).
        quiet: Drop informational diagnostics.
        verbose: Show debug diagnostics.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            rich_ok = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # --- stdout ---

    def print_data(self, text: str) -> None:
        """Write *text* to stdout unchanged."""
        print(text, file=sys.stdout, flush=True)

    def format_response(self, data: Any) -> None:
        """Render a dict, list or scalar on stdout in the active format."""
        if self._format == OutputFormat.JSON:
            if isinstance(data, str):
                try:
                    data = json.loads(data)
                except json.JSONDecodeError:
                    self.print_data(data)
                    return
            self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        elif self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self.print_data(line)
        elif isinstance(data, (dict, list)):
            text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
            self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(str(data))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Render rows as a Rich table, JSON records, or tab-separated lines."""
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
            return

        if self._format == OutputFormat.PLAIN:
            for row in [headers, *rows]:
                self.print_data("\t".join(row))
            return

        table = Table(title=title, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # --- stderr ---

    def _emit(self, level: str, message: str) -> None:
        if level in _CHATTY and self._quiet:
            return
        if level == "debug" and not self._verbose:
            return

        prefix, style = _LEVELS[level]
        if self._no_color:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
        elif level in ("warning", "error"):
            self._stderr.print(f"[{style}]{prefix.rstrip()}[/{style}] {message}")
        elif style:
            self._stderr.print(f"[{style}]{prefix}{message}[/{style}]")
        else:
            self._stderr.print(message)

    def info(self, message: str) -> None:
        self._emit("info", message)

    def success(self, message: str) -> None:
        self._emit("success", message)

    def warning(self, message: str) -> None:
        self._emit("warning", message)

    def error(self, message: str) -> None:
        self._emit("error", message)

    def suggest(self, message: str) -> None:
        """Print a next-step hint, e.g. a command the user may want to run."""
        self._emit("suggest", message)

    def debug(self, message: str) -> None:
        self._emit("debug", message)


def _plain_lines(data: Any) -> list[str]:
    """Flatten *data* into tab-separated lines for ``--plain``."""
    if isinstance(data, dict):
        return [f"{key}\t{value}" for key, value in data.items()]
    if isinstance(data, list):
        return [
            "\t".join(str(v) for v in item.values()) if isinstance(item, dict) else str(item)
            for item in data
        ]
    return [str(data)]


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` (any value, even empty) or ``TERM=dumb`` disables colour."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Send library log records to stderr at a level matching the CLI flags."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


# --- process-wide instance ---

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one if needed."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (tests swap stdout/stderr between runs)."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_data(text: str) -> None:
    get_output().print_data(text)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
