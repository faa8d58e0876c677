"""The ``spectool`` command line.

``app`` is the Typer application: a root callback for the global
presentation flags plus ``convert``, ``inspect`` and ``config``. ``main`` is
the console-script entry point; it turns stray :class:`SpectoolError`
exceptions into their exit status and leaves a crash log behind for
anything else.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any

import typer

from spectool import __version__
from spectool.commands.config import config_app
from spectool.commands.convert import convert_command
from spectool.commands.inspect import inspect_app
from spectool.config import get_data_dir, resolve_config
from spectool.exceptions import ConfigError, SpectoolError
from spectool.exit_codes import EXIT_GENERIC_FAILURE
from spectool.output import OutputFormat, OutputManager, configure_logging, error, set_output

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130

app = typer.Typer(
    name="spectool",
    help="Convert Swagger 2.0 / OpenAPI 3.x documents into tool specifications.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("convert")(convert_command)
app.add_typer(inspect_app, name="inspect", help="Preview what a conversion produces.")
app.add_typer(config_app, name="config", help="Show or change stored settings.")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"spectool {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True, help="Print the version and exit."
    ),
    json_output: bool = typer.Option(False, "--json", help="Render results as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Render results as tab-separated text."),
    no_color: bool = typer.Option(False, "--no-color", help="Never use colour or markup."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print data, warnings and errors."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Also print debug messages."),
) -> None:
    """Set up output and logging for the chosen subcommand."""
    configure_logging(verbose=verbose, quiet=quiet)
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = _configured_format()

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    ctx.obj = {"verbose": verbose, "quiet": quiet}


def _configured_format() -> OutputFormat:
    """The stored ``output.format``, or ``AUTO`` if the config cannot be read."""
    try:
        return OutputFormat(resolve_config().output.format)
    except ConfigError as exc:
        # Commands that need the config report the problem themselves.
        logger.debug("Using auto output format: %s", exc)
        return OutputFormat.AUTO


def _interrupted(signum: int, frame: Any) -> None:
    sys.stderr.write("\nCancelled.\n")
    sys.exit(EXIT_INTERRUPTED)


def _setup_signal_handlers() -> None:
    signal.signal(signal.SIGINT, _interrupted)


def _write_crash_log() -> Path:
    """Dump the traceback being handled to ``<data dir>/logs``."""
    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    path.write_text(traceback.format_exc(), encoding="utf-8")
    return path


def main() -> None:
    """Console-script entry point; always ends in :class:`SystemExit`."""
    _setup_signal_handlers()
    try:
        app()
    except KeyboardInterrupt:
        _interrupted(signal.SIGINT, None)
    except SpectoolError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Debug log: {_write_crash_log()}")
        sys.exit(EXIT_GENERIC_FAILURE)
