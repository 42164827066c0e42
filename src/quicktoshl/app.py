"""Typer application and CLI entry point for quicktoshl.

This module builds the root Typer application, registers the built-in
commands and installs the global output manager and log handler in
:func:`main_callback`.

:func:`main` is the console-script entry point declared in
``pyproject.toml``. :class:`~quicktoshl.exceptions.QuickToshlError` is
reported on stderr and mapped to its exit code; anything else is written
to a crash log under the data directory.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from quicktoshl import __version__
from quicktoshl.commands.config import config_app
from quicktoshl.commands.entries import (
    add_expense_command,
    add_transfer_command,
    delete_command,
    recent_command,
    search_command,
)
from quicktoshl.commands.reference import (
    accounts_command,
    categories_command,
    currencies_command,
    tags_command,
)
from quicktoshl.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="quicktoshl",
    help="Record and search Toshl Finance entries from the terminal.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("categories")(categories_command)
app.command("tags")(tags_command)
app.command("accounts")(accounts_command)
app.command("currencies")(currencies_command)
app.command("recent")(recent_command)
app.command("search")(search_command)
app.command("add-expense")(add_expense_command)
app.command("add-transfer")(add_transfer_command)
app.command("delete")(delete_command)
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"quicktoshl {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool, quiet: bool, no_color: bool) -> None:
    """Route the package's log records to stderr through Rich."""
    logger = logging.getLogger("quicktoshl")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = RichHandler(
        console=Console(stderr=True, no_color=no_color),
        show_time=False,
        show_path=False,
    )
    logger.addHandler(handler)
    logger.propagate = False
    if verbose:
        logger.setLevel(logging.DEBUG)
    elif quiet:
        logger.setLevel(logging.ERROR)
    else:
        logger.setLevel(logging.WARNING)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmations."),
    force_refresh: bool = typer.Option(
        False, "--force-refresh", help="Start with an empty reference-data cache."
    ),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Override the API base URL."),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~quicktoshl.output.OutputManager` and log
    handler, and stores shared options in ``ctx.obj`` for
    :mod:`quicktoshl.commands.session`.
    """
    from quicktoshl.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose, quiet, no_color)

    ctx.ensure_object(dict)
    ctx.obj["force"] = force
    ctx.obj["force_refresh"] = force_refresh
    ctx.obj["base_url"] = base_url
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: BaseException) -> Path:
    """Save the command line and traceback under ``<data dir>/logs``."""
    from quicktoshl.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    lines = [
        f"quicktoshl {__version__}\n",
        f"argv: {' '.join(sys.argv)}\n\n",
        *traceback.format_exception(type(exc), exc, exc.__traceback__),
    ]
    log_path.write_text("".join(lines), encoding="utf-8")
    return log_path


def main() -> None:
    """Console-script entry point; always ends in :class:`SystemExit`."""
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        handle_exception(exc)


def handle_exception(exc: Exception) -> None:
    """Report *exc* on stderr and exit with its code.

    Known failures print their title and message. Anything else is a bug:
    the traceback goes to a crash log and the exit code is 1.
    """
    from quicktoshl.exceptions import QuickToshlError
    from quicktoshl.output import error

    if isinstance(exc, QuickToshlError):
        error(str(exc), title=exc.title)
        sys.exit(exc.exit_code)

    error(f"Unexpected error. Debug log: {_write_crash_log(exc)}")
    sys.exit(EXIT_GENERIC_FAILURE)
