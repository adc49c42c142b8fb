"""Typer application and CLI entry point for satoken.

This module wires together the top-level Typer application and registers
the built-in commands (``token``, ``header``, ``assertion``, ``inspect``,
``request``, ``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It loads ``./.env``, installs signal handlers and
invokes the Typer app. Unhandled exceptions are written to a crash log
under the data directory.

See Also:
    :mod:`satoken.config`: Configuration and credential resolution.
    :mod:`satoken.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer
from rich.logging import RichHandler

from satoken import __version__
from satoken.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="satoken",
    help="Fetch and cache OAuth2 access tokens for service accounts.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"satoken {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool, console: Any) -> None:
    """Send library log records to stderr through Rich.

    ``--verbose`` shows DEBUG records (cache hits, refreshes); otherwise only
    warnings and errors are shown.
    """
    handler = RichHandler(console=console, show_path=False, show_time=verbose)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )
    # httpx logs every request at INFO; keep it out of normal output
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


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
    credentials: Optional[str] = typer.Option(
        None, "--credentials", "-c", help="Key file path, file:/path, or env:VAR."
    ),
    scope: Optional[str] = typer.Option(
        None, "--scope", help="OAuth scope(s) to request, space-separated."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Token endpoint timeout in seconds."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~satoken.output.OutputManager` and
    logging from CLI flags, and stores the credential overrides in
    ``ctx.obj`` for :func:`~satoken.commands.settings_from_context`.
    """
    from satoken.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet)
    set_output(output)
    _configure_logging(verbose, output.stderr_console)

    ctx.ensure_object(dict)
    ctx.obj["credentials"] = credentials
    ctx.obj["scope"] = scope
    ctx.obj["timeout"] = timeout


def _register_commands() -> None:
    from satoken.commands.config import config_app
    from satoken.commands.request import request_command
    from satoken.commands.token import (
        assertion_command,
        header_command,
        inspect_command,
        token_command,
    )

    app.command("token")(token_command)
    app.command("header")(header_command)
    app.command("assertion")(assertion_command)
    app.command("inspect")(inspect_command)
    app.command("request")(request_command)
    app.add_typer(config_app, name="config", help="Configuration management.")


_register_commands()


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from satoken.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``satoken`` console script.

    Loads ``./.env`` into the environment (existing variables win), installs
    signal handlers and invokes the Typer application.  A
    :class:`~satoken.exceptions.SatokenError` escaping a command exits with
    its ``exit_code``; any other exception produces a crash log and a
    generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    from satoken.config import load_dotenv

    _setup_signal_handlers()
    try:
        load_dotenv()
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from satoken.exceptions import SatokenError
        from satoken.output import error

        if isinstance(exc, SatokenError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
