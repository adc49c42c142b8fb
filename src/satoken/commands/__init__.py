"""Built-in CLI commands for satoken.

Each module defines one command or sub-command group, registered on the
root Typer app in :func:`satoken.app.main`:

- :mod:`~satoken.commands.token` -- ``token``, ``header``, ``assertion``, ``inspect``
- :mod:`~satoken.commands.request` -- ``request``
- :mod:`~satoken.commands.config` -- ``config show|set|path``
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import typer

from satoken.exceptions import SatokenError
from satoken.models import GlobalConfig
from satoken.output import error


def settings_from_context(ctx: typer.Context) -> GlobalConfig:
    """Resolve the effective config using the root callback's CLI flags."""
    from satoken.config import resolve_config

    obj = ctx.obj or {}
    return resolve_config(
        cli_credentials=obj.get("credentials"),
        cli_scope=obj.get("scope"),
        cli_timeout=obj.get("timeout"),
    )


@contextmanager
def handle_errors() -> Iterator[None]:
    """Turn a :class:`SatokenError` into an error line and its exit code."""
    try:
        yield
    except SatokenError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
