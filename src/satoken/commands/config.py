"""Config commands -- view and modify global configuration.

Provides the ``satoken config`` sub-command group for reading and updating
the user's global configuration file (:class:`~satoken.models.GlobalConfig`).
"""

from __future__ import annotations

import typer

from satoken.commands import handle_errors, settings_from_context
from satoken.output import error, format_response, info, print_data, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the effective configuration (file, environment, and flags merged).

    Example::

        satoken config show
        satoken --json config show
    """
    from satoken.config import get_config_dir

    with handle_errors():
        settings = settings_from_context(ctx)
    info(f"Config directory: {get_config_dir()}")
    format_response(settings.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key, e.g. 'timeout' or 'credentials'."),
    value: str = typer.Argument(help="Value to set; use 'null' to clear."),
) -> None:
    """Set a configuration value in the global config file.

    The value is validated against :class:`~satoken.models.GlobalConfig`
    before saving.

    Example::

        satoken config set credentials ~/keys/robot.json
        satoken config set refresh_margin 120
    """
    from pydantic import ValidationError

    from satoken.config import load_global_config, save_global_config
    from satoken.models import GlobalConfig

    with handle_errors():
        config = load_global_config()
    data = config.model_dump(mode="json")
    if key not in data:
        error(f"Invalid config key: {key}. Valid keys: {', '.join(sorted(data))}")
        raise typer.Exit(code=2)

    data[key] = None if value == "null" else value
    try:
        updated = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Invalid value for {key}: {exc.errors()[0]['msg']}")
        raise typer.Exit(code=2) from None

    save_global_config(updated)
    success(f"Set {key} = {value}")


@config_app.command("path")
def config_path() -> None:
    """Print the path of the global config file."""
    from satoken.config import get_config_dir

    print_data(str(get_config_dir() / "config.json"))
