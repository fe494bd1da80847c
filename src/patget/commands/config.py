"""Config commands -- view and modify settings.

Provides the ``patget config`` sub-command group for reading and updating
the user's settings file (:class:`~patget.models.Settings`).
"""

from __future__ import annotations

import typer

from patget.output import error, info, print_json, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the effective settings.

    Prints the settings file location to stderr and the settings, with
    environment overrides applied, as JSON to stdout.

    Example::

        patget config show
    """
    from patget.config import resolve_settings, settings_path

    settings = resolve_settings()
    info(f"Settings file: {settings_path()}")
    print_json(settings.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Setting name, e.g. 'api_url'."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a setting and save it.

    The value is coerced to the setting's type and validated against
    :class:`~patget.models.Settings` before saving.

    Raises:
        typer.Exit: With code 2 if the key is unknown or the value invalid.

    Example::

        patget config set api_url https://github.example.com/api/v3
        patget config set max_retries 0
    """
    from patget.config import update_setting
    from patget.exceptions import ConfigError

    try:
        update_setting(key, value)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=2) from None
    success(f"Set {key} = {value}")
