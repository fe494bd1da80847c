"""Token commands -- resolve, locate, and forget the cached access token.

Typical workflow::

    patget token myapp --scope repo --scope gist   # prints the token
    patget path myapp                              # ~/.myapp.conf
    patget clear myapp                             # forget the local copy
"""

from __future__ import annotations

from typing import Optional

import typer

from patget.output import info, print_data, success, suggest


def token_command(
    app_name: str = typer.Argument(help="Application name the token is labelled with."),
    scopes: Optional[list[str]] = typer.Option(
        None, "--scope", "-s", help="Permission scope to request (repeatable)."
    ),
    api_url: Optional[str] = typer.Option(
        None, "--api-url", help="Base URL of the API (overrides PATGET_API_URL)."
    ),
    cache_dir: Optional[str] = typer.Option(
        None, "--cache-dir", help="Directory holding the token file (default: home)."
    ),
) -> None:
    """Print an access token for APP_NAME.

    Reads the cached token if there is one. Otherwise prompts for
    username, password and two-factor code, reuses an existing token
    labelled APP_NAME or creates a new one with the requested scopes,
    and caches it.

    Example::

        export GITHUB_TOKEN=$(patget token myapp -s repo)
    """
    from patget.config import resolve_settings
    from patget.resolver import get_token

    settings = resolve_settings(cli_api_url=api_url, cli_cache_dir=cache_dir)
    token = get_token(app_name, scopes or [], settings=settings)
    print_data(token)


def path_command(
    app_name: str = typer.Argument(help="Application name."),
    cache_dir: Optional[str] = typer.Option(
        None, "--cache-dir", help="Directory holding the token file (default: home)."
    ),
) -> None:
    """Print the path of the token file for APP_NAME."""
    from patget.config import resolve_settings
    from patget.token_cache import TokenCache

    settings = resolve_settings(cli_cache_dir=cache_dir)
    cache = TokenCache(app_name, settings.cache_dir)
    print_data(str(cache.path))
    if not cache.exists():
        info("No token cached yet.")
        suggest(f"Fetch one: patget token {app_name}")


def clear_command(
    app_name: str = typer.Argument(help="Application name."),
    cache_dir: Optional[str] = typer.Option(
        None, "--cache-dir", help="Directory holding the token file (default: home)."
    ),
) -> None:
    """Delete the cached token file for APP_NAME.

    The token itself stays valid on the server; only the local copy is
    removed, so the next ``patget token`` run prompts again.
    """
    from patget.config import resolve_settings
    from patget.token_cache import TokenCache

    settings = resolve_settings(cli_cache_dir=cache_dir)
    cache = TokenCache(app_name, settings.cache_dir)
    if cache.clear():
        success(f"Removed {cache.path}")
    else:
        info(f"No cached token at {cache.path}")
