"""Token resolution: local cache, then remote find, then remote create.

:func:`get_token` is the main entry point. It returns the cached token for
an application when one exists. Otherwise :func:`fetch_access_token`
prompts for credentials, looks for an existing authorization labelled for
the application, and creates a new one if none is usable. The resulting
token is written back to the cache.

Two-factor challenges are handled along the way: a code entered up front is
sent with every request, and a ``401`` demanding a code when none was
entered leads to a single follow-up prompt.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Callable, Optional, TypeVar

import httpx

from patget.client import ACCEPT, AuthorizationsClient, TokenAuth
from patget.config import resolve_settings
from patget.exceptions import AuthError, InvalidUsageError, TwoFactorRequiredError
from patget.models import Settings
from patget.output import get_output
from patget.prompt import Prompter
from patget.token_cache import TokenCache

T = TypeVar("T")


def get_token(
    app_name: str,
    scopes: Iterable[str],
    settings: Optional[Settings] = None,
    prompter: Optional[Prompter] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> str:
    """Return an access token for *app_name*, from cache or from the API.

    Args:
        app_name: Label identifying the application. Also names the cache
            file (``.<app_name lowercased>.conf``).
        scopes: Permission scopes requested when a new token is created.
        settings: Effective settings; resolved from config and environment
            when omitted.
        prompter: Credential source; defaults to an interactive
            :class:`~patget.prompt.Prompter`.
        transport: Optional httpx transport for the API calls.

    Returns:
        The access token string.

    Raises:
        AuthError: If credentials are missing or rejected.
        PatgetError: For any other API or network failure.
    """
    settings = settings or resolve_settings()
    output = get_output()
    cache = TokenCache(app_name, settings.cache_dir)

    token = cache.load()
    if token is not None:
        output.debug(f"Using cached token from {cache.path}")
        return token

    token = fetch_access_token(app_name, scopes, settings, prompter, transport)

    try:
        cache.save(token)
    except OSError as exc:
        output.warning(f"Could not write token cache {cache.path}: {exc}")
    else:
        output.debug(f"Cached token at {cache.path}")
    return token


def fetch_access_token(
    app_name: str,
    scopes: Iterable[str],
    settings: Optional[Settings] = None,
    prompter: Optional[Prompter] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> str:
    """Obtain a token from the API, ignoring the local cache.

    Prompts for credentials, then returns the token of an existing
    authorization labelled for *app_name*, or creates a new authorization
    with *scopes*.
    """
    if not app_name or not app_name.strip():
        raise InvalidUsageError("Application name must not be empty")

    settings = settings or resolve_settings()
    prompter = prompter or Prompter()
    scopes = list(scopes)
    output = get_output()

    credentials = prompter.get_credentials()

    with AuthorizationsClient(
        settings,
        credentials.login,
        credentials.password,
        otp=credentials.otp,
        transport=transport,
    ) as client:
        if credentials.otp:
            client.trigger_two_factor()

        token = _with_two_factor(client, prompter, lambda: client.find_token(app_name))
        if token:
            output.info(f"Using existing access token for '{app_name}'.")
            return token

        token = _with_two_factor(
            client, prompter, lambda: client.create_token(app_name, scopes)
        )
        output.success(f"Created access token for '{app_name}'.")
        return token


def _with_two_factor(
    client: AuthorizationsClient,
    prompter: Prompter,
    call: Callable[[], T],
) -> T:
    """Run *call*, answering one two-factor challenge by prompting for a code."""
    try:
        return call()
    except TwoFactorRequiredError as exc:
        if client.otp:
            raise AuthError(f"Two-factor code was rejected: {exc}") from exc
        client.otp = prompter.get_otp(exc.delivery)
        return call()


def create_client(
    app_name: str,
    scopes: Iterable[str],
    settings: Optional[Settings] = None,
    prompter: Optional[Prompter] = None,
) -> httpx.Client:
    """Return an :class:`httpx.Client` authenticated with the token for *app_name*.

    The client is bound to the configured API URL, so callers can use
    relative paths::

        with create_client("myapp", ["repo"]) as client:
            client.get("/user/repos")
    """
    settings = settings or resolve_settings()
    token = get_token(app_name, scopes, settings=settings, prompter=prompter)
    return httpx.Client(
        base_url=settings.api_url,
        auth=TokenAuth(token),
        headers={"Accept": ACCEPT, "User-Agent": settings.user_agent},
        timeout=settings.timeout,
        verify=settings.verify_ssl,
        follow_redirects=True,
    )
