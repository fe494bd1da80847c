"""patget -- obtain and cache a personal API access token.

Given an application name and a set of permission scopes, patget returns an
access token for a GitHub-compatible ``/authorizations`` API. The token is
read from a local cache file when one exists; otherwise the user is prompted
for credentials (with optional two-factor code), an existing token labelled
for the application is looked up remotely, and a new one is created as a
last resort. The result is cached for next time.

Typical usage::

    $ patget token myapp --scope repo --scope gist

    from patget import create_client
    client = create_client("myapp", ["repo"])

Modules:
    app: Typer application and CLI entry point.
    resolver: Cache, find, create token resolution.
    client: HTTP client for the authorizations API.
    token_cache: Per-application plaintext token file.
    prompt: Interactive credential prompting.
    models: Pydantic models shared across the package.
    config: XDG-aware settings and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"

from patget.resolver import create_client, fetch_access_token, get_token  # noqa: E402

__all__ = ["create_client", "fetch_access_token", "get_token", "__version__"]
