"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~patget.exceptions.PatgetError` subclass. Shell
wrappers can inspect the exit code to tell why a token could not be
obtained without parsing stderr.

Example::

    $ TOKEN=$(patget token myapp --scope repo)
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- login, password or two-factor code rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_AUTH_FAILURE = 3
"""Authentication failed or a two-factor code was required but missing."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The remote API rejected the request or returned an HTTP 5xx error."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_INTERRUPTED = 130
"""The user pressed Ctrl-C."""
