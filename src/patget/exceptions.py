"""Exception hierarchy for patget.

All exceptions inherit from :class:`PatgetError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`patget.exit_codes`.
The top-level error handler in :func:`patget.app.main` catches
``PatgetError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    PatgetError (exit 1)
    +-- InvalidUsageError          (exit 2)
    +-- AuthError                  (exit 3)
    |   +-- TwoFactorRequiredError (exit 3)
    +-- NotFoundError              (exit 4)
    +-- ServerError                (exit 5)
    +-- ConnectionError_           (exit 6)
    +-- ConfigError                (exit 1)
"""

from __future__ import annotations

from patget.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class PatgetError(Exception):
    """Base exception for all patget errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`patget.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(PatgetError):
    """Raised for invalid CLI arguments (e.g. an empty application name)."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(PatgetError):
    """Raised when credentials are missing, rejected, or cannot be prompted for."""

    exit_code = EXIT_AUTH_FAILURE


class TwoFactorRequiredError(AuthError):
    """Raised when the API demands a one-time two-factor code.

    The service signals this with ``401`` and an
    ``X-GitHub-OTP: required; <delivery>`` header. ``delivery`` is the
    channel the code was sent through (``sms``, ``app``) when known.
    """

    def __init__(self, message: str, delivery: str | None = None):
        super().__init__(message)
        self.delivery = delivery


class NotFoundError(PatgetError):
    """Raised when the API returns HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ServerError(PatgetError):
    """Raised when the API returns an unexpected 4xx or a 5xx response."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(PatgetError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class ConfigError(PatgetError):
    """Raised for configuration problems (invalid JSON, unknown settings)."""

    exit_code = EXIT_GENERIC_FAILURE
