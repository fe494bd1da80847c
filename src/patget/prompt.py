"""Interactive credential prompting.

:class:`Prompter` asks for the account login, the password (hidden via
:func:`getpass.getpass`), and an optional two-factor code. All prompts go
to stderr so that stdout stays reserved for the token.

Each field can be supplied non-interactively through an environment
variable (``PATGET_LOGIN``, ``PATGET_PASSWORD``, ``PATGET_OTP``), in which
case no prompt is shown for it.
"""

from __future__ import annotations

import getpass
import os
import sys
from typing import Optional

import typer
from pydantic import BaseModel, Field

from patget.exceptions import AuthError

ENV_LOGIN = "PATGET_LOGIN"
ENV_PASSWORD = "PATGET_PASSWORD"
ENV_OTP = "PATGET_OTP"


class Credentials(BaseModel):
    """Login credentials for basic auth against the authorizations API.

    ``otp`` is the one-time two-factor code; empty when the account has no
    two-factor authentication or the user skipped it.
    """

    login: str
    password: str = Field(repr=False)
    otp: str = Field(default="", repr=False)


class Prompter:
    """Collect credentials from the environment or the terminal."""

    def get_credentials(self) -> Credentials:
        """Return login, password, and two-factor code.

        Raises:
            AuthError: If a prompt is needed but stdin is not a TTY, or the
                login or password is empty.
        """
        login = os.environ.get(ENV_LOGIN)
        if login is None:
            self._require_tty()
            login = typer.prompt("Username", err=True)
        login = login.strip()
        if not login:
            raise AuthError("No username provided")

        password = os.environ.get(ENV_PASSWORD)
        if password is None:
            self._require_tty()
            password = getpass.getpass("Password: ")
        password = password.strip()
        if not password:
            raise AuthError("No password provided")

        otp = os.environ.get(ENV_OTP)
        if otp is None:
            self._require_tty()
            otp = typer.prompt(
                "Two Factor Auth", default="", show_default=False, err=True
            )

        return Credentials(login=login, password=password, otp=otp.strip())

    def get_otp(self, delivery: Optional[str] = None) -> str:
        """Prompt for a two-factor code after the API demanded one.

        Args:
            delivery: How the code was sent (``sms``, ``app``), if known.

        Raises:
            AuthError: If stdin is not a TTY or no code is entered.
        """
        self._require_tty(
            "The API requires a two-factor code; set PATGET_OTP or run interactively"
        )
        label = "Two Factor Auth"
        if delivery:
            label = f"Two Factor Auth (sent via {delivery})"
        otp = typer.prompt(label, err=True).strip()
        if not otp:
            raise AuthError("No two-factor code provided")
        return otp

    def _require_tty(self, message: Optional[str] = None) -> None:
        if not sys.stdin.isatty():
            raise AuthError(
                message
                or "Prompting for credentials requires an interactive terminal "
                f"(stdin must be a TTY); set {ENV_LOGIN} and {ENV_PASSWORD} instead"
            )
