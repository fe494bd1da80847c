"""Shared test fixtures for patget.

Provides isolated config/home directories, output state management, a
fake ``/authorizations`` API served through :class:`httpx.MockTransport`,
and a CLI runner. These fixtures are automatically discovered by pytest.
"""

from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Any, Optional

import httpx
import pytest

from patget.models import Settings
from patget.output import OutputManager, reset_output, set_output

API_URL = "https://api.example.com"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stderr at creation time.
    When Typer's CliRunner redirects the streams and the test finishes,
    the cached references become stale. Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration and the home directory to a temporary directory.

    Sets HOME, XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of
    tmp_path so that tests never touch real user files or tokens, and
    clears all PATGET_* environment variables.

    Returns:
        The tmp_path root directory.
    """
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "PATGET_API_URL",
        "PATGET_CACHE_DIR",
        "PATGET_LOGIN",
        "PATGET_PASSWORD",
        "PATGET_OTP",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at the fake API with a temporary cache directory."""
    cache_dir = tmp_path / "cache"
    cache_dir.mkdir(exist_ok=True)
    return Settings(api_url=API_URL, max_retries=0, cache_dir=str(cache_dir))


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet, colourless output manager for the test."""
    output = OutputManager(no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Fake authorizations API
# ---------------------------------------------------------------------------


def make_authorization(
    id: int,
    note: Optional[str] = None,
    token: str = "",
    app_name: Optional[str] = None,
    scopes: Optional[list[str]] = None,
) -> dict[str, Any]:
    """Build an authorization payload as the API returns it."""
    return {
        "id": id,
        "url": f"{API_URL}/authorizations/{id}",
        "scopes": scopes or [],
        "token": token,
        "app": {"name": app_name or (f"{note} (API)" if note else "Some App")},
        "note": note,
        "note_url": None,
        "created_at": "2014-01-01T00:00:00Z",
        "updated_at": "2014-01-01T00:00:00Z",
    }


class FakeAuthorizationsAPI:
    """In-memory ``/authorizations`` endpoint for :class:`httpx.MockTransport`.

    Attributes:
        pages: Authorization payloads per listing page.
        login / password: Accepted basic-auth credentials.
        otp: Required two-factor code, or ``None`` for no two-factor.
        delivery: Delivery channel reported in the OTP challenge.
        otp_methods: HTTP methods that demand the two-factor code.
        list_status: Status for listing requests (e.g. 404).
        create_status: Status for creation requests.
        create_token: Token returned by a successful creation.
        requests: Every request received, in order.
        created: Parsed JSON bodies of creation requests.
    """

    def __init__(self) -> None:
        self.pages: list[list[dict[str, Any]]] = [[]]
        self.login = "octocat"
        self.password = "secret"
        self.otp: Optional[str] = None
        self.delivery = "sms"
        self.otp_methods = {"GET", "POST"}
        self.list_status = 200
        self.create_status = 201
        self.create_token = "new-token"
        self.requests: list[httpx.Request] = []
        self.created: list[dict[str, Any]] = []

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        userpass = f"{self.login}:{self.password}".encode()
        expected_header = "Basic " + base64.b64encode(userpass).decode()
        if request.headers.get("Authorization") != expected_header:
            return httpx.Response(401, json={"message": "Bad credentials"})

        if (
            self.otp is not None
            and request.method in self.otp_methods
            and request.headers.get("X-GitHub-OTP") != self.otp
        ):
            return httpx.Response(
                401,
                headers={"X-GitHub-OTP": f"required; {self.delivery}"},
                json={"message": "Must specify two-factor authentication OTP code."},
            )

        if request.url.path != "/authorizations":
            return httpx.Response(404, json={"message": "Not Found"})

        if request.method == "GET":
            return self._list(request)
        if request.method == "POST":
            return self._create(request)
        return httpx.Response(405, json={"message": "Method Not Allowed"})

    def _list(self, request: httpx.Request) -> httpx.Response:
        if self.list_status != 200:
            return httpx.Response(self.list_status, json={"message": "Not Found"})
        page = int(request.url.params.get("page", "1"))
        headers = {}
        if page < len(self.pages):
            headers["Link"] = (
                f'<{API_URL}/authorizations?per_page=100&page={page + 1}>; rel="next", '
                f'<{API_URL}/authorizations?per_page=100&page={len(self.pages)}>; rel="last"'
            )
        return httpx.Response(200, json=self.pages[page - 1], headers=headers)

    def _create(self, request: httpx.Request) -> httpx.Response:
        if not request.content:
            return httpx.Response(422, json={"message": "Invalid request."})
        body = json.loads(request.content)
        self.created.append(body)
        if self.create_status != 201:
            return httpx.Response(
                self.create_status,
                json={
                    "message": "Validation Failed",
                    "errors": [
                        {"resource": "OauthAccess", "code": "already_exists", "field": "description"}
                    ],
                },
            )
        return httpx.Response(
            201,
            json=make_authorization(
                99, note=body["note"], token=self.create_token, scopes=body["scopes"]
            ),
        )


@pytest.fixture
def fake_api() -> FakeAuthorizationsAPI:
    """A fresh fake authorizations API with no existing tokens."""
    return FakeAuthorizationsAPI()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
