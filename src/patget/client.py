"""HTTP client for the ``/authorizations`` API.

This module provides :class:`AuthorizationsClient`, a thin wrapper around
:class:`httpx.Client` that authenticates with HTTP basic auth plus an
optional one-time two-factor code, and layers on:

- **Pagination** -- :meth:`~AuthorizationsClient.list_authorizations`
  follows ``Link: <...>; rel="next"`` headers across every page.
- **Retry with backoff** -- retries on 5xx and network errors with
  exponential delay (1 s, 2 s, 4 s, ...).
- **Error mapping** -- HTTP failures become typed
  :class:`~patget.exceptions.PatgetError` subclasses, including
  :class:`~patget.exceptions.TwoFactorRequiredError` for OTP challenges.

It also provides :class:`TokenAuth`, the :class:`httpx.Auth` used by
clients that call the API with the resolved token.
"""

from __future__ import annotations

import time
from collections.abc import Generator, Iterable, Iterator
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from patget.exceptions import (
    AuthError,
    ConnectionError_,
    InvalidUsageError,
    NotFoundError,
    PatgetError,
    ServerError,
    TwoFactorRequiredError,
)
from patget.models import Authorization, ErrorBody, Settings
from patget.output import get_output

AUTHORIZATIONS_PATH = "/authorizations"
OTP_HEADER = "X-GitHub-OTP"
ACCEPT = "application/vnd.github+json"
PAGE_SIZE = 100


class TokenAuth(httpx.Auth):
    """Send ``Authorization: token <token>`` on every request.

    Example::

        client = httpx.Client(auth=TokenAuth("ghp_abc123"))
    """

    def __init__(self, token: str) -> None:
        self._token = token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"token {self._token}"
        yield request


class AuthorizationsClient:
    """Basic-auth client for listing and creating personal access tokens.

    Must be used as a context manager so that the underlying transport is
    properly opened and closed.

    Args:
        settings: API URL and request options.
        login: Account login for basic auth.
        password: Account password for basic auth.
        otp: One-time two-factor code. When non-empty it is sent in the
            ``X-GitHub-OTP`` header of every request except
            :meth:`trigger_two_factor`.
        transport: Optional httpx transport (tests pass an
            :class:`httpx.MockTransport`).

    Example::

        with AuthorizationsClient(settings, "octocat", "secret") as client:
            token = client.find_token("myapp") or client.create_token("myapp", ["repo"])
    """

    def __init__(
        self,
        settings: Settings,
        login: str,
        password: str,
        otp: str = "",
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._auth = httpx.BasicAuth(login, password)
        self._otp = otp
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @property
    def otp(self) -> str:
        """The two-factor code sent with requests (empty if none)."""
        return self._otp

    @otp.setter
    def otp(self, value: str) -> None:
        self._otp = value

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> AuthorizationsClient:
        kwargs: dict[str, Any] = {}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        self._client = httpx.Client(
            base_url=self._settings.api_url,
            auth=self._auth,
            headers={"Accept": ACCEPT, "User-Agent": self._settings.user_agent},
            timeout=self._settings.timeout,
            verify=self._settings.verify_ssl,
            follow_redirects=True,
            **kwargs,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Authorizations API
    # ------------------------------------------------------------------ #

    def list_authorizations(self) -> Iterator[Authorization]:
        """Yield every authorization of the account, page by page.

        The first page is requested from ``/authorizations``; subsequent
        pages come from the ``rel="next"`` link of the previous response.
        The last page (the one without a next link) is yielded too.

        Raises:
            PatgetError: On any non-2xx response or network failure.
        """
        url: Optional[str] = AUTHORIZATIONS_PATH
        params: Optional[dict[str, Any]] = {"per_page": PAGE_SIZE}
        seen: set[str] = set()

        while url is not None:
            response = self.request("GET", url, params=params)
            for item in _json_list(response):
                try:
                    yield Authorization.model_validate(item)
                except ValidationError as exc:
                    get_output().debug(f"Skipping malformed authorization: {exc}")

            seen.add(str(response.request.url))
            next_url = response.links.get("next", {}).get("url")
            if next_url and next_url in seen:
                get_output().debug(f"Pagination loop detected at {next_url}")
                next_url = None
            elif next_url and not self._is_same_origin(next_url):
                get_output().debug(f"Not following next link to another host: {next_url}")
                next_url = None
            url = next_url
            # The next link already carries the query string.
            params = None

    def find_token(self, app_name: str) -> Optional[str]:
        """Return the token of an existing authorization labelled for *app_name*.

        Authorizations that match but carry no token (the service no
        longer reveals it) are skipped. A ``404`` from the listing
        endpoint means the service does not offer listing and is treated
        as "not found".

        Returns:
            The token string, or ``None`` if no usable match exists.
        """
        output = get_output()
        try:
            for authorization in self.list_authorizations():
                if not authorization.is_labelled_for(app_name):
                    continue
                if authorization.token:
                    output.debug(
                        f"Found existing authorization {authorization.id} for '{app_name}'"
                    )
                    return authorization.token
                output.debug(
                    f"Authorization {authorization.id} matches '{app_name}' "
                    "but its token is not retrievable"
                )
        except NotFoundError:
            output.debug("Authorization listing is not available on this API")
        return None

    def create_token(self, app_name: str, scopes: Iterable[str]) -> str:
        """Create a new authorization labelled *app_name* and return its token.

        Raises:
            ServerError: If the API answers with anything but ``201 Created``
                or the response carries no token.
            AuthError: On ``401``/``403``.
        """
        payload = {"scopes": list(scopes), "note": app_name}
        response = self.request("POST", AUTHORIZATIONS_PATH, json_body=payload)
        if response.status_code != 201:
            msg = _error_message(response)
            detail = f": {msg}" if msg else ""
            raise ServerError(
                f"Failed to create access token: unexpected status {response.status_code}{detail}"
            )
        try:
            authorization = Authorization.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ServerError(f"Failed to create access token: invalid response ({exc})") from exc
        if not authorization.token:
            raise ServerError("Failed to create access token: response carried no token")
        get_output().debug(f"Created authorization {authorization.id} for '{app_name}'")
        return authorization.token

    def trigger_two_factor(self) -> None:
        """Send a request without the OTP header so the service delivers a code.

        Accounts using SMS two-factor only receive a code after an
        authenticated request is made. The outcome of this request is
        ignored, including connection failures.
        """
        try:
            self.request("POST", AUTHORIZATIONS_PATH, include_otp=False, retry=False)
        except PatgetError as exc:
            get_output().debug(f"Two-factor trigger request answered: {exc}")

    # ------------------------------------------------------------------ #
    # Low-level request
    # ------------------------------------------------------------------ #

    def request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[Any] = None,
        include_otp: bool = True,
        retry: bool = True,
    ) -> httpx.Response:
        """Send a request with retry and error mapping.

        Args:
            method: HTTP method.
            url: Path relative to the API URL, or an absolute URL.
            params: Query parameters.
            json_body: JSON-serialisable body.
            include_otp: Whether to send the two-factor header.
            retry: Whether to retry on 5xx and network errors.

        Returns:
            The successful :class:`httpx.Response`.

        Raises:
            TwoFactorRequiredError: On 401 with an OTP-required header.
            AuthError: On other 401 / 403 responses.
            NotFoundError: On 404.
            ServerError: On other 4xx, or 5xx after all retries.
            ConnectionError_: On network / timeout errors after all retries.
            InvalidUsageError: If the API URL is not a usable http(s) URL.
        """
        headers: dict[str, str] = {}
        if include_otp and self._otp:
            headers[OTP_HEADER] = self._otp

        get_output().debug(f"{method} {url}")
        response = self._execute_with_retry(
            method, url, headers, params, json_body,
            max_retries=self._settings.max_retries if retry else 0,
        )
        self._map_response_error(response)
        return response

    def _execute_with_retry(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        params: Optional[dict[str, Any]],
        json_body: Any,
        max_retries: int,
    ) -> httpx.Response:
        """Execute the HTTP request with exponential-backoff retry.

        Retries on 5xx status codes and connection / timeout errors up to
        *max_retries* times. The delay doubles each attempt: 1 s, 2 s, 4 s, ...
        """
        assert self._client is not None, "Client not initialised -- use as context manager"

        output = get_output()
        for attempt in range(max_retries + 1):
            try:
                kwargs: dict[str, Any] = {"headers": headers}
                if params is not None:
                    kwargs["params"] = params
                if json_body is not None:
                    kwargs["json"] = json_body
                response = self._client.request(method, url, **kwargs)
            except httpx.UnsupportedProtocol as exc:
                raise InvalidUsageError(
                    f"Invalid API URL '{self._settings.api_url}': {exc}"
                ) from exc
            except httpx.InvalidURL as exc:
                raise InvalidUsageError(f"Invalid request URL '{url}': {exc}") from exc
            except httpx.TransportError as exc:
                if attempt < max_retries:
                    delay = 2 ** attempt
                    output.debug(
                        f"Connection error: {exc}, retrying in {delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(delay)
                    continue
                raise ConnectionError_(
                    f"Connection failed after {attempt + 1} attempts: {exc}"
                ) from exc

            if response.status_code >= 500 and attempt < max_retries:
                delay = 2 ** attempt
                output.debug(
                    f"Server error {response.status_code}, retrying in {delay}s "
                    f"(attempt {attempt + 1}/{max_retries})"
                )
                time.sleep(delay)
                continue
            return response

        raise ServerError("Request failed after all retries")  # pragma: no cover

    def _is_same_origin(self, url: str) -> bool:
        """Return ``True`` if *url* has the scheme and host of the API URL."""
        target = httpx.URL(url)
        if target.is_relative_url:
            return True
        base = httpx.URL(self._settings.api_url)
        return (target.scheme, target.host, target.port) == (base.scheme, base.host, base.port)

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return

        msg = _error_message(response)
        full_msg = f"HTTP {status}: {msg}" if msg else f"HTTP {status}"

        if status == 401:
            otp_header = response.headers.get(OTP_HEADER, "")
            if otp_header.lower().startswith("required"):
                _, _, delivery = otp_header.partition(";")
                raise TwoFactorRequiredError(
                    f"Two-factor code required ({full_msg})",
                    delivery=delivery.strip() or None,
                )
        if status in (401, 403):
            raise AuthError(full_msg)
        if status == 404:
            raise NotFoundError(full_msg)
        raise ServerError(full_msg)


def _json_list(response: httpx.Response) -> list[Any]:
    try:
        data = response.json()
    except ValueError as exc:
        raise ServerError(f"Invalid JSON in authorizations listing: {exc}") from exc
    if not isinstance(data, list):
        raise ServerError("Unexpected authorizations listing: expected a JSON array")
    return data


def _error_message(response: httpx.Response) -> str:
    """Extract a readable message from an error response body."""
    try:
        return ErrorBody.model_validate(response.json()).describe()
    except (ValueError, ValidationError):
        return response.text[:200] if response.text else ""
