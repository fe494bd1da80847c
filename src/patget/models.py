"""Canonical Pydantic models shared across all patget modules.

The models fall into two groups:

**API payload models** -- parsed from ``/authorizations`` responses:
    :class:`AppInfo`, :class:`Authorization`, :class:`ErrorDetail`, and
    :class:`ErrorBody`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`Settings`.

Payload models ignore unknown keys so that new fields added by the service
never break parsing.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_API_URL = "https://api.github.com"


# --- API payloads ---


class AppInfo(BaseModel):
    """The ``app`` object attached to an authorization.

    For tokens created with only a ``note``, the service names the app
    ``"<note> (API)"``.
    """

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    url: Optional[str] = None
    client_id: Optional[str] = None


class Authorization(BaseModel):
    """A single personal access token record returned by the API.

    ``token`` may be empty: services that no longer reveal stored tokens
    only return it in the response to the request that created it.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    url: Optional[str] = None
    scopes: list[str] = Field(default_factory=list)
    token: str = ""
    app: AppInfo = Field(default_factory=AppInfo)
    note: Optional[str] = None
    note_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def is_labelled_for(self, app_name: str) -> bool:
        """Return ``True`` if this authorization belongs to *app_name*.

        Matches either the ``note`` the token was created with or the app
        name the service derives from it.
        """
        if self.note is not None and self.note == app_name:
            return True
        return self.app.name == f"{app_name} (API)"


class ErrorDetail(BaseModel):
    """One entry of the ``errors`` list in an API error response."""

    model_config = ConfigDict(extra="ignore")

    resource: Optional[str] = None
    field: Optional[str] = None
    code: Optional[str] = None

    def __str__(self) -> str:
        parts = [p for p in (self.resource, self.field, self.code) if p]
        return "/".join(parts)


class ErrorBody(BaseModel):
    """Body of an API error response (``{"message": ..., "errors": [...]}``)."""

    model_config = ConfigDict(extra="ignore")

    message: str = ""
    errors: list[ErrorDetail] = Field(default_factory=list)
    documentation_url: Optional[str] = None

    def describe(self) -> str:
        """Render the message and error details as a single line."""
        text = self.message
        if self.errors:
            details = ", ".join(str(e) for e in self.errors if str(e))
            if details:
                text = f"{text} ({details})" if text else details
        return text


# --- Settings ---


class Settings(BaseModel):
    """User-wide configuration persisted at ``~/.config/patget/config.json``.

    Loaded and saved by :func:`~patget.config.load_settings` and
    :func:`~patget.config.save_settings`. Environment variables and CLI
    flags take precedence; see :func:`~patget.config.resolve_settings`.
    """

    api_url: str = Field(
        default=DEFAULT_API_URL, description="Base URL of the REST API"
    )
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_retries: int = Field(default=2, description="Max retry attempts on 5xx")
    cache_dir: Optional[str] = Field(
        default=None,
        description="Directory holding cached token files (default: home directory)",
    )
    user_agent: str = Field(default="patget", description="User-Agent header value")

    @field_validator("api_url")
    @classmethod
    def _require_http_url(cls, value: str) -> str:
        value = value.strip()
        scheme, sep, rest = value.partition("://")
        if not sep or scheme.lower() not in ("http", "https") or not rest:
            raise ValueError(f"api_url must start with http:// or https://, got '{value}'")
        return value
