"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for patget:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.patget/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Settings** -- A single :class:`~patget.models.Settings` JSON file
  storing the API URL, request options and token cache directory.
* **Precedence resolution** -- :func:`resolve_settings` merges CLI flags,
  environment variables, and the settings file into the effective
  configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) so that a crash never leaves a half-written file.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from patget.exceptions import ConfigError, InvalidUsageError
from patget.models import Settings

_APP_NAME = "patget"
_CONFIG_FILENAME = "config.json"

ENV_API_URL = "PATGET_API_URL"
ENV_CACHE_DIR = "PATGET_CACHE_DIR"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/patget/`` (default ``~/.config/patget/``).
    On macOS/Windows: ``~/.patget/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/patget/`` (default ``~/.local/share/patget/``).
    On macOS/Windows: ``~/.patget/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. When *mode* is
    given, permissions are applied to the temp file before any content is
    written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Settings file ---


def settings_path() -> Path:
    """Path to the settings file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_settings() -> Settings:
    """Load settings from the XDG config directory.

    Returns:
        The deserialised :class:`~patget.models.Settings`. If the file
        does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = settings_path()
    if not path.is_file():
        return Settings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Settings.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid settings at {path}: {exc}") from exc


def save_settings(settings: Settings) -> None:
    """Persist settings atomically to disk."""
    data = settings.model_dump(mode="json", exclude_defaults=True)
    atomic_write(settings_path(), json.dumps(data, indent=2) + "\n")


def update_setting(key: str, value: Any) -> Settings:
    """Set a single field in the settings file and save it.

    Args:
        key: A :class:`~patget.models.Settings` field name.
        value: The raw value; Pydantic coerces strings such as ``"false"``
            or ``"10"`` to the field's type.

    Returns:
        The updated settings.

    Raises:
        ConfigError: If *key* is not a known setting or *value* is invalid.
    """
    if key not in Settings.model_fields:
        known = ", ".join(sorted(Settings.model_fields))
        raise ConfigError(f"Unknown setting '{key}'. Known settings: {known}")
    data = load_settings().model_dump()
    data[key] = value
    try:
        settings = Settings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid value for '{key}': {exc}") from exc
    save_settings(settings)
    return settings


# --- Precedence resolution ---


def resolve_settings(
    cli_api_url: Optional[str] = None,
    cli_cache_dir: Optional[str] = None,
) -> Settings:
    """Resolve settings with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_api_url``, ``cli_cache_dir``)
        2. Environment variables (``PATGET_API_URL``, ``PATGET_CACHE_DIR``)
        3. User config (``~/.config/patget/config.json``)
        4. Defaults

    Raises:
        InvalidUsageError: If a CLI flag or environment variable holds an
            invalid value (e.g. an API URL without a scheme).
    """
    settings = load_settings()
    overrides: dict[str, Any] = {}

    api_url = cli_api_url or os.environ.get(ENV_API_URL)
    if api_url:
        overrides["api_url"] = api_url

    cache_dir = cli_cache_dir or os.environ.get(ENV_CACHE_DIR)
    if cache_dir:
        overrides["cache_dir"] = cache_dir

    if not overrides:
        return settings
    try:
        return Settings.model_validate({**settings.model_dump(), **overrides})
    except ValidationError as exc:
        raise InvalidUsageError(f"Invalid override: {exc}") from exc
