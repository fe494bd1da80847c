"""Local plaintext token cache, one file per application.

The token for application ``MyApp`` lives in ``~/.myapp.conf`` (or in the
configured ``cache_dir``). The file holds nothing but the token string, so
other tools can read it with ``cat``.

Writes are atomic via :func:`~patget.config.atomic_write` and the file is
created with ``0o600`` permissions so the token is never world-readable,
even momentarily.

See Also:
    :func:`patget.resolver.get_token` -- reads and fills this cache.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from patget.config import atomic_write
from patget.exceptions import InvalidUsageError


def cache_filename(app_name: str) -> str:
    """Return the cache file name for *app_name* (``.<lowercased name>.conf``)."""
    if not app_name or not app_name.strip():
        raise InvalidUsageError("Application name must not be empty")
    if "/" in app_name or "\\" in app_name:
        raise InvalidUsageError(
            f"Application name '{app_name}' must not contain path separators"
        )
    return f".{app_name.lower()}.conf"


class TokenCache:
    """Read/write the cached token for a single application.

    Args:
        app_name: The application name; lowercased to derive the file name.
        directory: Directory holding the cache file. Defaults to the
            user's home directory.

    Example::

        cache = TokenCache("MyApp")
        cache.save("ghp_abc123")
        assert cache.load() == "ghp_abc123"
        assert cache.path.name == ".myapp.conf"
    """

    def __init__(
        self,
        app_name: str,
        directory: Optional[Union[str, Path]] = None,
    ) -> None:
        base = Path(directory).expanduser() if directory else Path.home()
        self._path = base / cache_filename(app_name)

    @property
    def path(self) -> Path:
        """The filesystem path to this application's token file."""
        return self._path

    def exists(self) -> bool:
        """Return ``True`` if a usable token is cached."""
        return self.load() is not None

    def load(self) -> Optional[str]:
        """Return the cached token, or ``None``.

        Surrounding whitespace is stripped. A missing, unreadable, or
        empty file counts as no token.
        """
        if not self._path.is_file():
            return None
        try:
            token = self._path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError):
            return None
        return token or None

    def save(self, token: str) -> None:
        """Persist *token* atomically with ``0o600`` permissions.

        Raises:
            OSError: If the file cannot be written.
        """
        atomic_write(self._path, token, mode=0o600)

    def clear(self) -> bool:
        """Delete the cached token file.

        Returns:
            ``True`` if a file was removed, ``False`` if there was none.
        """
        if self._path.is_file():
            self._path.unlink()
            return True
        return False
