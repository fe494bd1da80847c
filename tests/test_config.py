"""Tests for settings loading, saving, and precedence resolution."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from patget.config import (
    atomic_write,
    get_config_dir,
    get_data_dir,
    load_settings,
    resolve_settings,
    save_settings,
    settings_path,
    update_setting,
)
from patget.exceptions import ConfigError, InvalidUsageError
from patget.models import DEFAULT_API_URL, Settings


class TestDirectories:
    def test_config_dir_uses_xdg(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("patget.config.platform.system", lambda: "Linux")
        assert get_config_dir() == isolated_config / "config" / "patget"
        assert get_config_dir().is_dir()

    def test_data_dir_uses_xdg(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("patget.config.platform.system", lambda: "Linux")
        assert get_data_dir() == isolated_config / "data" / "patget"

    def test_fallback_on_macos(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("patget.config.platform.system", lambda: "Darwin")
        assert get_config_dir() == isolated_config / "home" / ".patget"
        assert get_data_dir() == isolated_config / "home" / ".patget" / "logs"


class TestAtomicWrite:
    def test_writes_content(self, tmp_path: Path) -> None:
        target = tmp_path / "file.txt"
        atomic_write(target, "hello")
        assert target.read_text() == "hello"

    def test_applies_mode(self, tmp_path: Path) -> None:
        target = tmp_path / "secret"
        atomic_write(target, "x", mode=0o600)
        assert target.stat().st_mode & 0o777 == 0o600

    def test_cleans_up_on_failure(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def _fail(src: str, dst: object) -> None:
            raise OSError("disk full")

        monkeypatch.setattr("patget.config.os.replace", _fail)
        with pytest.raises(OSError, match="disk full"):
            atomic_write(tmp_path / "file.txt", "data")
        assert list(tmp_path.iterdir()) == []


@pytest.mark.usefixtures("isolated_config")
class TestSettingsFile:
    def test_defaults_when_missing(self) -> None:
        settings = load_settings()
        assert settings.api_url == DEFAULT_API_URL
        assert settings.cache_dir is None

    def test_save_and_load(self) -> None:
        save_settings(Settings(api_url="https://ghe.example.com/api/v3", timeout=5))
        loaded = load_settings()
        assert loaded.api_url == "https://ghe.example.com/api/v3"
        assert loaded.timeout == 5

    def test_save_omits_defaults(self) -> None:
        save_settings(Settings(max_retries=0))
        data = json.loads(settings_path().read_text())
        assert data == {"max_retries": 0}

    def test_invalid_json_raises(self) -> None:
        settings_path().write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid settings"):
            load_settings()

    def test_invalid_value_raises(self) -> None:
        settings_path().write_text(json.dumps({"timeout": "soon"}))
        with pytest.raises(ConfigError):
            load_settings()

    def test_update_setting_coerces(self) -> None:
        settings = update_setting("max_retries", "5")
        assert settings.max_retries == 5
        assert load_settings().max_retries == 5

    def test_update_setting_bool(self) -> None:
        update_setting("verify_ssl", "false")
        assert load_settings().verify_ssl is False

    def test_update_unknown_key_raises(self) -> None:
        with pytest.raises(ConfigError, match="Unknown setting"):
            update_setting("colour", "blue")

    def test_update_invalid_value_raises(self) -> None:
        with pytest.raises(ConfigError, match="Invalid value"):
            update_setting("timeout", "soon")

    def test_update_rejects_api_url_without_scheme(self) -> None:
        with pytest.raises(ConfigError, match="Invalid value for 'api_url'"):
            update_setting("api_url", "api.github.com")
        assert not settings_path().exists()

    def test_api_url_without_scheme_in_file_raises(self) -> None:
        settings_path().write_text(json.dumps({"api_url": "api.github.com"}))
        with pytest.raises(ConfigError, match="Invalid settings"):
            load_settings()


@pytest.mark.usefixtures("isolated_config")
class TestResolveSettings:
    def test_file_value(self) -> None:
        save_settings(Settings(api_url="https://file.example.com"))
        assert resolve_settings().api_url == "https://file.example.com"

    def test_env_overrides_file(self, monkeypatch: pytest.MonkeyPatch) -> None:
        save_settings(Settings(api_url="https://file.example.com"))
        monkeypatch.setenv("PATGET_API_URL", "https://env.example.com")
        assert resolve_settings().api_url == "https://env.example.com"

    def test_cli_overrides_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PATGET_API_URL", "https://env.example.com")
        settings = resolve_settings(cli_api_url="https://cli.example.com")
        assert settings.api_url == "https://cli.example.com"

    def test_cache_dir_precedence(self, monkeypatch: pytest.MonkeyPatch) -> None:
        save_settings(Settings(cache_dir="/from/file"))
        assert resolve_settings().cache_dir == "/from/file"
        monkeypatch.setenv("PATGET_CACHE_DIR", "/from/env")
        assert resolve_settings().cache_dir == "/from/env"
        assert resolve_settings(cli_cache_dir="/from/cli").cache_dir == "/from/cli"

    def test_invalid_env_api_url_is_usage_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PATGET_API_URL", "api.github.com")
        with pytest.raises(InvalidUsageError, match="http:// or https://"):
            resolve_settings()

    def test_invalid_cli_api_url_is_usage_error(self) -> None:
        with pytest.raises(InvalidUsageError):
            resolve_settings(cli_api_url="api.github.com")
