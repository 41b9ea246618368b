"""Tests for smartdb.config: XDG paths, atomic writes, client config precedence."""

from __future__ import annotations

import json
import os
import stat
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from smartdb.config import (
    _atomic_write,
    get_cache_dir,
    get_config_dir,
    get_data_dir,
    load_client_config,
    load_config_file,
    save_client_config,
)
from smartdb.exceptions import ConfigError
from smartdb.models import CacheBackend, CacheConfig, ClientConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write a dict as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPathsLinux:
    """XDG paths on Linux (the default XDG platform)."""

    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("smartdb.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_config_dir()
        assert result == tmp_path / ".config" / "smartdb"
        assert result.is_dir()

    def test_cache_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom_cache"
        monkeypatch.setattr("smartdb.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CACHE_HOME", str(custom))

        result = get_cache_dir()
        assert result == custom / "smartdb"
        assert result.is_dir()

    def test_data_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("smartdb.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_data_dir()
        assert result == tmp_path / ".local" / "share" / "smartdb"
        assert result.is_dir()


class TestXDGPathsFallback:
    """Fallback paths on non-XDG platforms (macOS, Windows)."""

    def test_config_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("smartdb.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_config_dir() == tmp_path / ".smartdb"

    def test_cache_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("smartdb.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_cache_dir() == tmp_path / ".smartdb" / "cache"

    def test_data_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("smartdb.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_data_dir() == tmp_path / ".smartdb" / "data"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_creates_file_with_content(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "test.txt"
        _atomic_write(target, "hello world")
        assert target.read_text(encoding="utf-8") == "hello world"

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        target.write_text("old content", encoding="utf-8")
        _atomic_write(target, "new content")
        assert target.read_text(encoding="utf-8") == "new content"
        assert list(tmp_path.iterdir()) == [target]

    def test_no_temp_files_left_on_error(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        with patch("smartdb.config.os.fsync", side_effect=OSError("disk error")):
            with pytest.raises(OSError, match="disk error"):
                _atomic_write(target, "will fail")
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_mode_applied(self, tmp_path: Path) -> None:
        target = tmp_path / "secret.json"
        _atomic_write(target, "{}", mode=0o600)
        assert stat.S_IMODE(target.stat().st_mode) == 0o600


# ---------------------------------------------------------------------------
# Config file
# ---------------------------------------------------------------------------


class TestConfigFile:
    def test_defaults_when_missing(self, isolated_config: Path) -> None:
        assert load_config_file() == ClientConfig()

    def test_save_and_load_roundtrip(self, isolated_config: Path) -> None:
        config = ClientConfig(
            base_url="https://smartdb.example.org",
            persist_token=True,
            cache=CacheConfig(backend=CacheBackend.DISK, prefix="p_"),
        )
        save_client_config(config)
        assert load_config_file() == config

    def test_invalid_json_raises_config_error(self, isolated_config: Path) -> None:
        path = isolated_config / "config" / "smartdb" / "config.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid config"):
            load_config_file()

    def test_invalid_schema_raises_config_error(self, isolated_config: Path) -> None:
        _write_json(
            isolated_config / "config" / "smartdb" / "config.json",
            {"cache": {"backend": "redis"}},
        )
        with pytest.raises(ConfigError):
            load_config_file()


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestLoadClientConfig:
    def test_defaults(self, isolated_config: Path) -> None:
        config = load_client_config()
        assert config.base_url is None
        assert config.cache.backend is CacheBackend.MEMORY

    def test_file_values_used(self, isolated_config: Path) -> None:
        save_client_config(ClientConfig(base_url="https://file.example.org"))
        assert load_client_config().base_url == "https://file.example.org"

    def test_env_overrides_file(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        save_client_config(ClientConfig(base_url="https://file.example.org"))
        monkeypatch.setenv("SMARTDB_URL", "https://env.example.org")
        monkeypatch.setenv("SMARTDB_VERBOSE", "yes")
        monkeypatch.setenv("SMARTDB_CACHE_BACKEND", "DISK")
        monkeypatch.setenv("SMARTDB_CACHE_PREFIX", "env_")
        monkeypatch.setenv("SMARTDB_CACHE_DIR", "/tmp/smartdb-store")

        config = load_client_config()
        assert config.base_url == "https://env.example.org"
        assert config.verbose is True
        assert config.cache.backend is CacheBackend.DISK
        assert config.cache.prefix == "env_"
        assert config.cache.directory == "/tmp/smartdb-store"

    def test_explicit_url_wins(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SMARTDB_URL", "https://env.example.org")
        assert load_client_config("https://arg.example.org").base_url == "https://arg.example.org"

    def test_verbose_false_values(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        save_client_config(ClientConfig(verbose=True))
        monkeypatch.setenv("SMARTDB_VERBOSE", "0")
        assert load_client_config().verbose is False

    def test_unknown_backend(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SMARTDB_CACHE_BACKEND", "redis")
        with pytest.raises(ConfigError, match="redis"):
            load_client_config()
