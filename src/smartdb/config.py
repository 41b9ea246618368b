"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for smartdb:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.smartdb/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Client config** -- A single :class:`~smartdb.models.ClientConfig` JSON
  file storing defaults (server URL, cache backend, request settings).
* **Precedence resolution** -- :func:`load_client_config` merges explicit
  arguments, environment variables and the user config file.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from smartdb.exceptions import ConfigError
from smartdb.models import CacheBackend, ClientConfig

_APP_NAME = "smartdb"
_CONFIG_FILENAME = "config.json"

_TRUTHY = {"1", "true", "yes", "on"}


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

    On Linux/BSD: ``$XDG_CONFIG_HOME/smartdb/`` (default ``~/.config/smartdb/``).
    On macOS/Windows: ``~/.smartdb/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds the persistent entity store when the ``disk`` cache backend is
    selected. Its content can be deleted at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/smartdb/`` (default ``~/.cache/smartdb/``).
    On macOS/Windows: ``~/.smartdb/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (persisted tokens), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/smartdb/`` (default ``~/.local/share/smartdb/``).
    On macOS/Windows: ``~/.smartdb/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. When *mode* is given
    the permissions are applied before any content is written.
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


# --- Client config ---


def _config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_config_file() -> ClientConfig:
    """Load the user config file.

    Returns:
        The deserialised :class:`~smartdb.models.ClientConfig`, or a default
        instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _config_path()
    if not path.is_file():
        return ClientConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return ClientConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_client_config(config: ClientConfig) -> None:
    """Persist *config* atomically as the user config file."""
    data = config.model_dump(mode="json")
    _atomic_write(_config_path(), json.dumps(data, indent=2) + "\n")


def load_client_config(url: Optional[str] = None) -> ClientConfig:
    """Resolve the effective client configuration.

    Precedence (high to low):
        1. The explicit *url* argument
        2. Environment variables (``SMARTDB_URL``, ``SMARTDB_VERBOSE``,
           ``SMARTDB_CACHE_BACKEND``, ``SMARTDB_CACHE_PREFIX``,
           ``SMARTDB_CACHE_DIR``)
        3. User config (``~/.config/smartdb/config.json``)
        4. Defaults

    Raises:
        ConfigError: On an unreadable config file or an unknown cache backend.
    """
    config = load_config_file()

    env_url = os.environ.get("SMARTDB_URL")
    if env_url:
        config.base_url = env_url
    env_verbose = os.environ.get("SMARTDB_VERBOSE")
    if env_verbose is not None:
        config.verbose = env_verbose.strip().lower() in _TRUTHY
    env_backend = os.environ.get("SMARTDB_CACHE_BACKEND")
    if env_backend:
        try:
            config.cache.backend = CacheBackend(env_backend.strip().lower())
        except ValueError as exc:
            raise ConfigError(f"Unknown cache backend '{env_backend}'") from exc
    env_prefix = os.environ.get("SMARTDB_CACHE_PREFIX")
    if env_prefix:
        config.cache.prefix = env_prefix
    env_dir = os.environ.get("SMARTDB_CACHE_DIR")
    if env_dir:
        config.cache.directory = env_dir

    if url is not None:
        config.base_url = url

    return config
