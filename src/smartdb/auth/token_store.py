"""Bearer-token storage for a SmartDB session.

Two stores share one small contract (``load``/``save``/``clear``):

* :class:`MemoryTokenStore` -- the default; the token lives as long as the
  client object.
* :class:`FileTokenStore` -- keeps the token in
  ``~/.local/share/smartdb/tokens/<server>.json`` (XDG) so a login survives
  process restarts. Files are written atomically with ``0o600``
  permissions so the token is never world-readable, even momentarily.
"""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from smartdb.config import _atomic_write, get_data_dir


class TokenEntry(BaseModel):
    """A bearer token obtained from ``POST /token``.

    Attributes:
        access_token: The token value sent as ``Authorization: Bearer ...``.
        token_type: Token type reported by the server.
        obtained_at: UTC time the token was stored.
    """

    access_token: str
    token_type: str = "bearer"
    obtained_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TokenStore(ABC):
    @abstractmethod
    def load(self) -> Optional[TokenEntry]: ...

    @abstractmethod
    def save(self, entry: TokenEntry) -> None: ...

    @abstractmethod
    def clear(self) -> None: ...

    @property
    def token(self) -> Optional[str]:
        entry = self.load()
        return entry.access_token if entry is not None else None


class MemoryTokenStore(TokenStore):
    def __init__(self) -> None:
        self._entry: Optional[TokenEntry] = None

    def load(self) -> Optional[TokenEntry]:
        return self._entry

    def save(self, entry: TokenEntry) -> None:
        self._entry = entry

    def clear(self) -> None:
        self._entry = None


def _tokens_dir() -> Path:
    """Return the tokens directory, creating it if needed."""
    path = get_data_dir() / "tokens"
    path.mkdir(parents=True, exist_ok=True)
    return path


def _file_name(base_url: str) -> str:
    """Derive a filesystem-safe name from a server URL."""
    stripped = re.sub(r"^https?://", "", base_url)
    return re.sub(r"[^A-Za-z0-9._-]+", "_", stripped).strip("_") or "default"


class FileTokenStore(TokenStore):
    """Read/write the token for one SmartDB server on disk.

    Args:
        base_url: The server URL; each server gets its own file.

    Example::

        store = FileTokenStore("https://smartdb.example.org")
        store.save(TokenEntry(access_token="tok123"))
        assert store.token == "tok123"
    """

    def __init__(self, base_url: str) -> None:
        self._path = _tokens_dir() / f"{_file_name(base_url)}.json"

    @property
    def path(self) -> Path:
        return self._path

    def save(self, entry: TokenEntry) -> None:
        """Persist *entry* atomically with ``0o600`` permissions.

        Raises:
            OSError: If the file cannot be written.
        """
        text = json.dumps(entry.model_dump(mode="json"), indent=2) + "\n"
        _atomic_write(self._path, text, mode=0o600)

    def load(self) -> Optional[TokenEntry]:
        """Load the stored token.

        Returns:
            The :class:`TokenEntry`, or ``None`` if the file does not exist
            or cannot be parsed.
        """
        if not self._path.is_file():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return TokenEntry.model_validate(data)
        except (json.JSONDecodeError, ValueError, OSError):
            return None

    def clear(self) -> None:
        """Delete the token file. No-op when it is already gone."""
        if self._path.is_file():
            self._path.unlink()
