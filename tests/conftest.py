"""Shared test fixtures for smartdb.

Provides isolated config directories, stores for both cache backends, a
colourless output manager, and :class:`FakeClient` -- a stand-in for
:class:`~smartdb.client.SmartDBClient` that serves canned payloads so the
stale-while-revalidate logic can be driven deterministically.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Iterator

import pytest

from smartdb.cache import DiskStore, MemoryStore, RefreshQueue
from smartdb.output import OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> Iterator[None]:
    """Install a colourless OutputManager and reset it after every test."""
    set_output(OutputManager(no_color=True))
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path and clears all SMARTDB_* environment
    variables so tests never touch real user config.
    """
    monkeypatch.setattr("smartdb.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for var in [
        "SMARTDB_URL",
        "SMARTDB_VERBOSE",
        "SMARTDB_CACHE_BACKEND",
        "SMARTDB_CACHE_PREFIX",
        "SMARTDB_CACHE_DIR",
    ]:
        monkeypatch.delenv(var, raising=False)
    return tmp_path


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def disk_store(tmp_path: Path) -> Iterator[DiskStore]:
    store = DiskStore(tmp_path / "store")
    yield store
    store.close()


@pytest.fixture(params=["memory", "disk"])
def any_store(request: pytest.FixtureRequest, tmp_path: Path) -> Iterator[Any]:
    """Run a test once per backend."""
    if request.param == "memory":
        yield MemoryStore()
    else:
        store = DiskStore(tmp_path / "store")
        yield store
        store.close()


# ---------------------------------------------------------------------------
# Fake client
# ---------------------------------------------------------------------------


class FakeClient:
    """Serves queued payloads per path and records every request.

    Each path holds a queue of responses; the last one stays in place and is
    served again for further requests. An ``Exception`` instance in the queue
    is raised instead of returned.
    """

    def __init__(self, store: Any) -> None:
        self.store = store
        self.refresh_queue = RefreshQueue()
        self.calls: list[str] = []
        self._responses: dict[str, list[Any]] = {}
        self.users: dict[str, Any] = {}

    def respond(self, path: str, *payloads: Any) -> None:
        self._responses.setdefault(path, []).extend(payloads)

    async def request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        self.calls.append(path)
        await asyncio.sleep(0)
        queue = self._responses[path]
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    async def get_user_by_username(self, username: str) -> Any:
        return self.users.get(username)


@pytest.fixture
def fake_client(memory_store: MemoryStore) -> FakeClient:
    return FakeClient(memory_store)


@pytest.fixture
def make_client():
    """Factory for a FakeClient over a store of the test's choosing."""
    return FakeClient
