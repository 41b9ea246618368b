"""Key-value stores backing the entity cache.

A :class:`KeyValueStore` is a small synchronous contract
(``get``/``set``/``has``/``delete``/``values`` and an optional ``clear``)
over arbitrary values keyed by string. Two backends ship with smartdb:

* :class:`MemoryStore` -- an in-process ``dict``. Values are kept by
  reference and vanish with the process.
* :class:`DiskStore` -- a :class:`diskcache.Cache` directory used as a
  string-keyed, string-valued durable medium. Values are stored as JSON text
  under ``<prefix><key>`` so that one directory can host unrelated data.

Keys written through a :class:`~smartdb.cache.domain.DomainView` have the
shape ``<tag>:<logical key>``. A domain enumerates its own entries from
those keys alone, never by looking at the stored values: :class:`MemoryStore`
keeps an index from tag to logical keys, and :class:`DiskStore` scans the
keys of its medium, so it also sees entries written by other stores sharing
that medium.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, Union

import diskcache

from smartdb.config import get_cache_dir
from smartdb.exceptions import CacheDecodeError, CacheError
from smartdb.models import DEFAULT_CACHE_PREFIX, CacheBackend, CacheConfig

SEPARATOR = ":"

MISSING = object()


def split_key(key: str) -> Optional[tuple[str, str]]:
    """Split ``"<tag>:<logical>"`` into its parts, or return ``None`` for untagged keys."""
    tag, sep, logical = key.partition(SEPARATOR)
    if not sep or not tag:
        return None
    return tag, logical


class KeyValueStore(ABC):
    """Base class for all cache backends.

    Subclasses implement five storage primitives (``_read``, ``_write``,
    ``_remove``, ``_contains``, ``_iter_keys``); the public contract is
    implemented here once. :meth:`domain_keys` scans every key by default;
    backends that keep a per-tag index override it.

    ``clear()`` is optional. Backends that can empty themselves set
    :attr:`supports_clear` and override it.
    """

    supports_clear: bool = False

    # ------------------------------------------------------------------ #
    # Public contract
    # ------------------------------------------------------------------ #

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored at *key*, or *default* when absent.

        Raises:
            CacheDecodeError: If a persisted value cannot be decoded.
        """
        return self._read(key, default)

    def set(self, key: str, value: Any) -> None:
        """Store *value* at *key*, replacing any previous value."""
        self._write(key, value)

    def has(self, key: str) -> bool:
        return self._contains(key)

    def delete(self, key: str) -> None:
        """Remove *key*. A missing key is a no-op."""
        self._remove(key)

    def keys(self) -> list[str]:
        """Return a snapshot of every key currently held by this store."""
        return list(self._iter_keys())

    def values(self) -> Iterator[Any]:
        """Iterate over every stored value, across all domains.

        The key set is captured when this method is called; writes made while
        iterating are not guaranteed to be seen. Call again to restart.
        """
        return self._iter_values(self.keys())

    def clear(self) -> None:
        raise NotImplementedError(f"{type(self).__name__} does not support clear()")

    # ------------------------------------------------------------------ #
    # Domain enumeration
    # ------------------------------------------------------------------ #

    def domain_keys(self, tag: str) -> list[str]:
        """Return a snapshot of the logical keys stored under *tag*."""
        found = []
        for key in self._iter_keys():
            parts = split_key(key)
            if parts is not None and parts[0] == tag:
                found.append(parts[1])
        return found

    def domain_values(self, tag: str) -> Iterator[Any]:
        """Iterate over the values stored under *tag*, in :meth:`domain_keys` order."""
        keys = [f"{tag}{SEPARATOR}{logical}" for logical in self.domain_keys(tag)]
        return self._iter_values(keys)

    def _iter_values(self, keys: list[str]) -> Iterator[Any]:
        for key in keys:
            value = self.get(key, MISSING)
            if value is not MISSING:
                yield value

    # ------------------------------------------------------------------ #
    # Storage primitives
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _read(self, key: str, default: Any) -> Any: ...

    @abstractmethod
    def _write(self, key: str, value: Any) -> None: ...

    @abstractmethod
    def _remove(self, key: str) -> None: ...

    @abstractmethod
    def _contains(self, key: str) -> bool: ...

    @abstractmethod
    def _iter_keys(self) -> Iterable[str]: ...


class MemoryStore(KeyValueStore):
    """Ephemeral in-process store.

    Values are held by reference with no serialisation, so ``get`` returns
    the very object that was ``set``. Everything is lost when the process
    exits; :class:`~smartdb.client.SmartDBClient` clears it on logout.
    Logical keys are indexed per tag as they are written, in first-write
    order.
    """

    supports_clear = True

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        # tag -> ordered set of logical keys
        self._index: dict[str, dict[str, None]] = {}

    def clear(self) -> None:
        self._data.clear()
        self._index.clear()

    def domain_keys(self, tag: str) -> list[str]:
        return list(self._index.get(tag, ()))

    def _read(self, key: str, default: Any) -> Any:
        return self._data.get(key, default)

    def _write(self, key: str, value: Any) -> None:
        self._data[key] = value
        parts = split_key(key)
        if parts is not None:
            tag, logical = parts
            self._index.setdefault(tag, {})[logical] = None

    def _remove(self, key: str) -> None:
        self._data.pop(key, None)
        parts = split_key(key)
        if parts is None:
            return
        tag, logical = parts
        logicals = self._index.get(tag)
        if logicals is not None:
            logicals.pop(logical, None)
            if not logicals:
                del self._index[tag]

    def _contains(self, key: str) -> bool:
        return key in self._data

    def _iter_keys(self) -> Iterable[str]:
        return list(self._data)


class DiskStore(KeyValueStore):
    """Persistent store on top of a :class:`diskcache.Cache` directory.

    Every entry is written as JSON text under ``<prefix><key>``. Keys in the
    medium without that prefix belong to someone else: they are never read,
    listed, or removed by this store. Domain enumeration scans the medium's
    keys on every call, so it survives restarts and sees entries written by
    any other store sharing the same medium and prefix.

    Args:
        medium: An open :class:`diskcache.Cache` to share, or a directory to
            open one in. Defaults to ``<cache_dir>/store``.
        prefix: Key prefix isolating this store inside the medium.

    Example::

        store = DiskStore("/tmp/smartdb-store")
        store.set("document:42", {"id": 42, "title": "Intro"})
        store.get("document:42")  # {'id': 42, 'title': 'Intro'}
    """

    supports_clear = True

    def __init__(
        self,
        medium: Union[diskcache.Cache, str, Path, None] = None,
        prefix: str = DEFAULT_CACHE_PREFIX,
    ) -> None:
        self._prefix = prefix
        if isinstance(medium, diskcache.Cache):
            self._cache = medium
            self._owns_medium = False
        else:
            directory = Path(medium) if medium is not None else get_cache_dir() / "store"
            self._cache = diskcache.Cache(str(directory))
            self._owns_medium = True

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def directory(self) -> str:
        """Filesystem directory of the underlying medium."""
        return self._cache.directory

    def clear(self) -> None:
        """Remove every key under this store's prefix, leaving foreign keys alone."""
        for key in self._iter_keys():
            self._cache.delete(self._full_key(key))

    def domain_keys(self, tag: str) -> list[str]:
        if not tag or SEPARATOR in tag:
            return []
        head = f"{self._prefix}{tag}{SEPARATOR}"
        size = len(head)
        return [
            key[size:]
            for key in self._cache.iterkeys()
            if isinstance(key, str) and key.startswith(head)
        ]

    def close(self) -> None:
        """Close the medium if this store opened it."""
        if self._owns_medium:
            self._cache.close()

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _read(self, key: str, default: Any) -> Any:
        text = self._cache.get(self._full_key(key), MISSING)
        if text is MISSING:
            return default
        if not isinstance(text, str):
            raise CacheDecodeError(key, f"expected text, found {type(text).__name__}")
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise CacheDecodeError(key, str(exc)) from exc

    def _write(self, key: str, value: Any) -> None:
        try:
            text = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise CacheError(f"Cannot encode value for '{key}': {exc}") from exc
        self._cache.set(self._full_key(key), text)

    def _remove(self, key: str) -> None:
        self._cache.delete(self._full_key(key))

    def _contains(self, key: str) -> bool:
        return self._full_key(key) in self._cache

    def _iter_keys(self) -> Iterable[str]:
        size = len(self._prefix)
        return [
            key[size:]
            for key in self._cache.iterkeys()
            if isinstance(key, str) and key.startswith(self._prefix)
        ]


def build_store(config: CacheConfig) -> KeyValueStore:
    """Create the store selected by *config*."""
    if config.backend == CacheBackend.DISK:
        return DiskStore(config.directory, prefix=config.prefix)
    return MemoryStore()
