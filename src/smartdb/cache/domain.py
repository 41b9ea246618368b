"""Domain-scoped views over a shared :class:`~smartdb.cache.store.KeyValueStore`.

Projects, documents, chunks and users all live in one physical store. A
:class:`DomainView` prefixes every key with its domain tag
(``"document:42"``) so the logical caches never collide, and enumerates only
its own entries from the store's tagged keys.

Views hold no data of their own. Two views over the same store and tag are
interchangeable and see each other's writes.
"""

from __future__ import annotations

import enum
from typing import Any, Iterator, Union

from smartdb.cache.store import MISSING, SEPARATOR, KeyValueStore


class Domain(str, enum.Enum):
    """Domain tags used by the SDK."""

    PROJECT = "project"
    DOCUMENT = "document"
    CHUNK = "chunk"
    USER = "user"
    # recorded child-id lists, keyed "<domain>:<id>"
    CHILDREN = "children"


class DomainView:
    """Key-prefixing projection of *store* scoped to one domain tag.

    Args:
        store: The shared store.
        domain: A :class:`Domain` member, or a free-form tag string for
            application-defined caches. Tags may not contain ``":"``.

    Example::

        store = MemoryStore()
        docs = DomainView(store, Domain.DOCUMENT)
        docs.set(42, {"id": 42})
        store.get("document:42")  # {'id': 42}
    """

    def __init__(self, store: KeyValueStore, domain: Union[Domain, str]) -> None:
        tag = domain.value if isinstance(domain, Domain) else str(domain)
        if not tag or SEPARATOR in tag:
            raise ValueError(f"Invalid domain tag: {tag!r}")
        self._store = store
        self._tag = tag

    @property
    def tag(self) -> str:
        return self._tag

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def key(self, logical_key: Any) -> str:
        """Return the namespaced store key for *logical_key*."""
        return f"{self._tag}{SEPARATOR}{logical_key}"

    def get(self, key: Any, default: Any = None) -> Any:
        return self._store.get(self.key(key), default)

    def set(self, key: Any, value: Any) -> None:
        self._store.set(self.key(key), value)

    def has(self, key: Any) -> bool:
        """Return True when *key* resolves to a value.

        Implemented as a full ``get`` so it pays the same decode cost and
        raises the same decode errors.
        """
        return self._store.get(self.key(key), MISSING) is not MISSING

    def delete(self, key: Any) -> None:
        self._store.delete(self.key(key))

    def keys(self) -> list[str]:
        """Return the logical keys stored in this domain."""
        return self._store.domain_keys(self._tag)

    def values(self) -> Iterator[Any]:
        """Iterate over this domain's values only."""
        return self._store.domain_values(self._tag)

    def clear(self) -> None:
        """Delete every entry in this domain, leaving other domains untouched."""
        for logical in self.keys():
            self.delete(logical)

    def __repr__(self) -> str:
        return f"DomainView({type(self._store).__name__}, {self._tag!r})"
