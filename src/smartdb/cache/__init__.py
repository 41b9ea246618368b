"""Entity cache for smartdb.

This package provides the pluggable store behind every entity wrapper:

* :class:`KeyValueStore` with the :class:`MemoryStore` (ephemeral) and
  :class:`DiskStore` (:mod:`diskcache`-backed, persistent) backends.
* :class:`DomainView`, which namespaces one shared store per
  :class:`Domain` (``project``, ``document``, ``chunk``, ``user``).
* :class:`RefreshQueue`, which owns the background refreshes issued by
  stale-while-revalidate listings.

The backend is chosen by the ``cache`` section of
:class:`~smartdb.models.ClientConfig` through :func:`build_store`.
"""

from smartdb.cache.domain import Domain, DomainView
from smartdb.cache.refresh import RefreshQueue
from smartdb.cache.store import DiskStore, KeyValueStore, MemoryStore, build_store

__all__ = [
    "DiskStore",
    "Domain",
    "DomainView",
    "KeyValueStore",
    "MemoryStore",
    "RefreshQueue",
    "build_store",
]
