"""Shared stale-while-revalidate machinery for entity wrappers.

An :class:`Entity` wraps one backend record and owns a list of children
(a project's documents, a document's chunks). Listing children follows a
two-state policy:

* **Cold** -- no child ids recorded for this entity yet. The fetch is
  awaited, every child record is written to the child
  :class:`~smartdb.cache.domain.DomainView` keyed by its id, the ordered ids
  are recorded, and the fresh children are returned. A failed fetch
  propagates and the wrapper stays Cold.
* **Warm** -- the recorded ids are resolved against the child view (misses
  are dropped, order is kept) and returned at once. The same fetch is
  scheduled on the client's :class:`~smartdb.cache.refresh.RefreshQueue`; if
  it succeeds, the child entries are overwritten first and the recorded id
  list is replaced afterwards. If it fails, nothing changes.

The cache stores plain JSON-compatible records, never wrapper instances, so
the same code runs unchanged over :class:`~smartdb.cache.store.MemoryStore`
and :class:`~smartdb.cache.store.DiskStore`. The recorded id sequence lives
in the store too, under the ``children`` domain keyed ``"<domain>:<id>"``.
Any wrapper over the same store and id is therefore Warm as soon as one of
them has listed its children, including wrappers rebuilt from the cache and
wrappers created after a restart of a persistent store.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, ClassVar, Generic, Optional, TypeVar, Union

from pydantic import BaseModel

from smartdb.cache.domain import Domain, DomainView
from smartdb.cache.store import SEPARATOR, KeyValueStore
from smartdb.exceptions import ClientNotSetError
from smartdb.output import get_output

if TYPE_CHECKING:
    from smartdb.client.smartdb_client import SmartDBClient

RecordT = TypeVar("RecordT", bound=BaseModel)
ChildRecordT = TypeVar("ChildRecordT", bound=BaseModel)


class Entity(Generic[RecordT, ChildRecordT]):
    """Base class for :class:`~smartdb.entities.Project` and :class:`~smartdb.entities.Document`.

    Subclasses declare their record models, their domains and the URL
    segment of their child collection, and may override
    :meth:`_wrap_child` to return something richer than the child record.

    Args:
        data: The backend record (model instance or raw ``dict``).
        client: The issuing client, used for further fetches. Optional;
            operations that need the network raise
            :class:`~smartdb.exceptions.ClientNotSetError` without it.
        store: The session store shared by every wrapper. Defaults to the
            client's store.
    """

    domain: ClassVar[Domain]
    child_domain: ClassVar[Domain]
    record_model: ClassVar[type[BaseModel]]
    child_model: ClassVar[type[BaseModel]]
    children_segment: ClassVar[str]
    uri_root: ClassVar[str]

    def __init__(
        self,
        data: Union[RecordT, dict[str, Any]],
        client: Optional[SmartDBClient] = None,
        store: Optional[KeyValueStore] = None,
    ) -> None:
        if store is None and client is not None:
            store = client.store
        if store is None:
            raise ValueError(f"{type(self).__name__} needs a store or a client that has one")
        self._data: RecordT = (
            data if isinstance(data, self.record_model) else self.record_model.model_validate(data)
        )  # type: ignore[assignment]
        self._client = client
        self._store = store
        self._children = DomainView(store, self.child_domain)
        self._lists = DomainView(store, Domain.CHILDREN)
        self._last_refresh: Optional[asyncio.Task[Any]] = None

    # ------------------------------------------------------------------ #
    # Accessors
    # ------------------------------------------------------------------ #

    @property
    def id(self) -> Any:
        return self._data.id  # type: ignore[attr-defined]

    @property
    def raw(self) -> RecordT:
        return self._data

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @property
    def client(self) -> Optional[SmartDBClient]:
        return self._client

    @property
    def uri(self) -> str:
        return f"{self.uri_root}/{self.id}"

    @property
    def is_warm(self) -> bool:
        """True once a child listing of this entity has been fetched into the store."""
        return self._recorded_ids() is not None

    @property
    def child_ids(self) -> Optional[tuple[str, ...]]:
        """The recorded child-id sequence, or ``None`` while Cold."""
        ids = self._recorded_ids()
        return tuple(ids) if ids is not None else None

    @property
    def last_refresh(self) -> Optional[asyncio.Task[Any]]:
        """The most recent background refresh task, if any was spawned."""
        return self._last_refresh

    def to_record(self) -> dict[str, Any]:
        """Return the JSON-compatible form stored in the cache."""
        return self._data.model_dump(mode="json")

    # ------------------------------------------------------------------ #
    # Stale-while-revalidate listing
    # ------------------------------------------------------------------ #

    async def get_children(self) -> list[Any]:
        """List this entity's children, serving cached ones when possible.

        Raises:
            ClientNotSetError: On a Cold listing without a client.
            SmartDBError: Any fetch failure of a Cold listing.
        """
        ids = self._recorded_ids()
        if ids is None:
            records = await self._fetch_children()
            self._remember(records)
            return [self._wrap_child(record) for record in records]

        cached = self._resolve(ids)
        get_output().debug(
            f"{self.domain.value} {self.id}: serving {len(cached)} cached "
            f"{self.child_domain.value}(s), refreshing in background"
        )
        self._last_refresh = self._require_client().refresh_queue.spawn(
            self.refresh_children(),
            name=f"{self.domain.value}:{self.id}:{self.children_segment}",
        )
        return cached

    async def refresh_children(self) -> None:
        """Fetch the children and overwrite the cache and the recorded ids.

        Nothing is written unless the whole fetch succeeds.
        """
        records = await self._fetch_children()
        self._remember(records)

    async def _fetch_children(self) -> list[ChildRecordT]:
        client = self._require_client()
        payload = await client.request_json("GET", f"{self.uri}/{self.children_segment}")
        return [self.child_model.model_validate(item) for item in payload]  # type: ignore[misc]

    def _remember(self, records: list[ChildRecordT]) -> None:
        # children first, so every recorded id already resolves
        for record in records:
            self._children.set(record.id, record.model_dump(mode="json"))  # type: ignore[attr-defined]
        self._lists.set(
            self._list_key, [str(record.id) for record in records]  # type: ignore[attr-defined]
        )

    @property
    def _list_key(self) -> str:
        return f"{self.domain.value}{SEPARATOR}{self.id}"

    def _recorded_ids(self) -> Optional[list[str]]:
        return self._lists.get(self._list_key)

    def _resolve(self, ids: list[str]) -> list[Any]:
        resolved = []
        for child_id in ids:
            data = self._children.get(child_id)
            if data is None:
                continue
            resolved.append(self._wrap_child(self.child_model.model_validate(data)))  # type: ignore[arg-type]
        return resolved

    def _wrap_child(self, record: ChildRecordT) -> Any:
        return record

    def _require_client(self) -> SmartDBClient:
        if self._client is None:
            raise ClientNotSetError(f"{type(self).__name__} {self.id} has no client")
        return self._client

    # ------------------------------------------------------------------ #
    # Identity
    # ------------------------------------------------------------------ #

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return NotImplemented
        return type(self) is type(other) and str(self.id) == str(other.id)

    def __hash__(self) -> int:
        return hash((type(self).__name__, str(self.id)))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"
