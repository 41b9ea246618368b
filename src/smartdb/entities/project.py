"""Project wrapper: metadata accessors and document listing."""

from __future__ import annotations

from typing import Optional

from smartdb.cache.domain import Domain
from smartdb.entities.base import Entity
from smartdb.entities.document import Document
from smartdb.models import RawDocument, RawProject


class Project(Entity[RawProject, RawDocument]):
    """A SmartDB project. Its children are :class:`~smartdb.entities.Document` wrappers.

    Document records are cached under the ``document`` domain. Each
    returned :class:`Document` receives the same store and client, so its
    own chunk listing shares the session cache.

    Example::

        projects = await client.get_projects()
        docs = await projects[0].get_documents()   # Cold: waits for the server
        docs = await projects[0].get_documents()   # Warm: instant, refreshes behind
    """

    domain = Domain.PROJECT
    child_domain = Domain.DOCUMENT
    record_model = RawProject
    child_model = RawDocument
    children_segment = "documents"
    uri_root = "/vector/projects"

    @property
    def name(self) -> Optional[str]:
        return self._data.name

    @property
    def description(self) -> Optional[str]:
        return self._data.description

    async def get_documents(self) -> list[Document]:
        """List this project's documents (stale-while-revalidate)."""
        return await self.get_children()

    def _wrap_child(self, record: RawDocument) -> Document:
        return Document(record, client=self._client, store=self._store)
