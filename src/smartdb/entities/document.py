"""Document wrapper: metadata accessors, chunk listing and citation helpers."""

from __future__ import annotations

import re
from typing import Any, Optional

from smartdb.cache.domain import Domain
from smartdb.entities.base import Entity
from smartdb.models import RawChunk, RawDocument, User

# @article{citationKey, ...
_BIBTEX_KEY = re.compile(r"@(\w+)\{([^,]+),")


class Document(Entity[RawDocument, RawChunk]):
    """A SmartDB document. Its children are :class:`~smartdb.models.RawChunk` records.

    Chunks are cached under the ``chunk`` domain of the shared store, so a
    document obtained from a project listing and the same document fetched
    directly from the client see the same cached chunks.
    """

    domain = Domain.DOCUMENT
    child_domain = Domain.CHUNK
    record_model = RawDocument
    child_model = RawChunk
    children_segment = "chunks"
    uri_root = "/vector/documents"

    @property
    def title(self) -> Optional[str]:
        return self._data.title

    @property
    def source(self) -> Optional[str]:
        return self._data.source

    @property
    def topics(self) -> list[str]:
        return self._data.topics

    @property
    def doi(self) -> Optional[str]:
        return self._data.doi

    @property
    def authors(self) -> list[Any]:
        return self._data.authors

    @property
    def owner_name(self) -> Optional[str]:
        return self._data.owner or None

    @property
    def is_public(self) -> bool:
        return self._data.public

    @property
    def url(self) -> Optional[str]:
        return self._data.url

    def get(self, key: str, default: Any = None) -> Any:
        """Return any field of the raw record, including server-side extras."""
        return self.to_record().get(key, default)

    async def get_chunks(self) -> list[RawChunk]:
        """List this document's chunks (stale-while-revalidate)."""
        return await self.get_children()

    async def get_owner(self) -> Optional[User]:
        client = self._require_client()
        if not self.owner_name:
            return None
        return await client.get_user_by_username(self.owner_name)

    async def get_citation(self) -> Optional[str]:
        """Return the BibTeX citation for this document."""
        client = self._require_client()
        return await client.request_json("GET", "/cite/bibtex", params={"documents": self.id})

    async def get_citation_key(self) -> Optional[str]:
        """Return the citation key parsed from :meth:`get_citation`, if any."""
        cite = await self.get_citation()
        if not cite:
            return None
        match = _BIBTEX_KEY.search(cite)
        return match.group(2) if match else None
