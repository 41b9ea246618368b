"""Entity wrappers over SmartDB backend records.

:class:`Project` lists :class:`Document` wrappers and :class:`Document`
lists :class:`~smartdb.models.RawChunk` records, both through the
stale-while-revalidate policy implemented in :class:`Entity`.
"""

from smartdb.entities.base import Entity
from smartdb.entities.document import Document
from smartdb.entities.project import Project

__all__ = ["Document", "Entity", "Project"]
