"""smartdb -- async client SDK for the SmartDB document/project/chat backend.

The SDK keeps one entity cache per session and serves child listings
stale-while-revalidate: once a project's documents (or a document's chunks)
have been listed, later listings return the cached ones immediately and
refresh them in the background.

Typical use::

    from smartdb import SmartDBClient

    async with SmartDBClient("https://smartdb.example.org") as client:
        await client.login("ada", "secret")
        project = await client.get_project_by_id(7)
        docs = await project.get_documents()

Modules:
    client: Session client and HTTP transport.
    entities: Project and Document wrappers.
    cache: Key-value stores, domain views and the background refresh queue.
    auth: Bearer-token storage.
    models: Pydantic configuration models and backend records.
    config: XDG-aware configuration loading.
    exceptions: Exception hierarchy.
    output: stderr diagnostics with Rich support.
"""

from smartdb.client import SmartDBClient
from smartdb.entities import Document, Project

__version__ = "0.3.0"

__all__ = ["Document", "Project", "SmartDBClient", "__version__"]
