"""HTTP client module for smartdb.

Classes:
    :class:`SmartDBClient` -- the session object: login/logout, cached
    lookups, and the factory for :class:`~smartdb.entities.Project` and
    :class:`~smartdb.entities.Document` wrappers.
    :class:`Transport` -- non-blocking :mod:`httpx` transport with bearer
    auth, retry with exponential backoff, and error mapping.

Example::

    from smartdb.client import SmartDBClient

    async with SmartDBClient("https://smartdb.example.org") as client:
        project = await client.get_project_by_id(7)
"""

from smartdb.client.smartdb_client import SmartDBClient
from smartdb.client.transport import Transport, normalize_base_url

__all__ = ["SmartDBClient", "Transport", "normalize_base_url"]
