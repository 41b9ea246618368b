"""Canonical Pydantic models shared across all smartdb modules.

The models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheBackend`, :class:`CacheConfig`, :class:`RequestConfig` and
    :class:`ClientConfig`.

**Backend records** -- typed views over the JSON payloads returned by the
SmartDB API: :class:`RawProject`, :class:`RawDocument`, :class:`RawChunk`,
:class:`User`, :class:`TokenData`, :class:`SearchResult`,
:class:`ChatResponse` and :class:`ConversationMessage`.

Backend records only declare the fields the SDK reads. Everything else the
server sends is preserved via ``extra="allow"`` and survives a
``model_dump`` round-trip through the cache.
"""

from __future__ import annotations

import enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CACHE_PREFIX = "smartdb_cache_"

EntityId = Union[int, str]


# --- Configuration ---


class CacheBackend(str, enum.Enum):
    """Available :class:`~smartdb.cache.store.KeyValueStore` backends."""

    MEMORY = "memory"
    DISK = "disk"


class CacheConfig(BaseModel):
    """Entity cache settings stored in :class:`ClientConfig`."""

    backend: CacheBackend = Field(
        default=CacheBackend.MEMORY, description="Store backend: memory or disk"
    )
    prefix: str = Field(
        default=DEFAULT_CACHE_PREFIX,
        description="Key prefix used by the disk backend to isolate its entries",
    )
    directory: Optional[str] = Field(
        default=None,
        description="Directory for the disk backend (defaults to the XDG cache dir)",
    )


class RequestConfig(BaseModel):
    """Default HTTP request settings applied to every API call."""

    timeout: int = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    max_retries: int = Field(default=3, description="Max retry attempts")


class ClientConfig(BaseModel):
    """Configuration for one :class:`~smartdb.client.SmartDBClient` session.

    Loaded by :func:`~smartdb.config.load_client_config`, which layers
    explicit arguments and ``SMARTDB_*`` environment variables over the
    user config file.
    """

    base_url: Optional[str] = Field(default=None, description="SmartDB server URL")
    verbose: bool = Field(default=False, description="Emit debug diagnostics")
    client_id: str = Field(default="frontend", description="OAuth2 client id for login")
    persist_token: bool = Field(
        default=False, description="Keep the bearer token on disk across sessions"
    )
    cache: CacheConfig = Field(default_factory=CacheConfig)
    request: RequestConfig = Field(default_factory=RequestConfig)


# --- Backend records ---


class _Record(BaseModel):
    model_config = ConfigDict(extra="allow")


class RawProject(_Record):
    """A project as returned by ``/vector/projects``."""

    id: EntityId
    name: Optional[str] = None
    description: Optional[str] = None


class RawDocument(_Record):
    """A document as returned by ``/vector/documents``."""

    id: EntityId
    title: Optional[str] = None
    source: Optional[str] = None
    topics: list[str] = Field(default_factory=list)
    doi: Optional[str] = None
    authors: list[Any] = Field(default_factory=list)
    owner: Optional[str] = None
    public: bool = False
    url: Optional[str] = None


class RawChunk(_Record):
    """A text chunk belonging to a document."""

    id: EntityId
    document_id: Optional[EntityId] = None
    content: Optional[str] = None


class User(_Record):
    id: EntityId
    username: str
    email: Optional[str] = None


class TokenData(_Record):
    access_token: Optional[str] = None
    token_type: str = "bearer"


class ConversationMessage(_Record):
    role: str
    content: str


class SearchContent(_Record):
    page_content: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    type: Optional[str] = None


class SearchResult(_Record):
    result: SearchContent
    score: float
    type: Optional[str] = None


class ChatResponse(_Record):
    """Answer produced by ``POST /chat``; the payload shape is server-defined."""
