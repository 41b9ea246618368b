"""The SmartDB session client.

:class:`SmartDBClient` is the entry point of the SDK. It owns everything that
lives for one session and threads it into each entity wrapper it creates:

* one :class:`~smartdb.cache.store.KeyValueStore` (built from
  ``ClientConfig.cache`` unless passed in) shared by every
  :class:`~smartdb.cache.domain.DomainView` and wrapper;
* one :class:`~smartdb.cache.refresh.RefreshQueue` for background refreshes;
* one :class:`~smartdb.client.transport.Transport` and its token store.

Lookups by id consult the relevant domain first and only hit the network on
a miss.
"""

from __future__ import annotations

from typing import Any, Callable, Optional
from urllib.parse import quote

from smartdb.auth.token_store import FileTokenStore, MemoryTokenStore, TokenEntry, TokenStore
from smartdb.cache.domain import Domain, DomainView
from smartdb.cache.refresh import RefreshQueue
from smartdb.cache.store import DiskStore, KeyValueStore, build_store
from smartdb.client.transport import Transport, normalize_base_url
from smartdb.config import load_client_config
from smartdb.entities import Document, Project
from smartdb.exceptions import AuthError, ConfigError, SmartDBError
from smartdb.models import (
    ChatResponse,
    ClientConfig,
    ConversationMessage,
    EntityId,
    RawChunk,
    SearchResult,
    TokenData,
    User,
)
from smartdb.output import OutputManager, get_output, set_output


class SmartDBClient:
    """Client for one SmartDB server session.

    Args:
        url: Server URL. Falls back to ``config.base_url`` (and through it to
            ``SMARTDB_URL`` / the user config file).
        config: Client configuration. Resolved with
            :func:`~smartdb.config.load_client_config` when omitted.
        store: Entity cache to use. Built from ``config.cache`` when omitted.
        token_store: Bearer-token storage. Defaults to an in-memory store, or
            a :class:`~smartdb.auth.FileTokenStore` when
            ``config.persist_token`` is set.

    Example::

        async with SmartDBClient("smartdb.example.org") as client:
            await client.login("ada", "secret")
            for project in await client.get_projects():
                docs = await project.get_documents()
    """

    def __init__(
        self,
        url: Optional[str] = None,
        config: Optional[ClientConfig] = None,
        store: Optional[KeyValueStore] = None,
        token_store: Optional[TokenStore] = None,
    ) -> None:
        if config is None:
            config = load_client_config(url)
        base_url = url or config.base_url
        if not base_url:
            raise ConfigError("No SmartDB URL given (pass url, set SMARTDB_URL or base_url in config)")
        self._config = config
        self._base_url = normalize_base_url(base_url)

        if config.verbose:
            set_output(OutputManager(verbose=True))

        self._owns_store = store is None
        self._store = store if store is not None else build_store(config.cache)
        if token_store is None:
            token_store = (
                FileTokenStore(self._base_url) if config.persist_token else MemoryTokenStore()
            )
        self._token_store = token_store
        self._transport = Transport(self._base_url, token_store, config.request)
        self._refresh_queue = RefreshQueue()

        self.on_login_success: Optional[Callable[[], None]] = None
        self.on_logout: Optional[Callable[[], None]] = None

        get_output().debug(f"SmartDBClient initialized with base URL: {self._base_url}")

    # ------------------------------------------------------------------ #
    # Session
    # ------------------------------------------------------------------ #

    @property
    def url(self) -> str:
        return self._base_url

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @property
    def refresh_queue(self) -> RefreshQueue:
        return self._refresh_queue

    @property
    def is_logged_in(self) -> bool:
        return self._token_store.token is not None

    async def __aenter__(self) -> SmartDBClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Wait for background refreshes, then release the transport and owned store."""
        await self._refresh_queue.drain()
        await self._transport.aclose()
        if self._owns_store and isinstance(self._store, DiskStore):
            self._store.close()

    async def request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send an authenticated request and return the decoded JSON body."""
        return await self._transport.request_json(method, path, **kwargs)

    async def login(self, username: str, password: str) -> None:
        """Exchange credentials for a bearer token and store it.

        Raises:
            AuthError: If the server rejects the credentials or returns no token.
        """
        form = {
            "grant_type": "password",
            "username": username,
            "password": password,
            "client_id": self._config.client_id,
            "client_secret": "",
            "scope": "",
        }
        try:
            payload = await self.request_json("POST", "/token", data=form)
        except AuthError as exc:
            raise AuthError(f"Failed to get token: {exc}") from exc
        token = TokenData.model_validate(payload)
        if not token.access_token:
            raise AuthError("No access token in response")
        self._token_store.save(
            TokenEntry(access_token=token.access_token, token_type=token.token_type)
        )
        if self.on_login_success is not None:
            self.on_login_success()
        get_output().debug("Login successful, token stored")

    async def logout(self) -> None:
        """Drop the cache (when the backend can be cleared) and the token."""
        if self._store.supports_clear:
            self._store.clear()
        self._token_store.clear()
        if self.on_logout is not None:
            self.on_logout()
        get_output().debug("Logged out, token cleared")

    # ------------------------------------------------------------------ #
    # Users, search and chat
    # ------------------------------------------------------------------ #

    async def get_current_user(self) -> User:
        return User.model_validate(await self.request_json("GET", "/users/me"))

    async def semantic_search(
        self, query: str, project: Optional[EntityId] = None,
    ) -> list[SearchResult]:
        params: dict[str, Any] = {"query": query}
        if project is not None:
            params["project"] = str(project)
        payload = await self.request_json("GET", "/semantic-search", params=params)
        return [SearchResult.model_validate(item) for item in payload]

    async def chat(
        self,
        question: str,
        model: str,
        project_id: Optional[EntityId] = None,
        include: Optional[list[str]] = None,
        exclude: Optional[list[str]] = None,
        conversation: Optional[list[ConversationMessage]] = None,
    ) -> ChatResponse:
        body = {
            "query": question,
            "model": model,
            "include": include or [],
            "exclude": exclude or [],
            "conversation": [m.model_dump(mode="json") for m in conversation or []],
            "project": project_id,
        }
        return ChatResponse.model_validate(
            await self.request_json("POST", "/chat", json_body=body)
        )

    async def get_user_by_username(self, username: str) -> Optional[User]:
        users = self._view(Domain.USER)
        cached = users.get(username)
        if cached is not None:
            get_output().debug(f"User {username} found in cache")
            return User.model_validate(cached)
        try:
            user = User.model_validate(
                await self.request_json("GET", f"/users/by-username/{quote(username, safe='')}")
            )
        except SmartDBError:
            return None
        users.set(user.username, user.model_dump(mode="json"))
        return user

    async def get_user_by_id(self, user_id: EntityId) -> Optional[User]:
        users = self._view(Domain.USER)
        for cached in users.values():
            if str(cached.get("id")) == str(user_id):
                return User.model_validate(cached)
        try:
            user = User.model_validate(await self.request_json("GET", f"/users/{user_id}"))
        except SmartDBError:
            return None
        users.set(user.username, user.model_dump(mode="json"))
        return user

    # ------------------------------------------------------------------ #
    # Projects
    # ------------------------------------------------------------------ #

    async def get_projects(self) -> list[Project]:
        payload = await self.request_json("GET", "/vector/projects")
        projects = [Project(item, client=self, store=self._store) for item in payload]
        view = self._view(Domain.PROJECT)
        for project in projects:
            view.set(project.id, project.to_record())
        return projects

    async def get_project_by_id(self, project_id: EntityId) -> Project:
        view = self._view(Domain.PROJECT)
        cached = view.get(project_id)
        if cached is not None:
            get_output().debug(f"Project {project_id} found in cache")
            return Project(cached, client=self, store=self._store)
        project = Project(
            await self.request_json("GET", f"/vector/projects/{project_id}"),
            client=self,
            store=self._store,
        )
        view.set(project.id, project.to_record())
        return project

    # ------------------------------------------------------------------ #
    # Documents and chunks
    # ------------------------------------------------------------------ #

    async def get_documents(self) -> list[Document]:
        payload = await self.request_json("GET", "/vector/documents")
        documents = [self._remember_document(item) for item in payload.get("documents", [])]
        return documents

    async def get_document_by_id(self, document_id: EntityId) -> Document:
        cached = self._view(Domain.DOCUMENT).get(document_id)
        if cached is not None:
            get_output().debug(f"Document {document_id} found in cache")
            return Document(cached, client=self, store=self._store)
        return self._remember_document(
            await self.request_json("GET", f"/vector/documents/{document_id}")
        )

    async def get_document_by_chunk_id(self, chunk_id: EntityId) -> Optional[Document]:
        try:
            payload = await self.request_json("GET", f"/vector/chunks/{chunk_id}/document")
        except SmartDBError:
            return None
        return self._remember_document(payload)

    async def get_document_by_title(self, title: str) -> Optional[Document]:
        payload = await self.request_json(
            "GET", f"/vector/documents/by-title/{quote(title, safe='')}"
        )
        if not payload or not payload.get("document"):
            return None
        return self._remember_document(payload["document"])

    async def get_chunk_by_id(self, chunk_id: EntityId) -> RawChunk:
        chunks = self._view(Domain.CHUNK)
        cached = chunks.get(chunk_id)
        if cached is not None:
            get_output().debug(f"Chunk {chunk_id} found in cache")
            return RawChunk.model_validate(cached)
        chunk = RawChunk.model_validate(
            await self.request_json("GET", f"/vector/chunks/{chunk_id}")
        )
        chunks.set(chunk.id, chunk.model_dump(mode="json"))
        return chunk

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _view(self, domain: Domain) -> DomainView:
        return DomainView(self._store, domain)

    def _remember_document(self, data: dict[str, Any]) -> Document:
        document = Document(data, client=self, store=self._store)
        self._view(Domain.DOCUMENT).set(document.id, document.to_record())
        return document
