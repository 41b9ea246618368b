"""Asynchronous HTTP transport for the SmartDB API.

:class:`Transport` wraps :class:`httpx.AsyncClient` and adds the three things
every SmartDB call needs: bearer-token injection from a
:class:`~smartdb.auth.TokenStore`, retry with exponential backoff on 5xx and
network errors, and mapping of error statuses onto the
:mod:`smartdb.exceptions` hierarchy. A 401 response also clears the stored
token, since the server no longer accepts it.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx

from smartdb.auth.token_store import TokenStore
from smartdb.exceptions import AuthError, ConnectionError_, NotFoundError, ServerError
from smartdb.models import RequestConfig
from smartdb.output import get_output


def normalize_base_url(url: str) -> str:
    """Make sure *url* starts with ``http://`` or ``https://`` and has no trailing ``/``."""
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    return url.rstrip("/")


class Transport:
    """Asynchronous HTTP transport for SmartDB calls.

    Can be used as an async context manager; otherwise the underlying
    :class:`httpx.AsyncClient` is opened on first request and released by
    :meth:`aclose`.

    Args:
        base_url: Normalised server URL.
        token_store: Where the bearer token is read from (and cleared on 401).
        config: Timeout, SSL verification and retry settings.

    Example::

        async with Transport("https://smartdb.example.org", MemoryTokenStore()) as t:
            projects = await t.request_json("GET", "/vector/projects")
    """

    def __init__(
        self,
        base_url: str,
        token_store: TokenStore,
        config: Optional[RequestConfig] = None,
    ) -> None:
        self._base_url = base_url
        self._token_store = token_store
        self._config = config or RequestConfig()
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        return self._base_url

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> Transport:
        self._ensure_client()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._config.timeout,
                verify=self._config.verify_ssl,
                follow_redirects=True,
            )
        return self._client

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        json_body: Optional[Any] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send a request with auth injection, retry, and error mapping.

        Args:
            method: HTTP method (GET, POST, PUT, PATCH, DELETE).
            path: URL path appended to the base URL.
            params: Query parameters.
            headers: Extra request headers.
            json_body: JSON-serialisable body.
            data: Form-encoded body (``application/x-www-form-urlencoded``).

        Returns:
            The :class:`httpx.Response` from the server.

        Raises:
            AuthError: On 401 / 403.
            NotFoundError: On 404.
            ServerError: On 5xx after all retries are exhausted, or other 4xx.
            ConnectionError_: On network / timeout errors after all retries.
        """
        merged_headers: dict[str, str] = dict(headers or {})
        token = self._token_store.token
        if token and "Authorization" not in merged_headers:
            merged_headers["Authorization"] = f"Bearer {token}"

        get_output().debug(f"{method} {self._base_url}{path}")
        response = await self._execute_with_retry(
            method, path, merged_headers, dict(params or {}), json_body, data,
        )
        self._map_response_error(response)
        return response

    async def request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and return its decoded JSON body.

        Raises:
            ServerError: If the body is not valid JSON.
        """
        response = await self.request(method, path, **kwargs)
        try:
            return response.json()
        except ValueError as exc:
            raise ServerError(
                f"Invalid JSON from {method} {path}", status_code=response.status_code,
            ) from exc

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _execute_with_retry(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        params: dict[str, Any],
        json_body: Any,
        data: dict[str, Any] | None,
    ) -> httpx.Response:
        """Execute the request with exponential-backoff retry.

        Retries on 5xx status codes and connection / timeout errors up to
        ``max_retries`` times. The delay doubles each attempt: 1 s, 2 s, 4 s, ...
        """
        client = self._ensure_client()
        max_retries = self._config.max_retries
        output = get_output()
        last_error: Exception | None = None

        for attempt in range(max_retries + 1):
            try:
                kwargs: dict[str, Any] = {
                    "method": method,
                    "url": path,
                    "headers": headers,
                    "params": params,
                }
                if data is not None:
                    kwargs["data"] = data
                elif json_body is not None:
                    kwargs["json"] = json_body

                response = await client.request(**kwargs)

                if response.status_code >= 500 and attempt < max_retries:
                    delay = 2 ** attempt
                    output.debug(
                        f"Server error {response.status_code}, retrying in {delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue

                return response

            except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
                last_error = exc
                if attempt < max_retries:
                    delay = 2 ** attempt
                    output.debug(
                        f"Connection error: {exc}, retrying in {delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue

                raise ConnectionError_(
                    f"Connection failed after {max_retries + 1} attempts: {exc}"
                ) from exc

        if last_error is not None:  # pragma: no cover
            raise ConnectionError_(str(last_error)) from last_error
        raise ServerError("Request failed after all retries")  # pragma: no cover

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return

        try:
            detail = response.json()
            if isinstance(detail, dict):
                msg = detail.get("message") or detail.get("error") or detail.get("detail") or ""
            else:
                msg = str(detail)
        except Exception:
            msg = response.text[:200] if response.text else ""

        prefix = f"HTTP {status}"
        full_msg = f"{prefix}: {msg}" if msg else prefix

        if status == 401:
            self._token_store.clear()
        if status in (401, 403):
            raise AuthError(full_msg, status_code=status)
        if status == 404:
            raise NotFoundError(full_msg)
        raise ServerError(full_msg, status_code=status)
