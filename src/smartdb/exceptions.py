"""Exception hierarchy for smartdb.

All exceptions inherit from :class:`SmartDBError`. HTTP-level errors carry
the response ``status_code`` when one is available so callers can branch on
it without parsing the message.

Subclass hierarchy::

    SmartDBError
    +-- CacheError
    |   +-- CacheDecodeError
    +-- ClientNotSetError
    +-- AuthError           (401 / 403, failed login)
    +-- NotFoundError       (404)
    +-- ServerError         (5xx, unexpected 4xx)
    +-- ConnectionError_    (network failures after retries)
    +-- ConfigError
"""

from __future__ import annotations


class SmartDBError(Exception):
    """Base exception for all smartdb errors.

    Args:
        message: Human-readable error description.
        status_code: Optional HTTP status code that caused the error.
    """

    status_code: int | None = None

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class CacheError(SmartDBError):
    """Raised for failures inside a cache backend."""


class CacheDecodeError(CacheError):
    """Raised when a persisted cache value cannot be reconstructed from its text form.

    Never treated as a cache miss: silently dropping the entry would hide
    corruption from the entity layer.

    Args:
        key: The backend key whose value failed to decode.
        message: Description of the decode failure.
    """

    def __init__(self, key: str, message: str):
        super().__init__(f"Cannot decode cached value for '{key}': {message}")
        self.key = key


class ClientNotSetError(SmartDBError):
    """Raised when an entity wrapper needs the network but has no client."""


class AuthError(SmartDBError):
    """Raised when authentication fails (bad credentials, expired or missing token)."""

    status_code = 401


class NotFoundError(SmartDBError):
    """Raised when the API returns HTTP 404 (resource not found)."""

    status_code = 404


class ServerError(SmartDBError):
    """Raised when the API returns an HTTP 5xx server error or an unmapped 4xx."""

    status_code = 500


class ConnectionError_(SmartDBError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """


class ConfigError(SmartDBError):
    """Raised for configuration problems (invalid JSON, bad values)."""
