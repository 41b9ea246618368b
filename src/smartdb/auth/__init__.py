"""Bearer-token storage for smartdb sessions."""

from smartdb.auth.token_store import FileTokenStore, MemoryTokenStore, TokenEntry, TokenStore

__all__ = ["FileTokenStore", "MemoryTokenStore", "TokenEntry", "TokenStore"]
