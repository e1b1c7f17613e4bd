"""
Session-backed token storage.

Keeps each signed-in user's MSAL token cache inside their web session so it
survives across requests (and process restarts, with server-side sessions),
with reader/writer locking around every load and persist.
"""

from .locks import ReadWriteLock, TokenCacheLock
from .session_store import MappingSessionStore, SessionStore
from .session_token_cache import SessionTokenCache, TokenCacheHooks, cache_key_for

__all__ = [
    "MappingSessionStore",
    "ReadWriteLock",
    "SessionStore",
    "SessionTokenCache",
    "TokenCacheHooks",
    "TokenCacheLock",
    "cache_key_for",
]
