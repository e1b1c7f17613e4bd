"""
MSAL token cache persisted in the user's web session.

A `SessionTokenCache` is cheap: build one per request that needs tokens. It
loads the user's blob from the session on construction and again right before
MSAL reads the cache (`on_before_access`), and writes it back right after MSAL
changed it (`on_after_access`).

Load and persist take the key's lock in shared mode unless
`exclusive_persist` is set. With shared persists two concurrent requests of
the same session may both write; the last write wins.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Protocol

import msal

from .locks import ReadWriteLock, TokenCacheLock
from .session_store import SessionStore

CACHE_KEY_SUFFIX = "_TokenCache"


def cache_key_for(user_id: str) -> str:
    return user_id + CACHE_KEY_SUFFIX


class TokenCacheHooks(Protocol):
    """Callbacks a token acquirer invokes around each cache access."""

    def on_before_access(self) -> None: ...

    def on_after_access(self) -> None: ...


class SessionTokenCache(msal.SerializableTokenCache):
    """Per-user MSAL cache whose state lives in the session under `<user_id>_TokenCache`."""

    def __init__(
        self,
        user_id: str,
        store: SessionStore,
        lock: TokenCacheLock,
        exclusive_persist: bool = False,
    ):
        super().__init__()
        self.user_id = user_id
        self.cache_key = cache_key_for(user_id)
        self.exclusive_persist = exclusive_persist
        self._store = store
        # msal.TokenCache already owns `self._lock`
        self._session_lock: ReadWriteLock = lock.for_key(self.cache_key)
        self.load()

    def load(self) -> None:
        """Replace the in-memory state with the blob currently in the session."""
        with self._session_lock.read():
            self.deserialize(self._store.get(self.cache_key))

    def persist(self) -> bool:
        """Write the in-memory state to the session if it changed. Returns whether it wrote."""
        if not self.has_state_changed:
            return False
        with self._persist_lock():
            # Cleared before writing so a change made during the write is kept for the next persist.
            self.has_state_changed = False
            self._store.set(self.cache_key, self.serialize())
        return True

    def clear(self, client_id: str) -> None:
        """Drop everything issued to `client_id` and remove the session entry."""
        for credential_type in (
            self.CredentialType.ACCESS_TOKEN,
            self.CredentialType.REFRESH_TOKEN,
            self.CredentialType.ID_TOKEN,
            self.CredentialType.APP_METADATA,
        ):
            for entry in list(self.search(credential_type, query={"client_id": client_id})):
                self.modify(credential_type, entry)

        if not self._holds_tokens():
            for account in list(self.search(self.CredentialType.ACCOUNT)):
                self.modify(self.CredentialType.ACCOUNT, account)

        self.has_state_changed = False
        self._store.remove(self.cache_key)

    def has_data(self) -> bool:
        """True when the cache holds at least one refresh or access token.

        Searching access tokens lets MSAL evict expired ones, which marks the
        cache changed. That eviction is not written back on its own account.
        """
        changed = self.has_state_changed
        try:
            return self._holds_tokens()
        finally:
            self.has_state_changed = changed

    def seed(self, blob: str) -> None:
        """Adopt `blob` (e.g. from a staging cache used for code redemption) and persist it."""
        self.deserialize(blob)
        self.has_state_changed = True
        self.persist()

    def on_before_access(self) -> None:
        self.load()

    def on_after_access(self) -> None:
        if self.has_state_changed:
            self.persist()

    def _holds_tokens(self) -> bool:
        return any(
            True
            for credential_type in (self.CredentialType.REFRESH_TOKEN, self.CredentialType.ACCESS_TOKEN)
            for _ in self.search(credential_type)
        )

    @contextmanager
    def _persist_lock(self) -> Iterator[None]:
        guard = self._session_lock.write() if self.exclusive_persist else self._session_lock.read()
        with guard:
            yield
