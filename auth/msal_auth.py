"""
MSAL helpers.

This wraps MSAL (Microsoft Authentication Library) setup for Entra ID
authentication. We use the OAuth2 Authorization Code Flow, and keep each
user's MSAL token cache in their session (see `token_storage`).
"""

from __future__ import annotations

import secrets
from contextlib import contextmanager
from typing import Any, Iterator

import msal
from flask import Flask, current_app, session

from token_storage import MappingSessionStore, SessionTokenCache, TokenCacheHooks, TokenCacheLock

from .config import AuthSettings

LOCK_EXTENSION = "token_cache_lock"


class TokenAcquisitionError(RuntimeError):
    """MSAL returned an error response instead of a token."""

    def __init__(self, result: dict[str, Any]):
        self.error = result.get("error")
        self.description = result.get("error_description")
        super().__init__(f"{self.error}: {self.description}")


def _settings(app: Flask | None = None) -> AuthSettings:
    app = app or current_app  # type: ignore[assignment]
    settings = app.config.get("AUTH_SETTINGS")
    if not isinstance(settings, AuthSettings):
        raise RuntimeError("Auth settings not initialized. Call auth.config.init_auth(app) during app startup.")
    return settings


def _cache_lock(app: Flask | None = None) -> TokenCacheLock:
    app = app or current_app  # type: ignore[assignment]
    lock = app.extensions.get(LOCK_EXTENSION)
    if not isinstance(lock, TokenCacheLock):
        raise RuntimeError("Token cache lock not initialized. Call init_token_cache_lock(app) during app startup.")
    return lock


def init_token_cache_lock(app: Flask) -> TokenCacheLock:
    """Create the process-wide token cache lock and register it on `app`."""

    lock = TokenCacheLock(sharded=_settings(app).sharded_cache_lock)
    app.extensions[LOCK_EXTENSION] = lock
    return lock


def build_msal_app(app: Flask | None = None, cache: msal.TokenCache | None = None) -> msal.ConfidentialClientApplication:
    """Create an MSAL confidential client app, optionally bound to `cache`."""

    s = _settings(app)
    return msal.ConfidentialClientApplication(
        client_id=s.client_id,
        client_credential=s.client_secret,
        authority=s.authority,
        token_cache=cache,
    )


def get_token_cache(user_id: str) -> SessionTokenCache:
    """Build the current request's token cache for `user_id` over the Flask session."""

    return SessionTokenCache(
        user_id,
        MappingSessionStore(session),
        _cache_lock(),
        exclusive_persist=_settings().exclusive_cache_persist,
    )


class TokenAcquirer:
    """
    Runs MSAL cache reads/writes between the cache's access hooks.

    MSAL Python has no notification callbacks of its own, so every call that
    touches the cache goes through `_accessing()`.
    """

    def __init__(self, msal_app: msal.ClientApplication, hooks: TokenCacheHooks):
        self._app = msal_app
        self._hooks = hooks

    @contextmanager
    def _accessing(self) -> Iterator[None]:
        self._hooks.on_before_access()
        try:
            yield
        finally:
            self._hooks.on_after_access()

    def get_accounts(self) -> list[dict[str, Any]]:
        with self._accessing():
            return self._app.get_accounts()

    def acquire_token_silent(self, scopes: list[str], account: dict[str, Any]) -> dict[str, Any] | None:
        with self._accessing():
            return self._app.acquire_token_silent(scopes, account=account)


def acquire_token_silently(user_id: str) -> dict[str, Any] | None:
    """
    Return a token result for the signed-in user from their cached tokens.

    MSAL returns a still-valid cached access token, or redeems the refresh
    token for a new one. Returns None when nothing usable is cached.
    """

    cache = get_token_cache(user_id)
    acquirer = TokenAcquirer(build_msal_app(cache=cache), cache)

    accounts = acquirer.get_accounts()
    if not accounts:
        return None

    result = acquirer.acquire_token_silent(_settings().scopes, account=accounts[0])
    if result and "error" in result:
        raise TokenAcquisitionError(result)
    return result


def new_state_token() -> str:
    """Generate a cryptographically secure state token for CSRF protection."""

    return secrets.token_urlsafe(32)


def get_user_id_from_claims(claims: dict[str, Any] | None) -> str | None:
    """
    Extract a stable user identifier from ID token claims.

    Entra ID puts the directory object id in `oid`; `sub` is the fallback
    for tokens that lack it.
    """

    if not claims:
        return None
    for key in ("oid", "sub"):
        val = claims.get(key)
        if isinstance(val, str) and val.strip():
            return val.strip()
    return None
