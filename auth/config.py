"""
Authentication configuration.

All secrets are sourced from environment variables. This module validates
presence of required settings and exposes a single `init_auth(app)`
entrypoint.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

from flask import Flask

DEFAULT_SCOPES = "User.Read Mail.Read Calendars.Read Contacts.Read"


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class AuthSettings:
    """Configuration needed for Entra ID / MSAL auth and the session token cache."""

    client_id: str
    client_secret: str
    tenant_id: str
    scopes: list[str]
    redirect_uri: str | None = None
    sharded_cache_lock: bool = False
    exclusive_cache_persist: bool = False

    @property
    def authority(self) -> str:
        return f"https://login.microsoftonline.com/{self.tenant_id}"


def parse_scopes(raw: str) -> list[str]:
    """Split a scope list separated by spaces and/or commas."""

    return [s for s in re.split(r"[\s,]+", raw) if s]


def load_auth_settings() -> AuthSettings:
    """
    Load auth settings from environment variables.

    Required:
      - AAD_CLIENT_ID
      - AAD_CLIENT_SECRET

    Optional:
      - AAD_TENANT_ID (default: common)
      - AAD_REDIRECT_URI (default: derived from the callback route)
      - AAD_SCOPES (default: 'User.Read Mail.Read Calendars.Read Contacts.Read')
      - TOKEN_CACHE_SHARDED_LOCK (default: false)
      - TOKEN_CACHE_EXCLUSIVE_PERSIST (default: false)
    """

    client_id = os.environ.get("AAD_CLIENT_ID", "").strip()
    client_secret = os.environ.get("AAD_CLIENT_SECRET", "").strip()

    missing = [k for k, v in [("AAD_CLIENT_ID", client_id), ("AAD_CLIENT_SECRET", client_secret)] if not v]
    if missing:
        raise RuntimeError(
            "Missing required auth environment variables: "
            + ", ".join(missing)
            + ". Set them in your environment (or .env) before starting the app."
        )

    tenant_id = os.environ.get("AAD_TENANT_ID", "").strip() or "common"
    redirect_uri = os.environ.get("AAD_REDIRECT_URI", "").strip() or None
    scopes = parse_scopes(os.environ.get("AAD_SCOPES", DEFAULT_SCOPES))

    return AuthSettings(
        client_id=client_id,
        client_secret=client_secret,
        tenant_id=tenant_id,
        scopes=scopes,
        redirect_uri=redirect_uri,
        sharded_cache_lock=_env_flag("TOKEN_CACHE_SHARDED_LOCK"),
        exclusive_cache_persist=_env_flag("TOKEN_CACHE_EXCLUSIVE_PERSIST"),
    )


def init_auth(app: Flask, settings: AuthSettings | None = None) -> AuthSettings:
    """
    Validate and attach auth settings to Flask `app.config`.

    Returns the parsed `AuthSettings` for convenience.
    """

    settings = settings or load_auth_settings()
    app.config["AUTH_SETTINGS"] = settings
    return settings
