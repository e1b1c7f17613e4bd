"""Shared fixtures: a test app, an in-memory session store, and MSAL cache builders."""

import base64
import json

import msal
import pytest

from app import create_app
from auth.config import AuthSettings
from token_storage import MappingSessionStore

CLIENT_ID = "11111111-2222-3333-4444-555555555555"
TOKEN_ENDPOINT = "https://login.microsoftonline.com/common/oauth2/v2.0/token"


def _client_info(uid: str, utid: str) -> str:
    raw = json.dumps({"uid": uid, "utid": utid}).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def add_tokens(cache, client_id=CLIENT_ID, uid="alice-123", access_token="an-access-token", expires_in=3600):
    """Record a token response in `cache` the way MSAL does after a redemption."""
    cache.add(
        {
            "client_id": client_id,
            "scope": ["User.Read"],
            "token_endpoint": TOKEN_ENDPOINT,
            "response": {
                "access_token": access_token,
                "refresh_token": "a-refresh-token",
                "expires_in": expires_in,
                "token_type": "Bearer",
                "client_info": _client_info(uid, "tenant-1"),
            },
        }
    )
    return cache


class SpyStore(MappingSessionStore):
    """Session store that counts mutations."""

    def __init__(self, mapping=None):
        super().__init__({} if mapping is None else mapping)
        self.sets = []
        self.removes = []

    def set(self, key, blob):
        self.sets.append(key)
        super().set(key, blob)

    def remove(self, key):
        self.removes.append(key)
        super().remove(key)


@pytest.fixture
def record_tokens():
    return add_tokens


@pytest.fixture
def make_store():
    return SpyStore


@pytest.fixture
def token_blob():
    """Factory for a serialized MSAL cache holding one user's tokens."""

    def make(**kwargs):
        return add_tokens(msal.SerializableTokenCache(), **kwargs).serialize()

    return make


@pytest.fixture
def store():
    return SpyStore()


@pytest.fixture
def auth_settings():
    return AuthSettings(
        client_id=CLIENT_ID,
        client_secret="test-secret",
        tenant_id="common",
        scopes=["User.Read", "Mail.Read"],
        redirect_uri="http://localhost/auth/callback",
    )


@pytest.fixture
def app(auth_settings):
    return create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret-key",
            "SESSION_TYPE": None,
            "SESSION_COOKIE_SECURE": False,
        },
        auth_settings=auth_settings,
    )


@pytest.fixture
def client(app):
    return app.test_client()
