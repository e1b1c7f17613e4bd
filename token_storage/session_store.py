"""Session store adapter used by `SessionTokenCache`."""

from __future__ import annotations

from typing import MutableMapping, Protocol


class SessionStore(Protocol):
    """Key/blob mapping tied to one browser session."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, blob: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MappingSessionStore:
    """
    `SessionStore` over any mutable mapping.

    In a request this wraps `flask.session`; tests wrap a plain dict.
    """

    def __init__(self, mapping: MutableMapping):
        self._mapping = mapping

    def get(self, key: str) -> str | None:
        return self._mapping.get(key)

    def set(self, key: str, blob: str) -> None:
        self._mapping[key] = blob

    def remove(self, key: str) -> None:
        self._mapping.pop(key, None)
