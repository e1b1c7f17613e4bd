"""
Route decorators for authentication.

- `login_required`: user must be signed in and still hold a usable token cache.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, TypeVar

from flask import redirect, request, session, url_for

from .msal_auth import get_token_cache

F = TypeVar("F", bound=Callable[..., object])

logger = logging.getLogger(__name__)


def check_signed_in_user(user: Any):
    """
    Return a sign-out redirect when `user` cannot be trusted, else None.

    Tokens live in the session, so a browser can come back with a valid
    session cookie after the token cache is gone (e.g. server restart with
    a non-persistent session backend). Such users are signed out.
    """

    if not isinstance(user, dict) or not user.get("id") or not user.get("name"):
        # Invalid principal
        return redirect(url_for("auth.signout"))

    if not get_token_cache(user["id"]).has_data():
        logger.info("Signed-in session has no token cache; forcing sign-out")
        return redirect(url_for("auth.signout"))

    return None


def login_required(fn: F) -> F:
    """Ensure the user is signed in with a usable token cache; otherwise redirect."""

    @wraps(fn)
    def wrapper(*args, **kwargs):  # type: ignore[no-untyped-def]
        user = session.get("user")
        if not user:
            return redirect(url_for("auth.signin", next=request.full_path.rstrip("?")))

        rejected = check_signed_in_user(user)
        if rejected is not None:
            return rejected
        return fn(*args, **kwargs)

    return wrapper  # type: ignore[return-value]
