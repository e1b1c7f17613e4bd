"""
Auth routes (MSAL / Entra ID).

Endpoints:
  - GET  /auth/signin
  - GET  /auth/callback
  - GET  /auth/signout
  - GET  /auth/status

Implementation notes:
  - Uses MSAL Authorization Code Flow.
  - The code is redeemed into a staging cache, because the user id that keys
    the session token cache is only known from the token response.
  - Sign-out clears the user's token cache before dropping the session.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode, urlparse

import msal
from flask import Blueprint, current_app, jsonify, redirect, request, session, url_for

from .config import AuthSettings
from .decorators import login_required
from .msal_auth import (
    TokenAcquisitionError,
    acquire_token_silently,
    build_msal_app,
    get_token_cache,
    get_user_id_from_claims,
    new_state_token,
)

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _settings() -> AuthSettings:
    settings = current_app.config.get("AUTH_SETTINGS")
    if not isinstance(settings, AuthSettings):
        raise RuntimeError("Auth settings not initialized. Call auth.config.init_auth(app) at startup.")
    return settings


def _redirect_uri() -> str:
    return _settings().redirect_uri or url_for("auth.callback", _external=True)


def _local_path(target: str | None) -> str:
    """Return `target` if it is a path on this site, else the home page."""
    if target and target.startswith("/") and not target.startswith("//") and "\\" not in target:
        parsed = urlparse(target)
        if not parsed.scheme and not parsed.netloc:
            return target
    return url_for("index")


def _error_redirect(message: str, debug: str | None = None):
    params = {"message": message}
    if debug:
        params["debug"] = debug
    return redirect(url_for("error", **params))


@auth_bp.get("/signin")
def signin():
    """
    Start the sign-in flow by redirecting the user to Microsoft.

    Optional query param:
      - next: where to redirect after successful sign-in
    """

    if session.get("user"):
        return redirect(url_for("index"))

    s = _settings()
    state = new_state_token()
    session["auth_state"] = state
    session["post_login_redirect"] = _local_path(request.args.get("next"))

    auth_url = build_msal_app().get_authorization_request_url(
        scopes=s.scopes,
        state=state,
        redirect_uri=_redirect_uri(),
        prompt="select_account",
    )
    return redirect(auth_url)


@auth_bp.get("/callback")
def callback():
    """Handle the OAuth2 redirect from Microsoft and store the user's tokens in the session."""

    # CSRF check
    expected_state = session.pop("auth_state", None)
    received_state = request.args.get("state")
    if not expected_state or expected_state != received_state:
        logger.warning("Sign-in callback rejected: state mismatch")
        return "Authentication failed (invalid state). Please try again.", 400

    code = request.args.get("code")
    if not code:
        # Azure sends error params when sign-in fails or is cancelled.
        error = request.args.get("error") or "unknown_error"
        desc = request.args.get("error_description")
        logger.warning("Sign-in callback without code: %s", error)
        return _error_redirect(error, desc)

    s = _settings()
    staging = msal.SerializableTokenCache()
    result = build_msal_app(cache=staging).acquire_token_by_authorization_code(
        code=code,
        scopes=s.scopes,
        redirect_uri=_redirect_uri(),
    )

    if not isinstance(result, dict) or "error" in result:
        result = result if isinstance(result, dict) else {}
        logger.warning("Authorization code redemption failed: %s", result.get("error"))
        return _error_redirect(
            "acquire_token_by_authorization_code returned an error",
            f"{result.get('error')} - {result.get('error_description')}",
        )

    claims = result.get("id_token_claims") or {}
    user_id = get_user_id_from_claims(claims)
    if not user_id:
        return _error_redirect("Authentication failed", "no user identifier claim returned by identity provider")

    get_token_cache(user_id).seed(staging.serialize())

    session["user"] = {
        "id": user_id,
        "name": claims.get("name") or claims.get("preferred_username"),
        "email": claims.get("preferred_username"),
    }
    logger.info("User signed in")

    return redirect(_local_path(session.pop("post_login_redirect", None)))


@auth_bp.get("/signout")
def signout():
    """
    Clear the user's token cache and session, then redirect to Microsoft logout.
    """

    s = _settings()
    user = session.get("user")
    user_id = user.get("id") if isinstance(user, dict) else None
    if user_id:
        get_token_cache(user_id).clear(s.client_id)
    session.clear()

    post_logout_redirect = url_for("index", _external=True)
    logout_url = f"{s.authority}/oauth2/v2.0/logout?{urlencode({'post_logout_redirect_uri': post_logout_redirect})}"
    return redirect(logout_url)


@auth_bp.get("/status")
@login_required
def status():
    """Report whether a token can be obtained silently for the signed-in user."""

    user = session["user"]
    try:
        result = acquire_token_silently(user["id"])
    except TokenAcquisitionError as e:
        logger.warning("Silent token acquisition failed: %s", e.error)
        return _error_redirect("Could not acquire a token silently", str(e))

    if not result:
        # Nothing usable cached for this user
        return redirect(url_for("index"))

    return jsonify(
        {
            "name": user.get("name"),
            "token_acquired": "access_token" in result,
            "expires_in": result.get("expires_in"),
        }
    )
