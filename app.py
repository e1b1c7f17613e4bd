"""
Flask web app: Microsoft Entra ID sign-in with a session-backed MSAL token cache.

This app includes:
  - Microsoft Entra ID authentication via MSAL (see `auth/`)
  - Per-user MSAL token caches stored in the session (see `token_storage/`)
  - Server-side sessions (filesystem) via Flask-Session

Run locally:
    flask --app app:create_app run --port 5000
"""

import os

from dotenv import load_dotenv

load_dotenv()

from flask import Flask, jsonify, request, session, url_for  # noqa: E402
from flask_session import Session  # noqa: E402
from werkzeug.middleware.proxy_fix import ProxyFix  # noqa: E402

import app_config  # noqa: E402
from auth.config import AuthSettings, init_auth  # noqa: E402
from auth.decorators import check_signed_in_user  # noqa: E402
from auth.msal_auth import init_token_cache_lock  # noqa: E402
from auth.routes import auth_bp  # noqa: E402
from logging_config import configure_logging  # noqa: E402


def index():
    """Home page: anonymous greeting, or the signed-in user once their token cache checks out."""
    user = session.get("user")
    if not user:
        return jsonify({"signed_in": False, "signin_url": url_for("auth.signin")})

    rejected = check_signed_in_user(user)
    if rejected is not None:
        return rejected
    return jsonify({"signed_in": True, "name": user["name"]})


def error():
    return jsonify(
        {
            "message": request.args.get("message", ""),
            "debug": request.args.get("debug", ""),
        }
    )


def create_app(test_config: dict | None = None, auth_settings: AuthSettings | None = None) -> Flask:
    """
    Build the Flask app.

    `test_config` overrides values from `app_config`; `auth_settings` skips
    reading the AAD_* environment variables.
    """
    configure_logging()

    app = Flask(__name__)
    app.config.from_object(app_config)
    if test_config:
        app.config.update(test_config)

    # Respect proxy headers so url_for(..., _external=True) builds the right scheme/host.
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)  # type: ignore[assignment]

    # ---- Security / Sessions ----
    if not app.config.get("SECRET_KEY"):
        raise RuntimeError(
            "Missing FLASK_SECRET_KEY. Set it as an environment variable (or in .env) before starting."
        )

    if app.config.get("SESSION_TYPE"):
        if app.config["SESSION_TYPE"] == "filesystem":
            os.makedirs(app.config["SESSION_FILE_DIR"], exist_ok=True)
        Session(app)

    # ---- Authentication ----
    init_auth(app, auth_settings)
    init_token_cache_lock(app)
    app.register_blueprint(auth_bp)

    app.add_url_rule("/", "index", index)
    app.add_url_rule("/error", "error", error)
    return app


if __name__ == "__main__":
    create_app().run(debug=True, port=5000)
