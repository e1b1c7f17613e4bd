# Flask configuration loaded by app.create_app() via app.config.from_object().
import os

# Signs the session cookie. Required; create_app() refuses to start without it.
SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "")

# Token caches are kept in the session, which outgrows a cookie quickly, so
# sessions are stored server-side. Set to an empty value to fall back to
# Flask's signed cookie session.
SESSION_TYPE = os.getenv("SESSION_TYPE", "filesystem") or None
SESSION_FILE_DIR = os.getenv("FLASK_SESSION_DIR") or os.path.join(os.getcwd(), ".flask_session")
SESSION_PERMANENT = False
SESSION_USE_SIGNER = True

SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SAMESITE = "Lax"
SESSION_COOKIE_SECURE = os.getenv("FLASK_COOKIE_SECURE", "true").lower() == "true"
