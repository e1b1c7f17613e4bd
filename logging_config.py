"""Logging setup for the web app."""

import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str | None = None) -> None:
    """
    Send application logs to stderr.

    The level comes from `level`, else LOG_LEVEL, else INFO. Calling this
    more than once does not stack handlers.
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger()
    if not any(getattr(h, "_app_handler", False) for h in root_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        handler._app_handler = True  # type: ignore[attr-defined]
        root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # MSAL logs every HTTP exchange at INFO
    logging.getLogger("msal").setLevel(max(log_level, logging.WARNING))
