"""Logging configuration module."""

import logging
from typing import Optional

from layering.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logger according to service conventions."""

    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    # werkzeug logs every request at INFO; the app already does
    if settings.is_release:
        logging.getLogger("werkzeug").setLevel(logging.WARNING)
