# backend/salon_booking/logging_config.py
"""Logging configuration"""

import logging
import sys

from .config import settings


def setup_logging(level: str | None = None) -> None:
    """Configure application logging once, from LOG_LEVEL."""
    level_name = (level or settings.log_level).upper()

    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # SQL echo only when explicitly debugging
    if level_name != "DEBUG":
        for name in ("sqlalchemy.engine", "httpx"):
            logging.getLogger(name).setLevel(logging.WARNING)
