"""Logging configuration shared by the server, the CLI and scripts."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from fieldops.utils.redact import redact

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class RedactingFilter(logging.Filter):
    """Rewrites each record's message with secrets and emails masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact(record.getMessage())
        record.args = None
        return True


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure application-wide logging.

    Args:
        level: Level name; defaults to LOG_LEVEL from the environment.
    """
    from fieldops.config import get_log_level

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RedactingFilter())

    logging.basicConfig(
        level=level or get_log_level(),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[handler],
        force=True,
    )

    # Reduce noise from third-party libraries
    for noisy in ("urllib3", "google", "google.auth", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger("fieldops").info("Logging initialized")
