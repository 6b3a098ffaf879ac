"""Logging setup shared by the CLI and the HTTP API.

Text logs with UTC timestamps. Handlers already installed on the root logger
(uvicorn, pytest) are left alone.
"""

from __future__ import annotations

import logging
import sys
import time
from typing import Optional

from .config import get_settings


class TextFormatter(logging.Formatter):
    converter = time.gmtime  # UTC

    def __init__(self) -> None:
        super().__init__("%(asctime)sZ | %(levelname)s | %(name)s | %(message)s")


def setup_logging(level: Optional[str] = None) -> None:
    level = (level or get_settings().log_level).upper()

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))

    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(TextFormatter())
        root.addHandler(handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)
