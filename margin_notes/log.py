"""Package-wide logger.

Textual owns the terminal, so nothing is printed by default.  The CLI
attaches a file handler when ``--log-file`` is given.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger("margin_notes")
logger.addHandler(logging.NullHandler())

_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def log_to_file(path: Path, level: int = logging.DEBUG) -> logging.Handler:
    """Attach a file handler to the package logger and return it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
    return handler
