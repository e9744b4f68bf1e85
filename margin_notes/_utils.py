"""Text and path helpers shared by the resolver, the screens and the CLI."""

from __future__ import annotations

import os
from datetime import datetime

from .constants import TRUNCATE_PREVIEW_LENGTH, UNKNOWN_DATE, WRAP_WIDTH


def canonical_path(path: str | os.PathLike[str]) -> str:
    """Return the absolute, normalized form of *path* used as a lookup key."""
    return os.path.abspath(os.path.expanduser(os.fspath(path)))


def format_text_for_display(text: str, width: int = WRAP_WIDTH) -> str:
    """Greedy word-wrap *text* at *width* columns.

    Words are split on single spaces.  A word wider than *width* is never
    broken; it simply ends up on a line of its own.
    """
    if not text:
        return ""

    lines: list[str] = []
    current = ""
    for word in text.split(" "):
        if len(current) + len(word) + 1 <= width:
            current = f"{current} {word}" if current else word
        else:
            if current:
                lines.append(current)
            current = word
    if current:
        lines.append(current)
    return "\n".join(lines)


def truncate_text(text: str, max_length: int = TRUNCATE_PREVIEW_LENGTH) -> str:
    """Shorten *text* to *max_length* characters with a trailing ``...``."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def format_timestamp(timestamp: str, *, date_only: bool = False) -> str:
    """Render an ISO-8601 *timestamp* for humans.

    Returns ``"unknown date"`` when the value does not parse.
    """
    try:
        # fromisoformat() on older interpreters rejects the trailing "Z"
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return UNKNOWN_DATE
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    if date_only:
        return parsed.strftime("%Y-%m-%d")
    return parsed.strftime("%Y-%m-%d %H:%M")


def display_path(path: str, root: str | None = None) -> str:
    """Path relative to *root* (cwd by default), or the bare file name outside it."""
    root = root or os.getcwd()
    try:
        rel = os.path.relpath(path, root)
    except ValueError:
        # Different drive on Windows
        return os.path.basename(path)
    if rel.startswith(".."):
        return os.path.basename(path)
    return rel
