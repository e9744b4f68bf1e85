"""Line-anchored note store.

On-disk format::

    {"notes": [{"filePath": str, "line": int, "text": str, "timestamp": str}]}

The store keeps no long-lived state: every mutation loads the whole file,
changes it and writes it back atomically.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .._utils import canonical_path
from ..constants import MAX_NOTE_LENGTH, MSG_EMPTY_NOTE, MSG_NOTE_TOO_LONG
from ..log import logger
from ._base import CorruptStoreError, JsonStore


class NoteValidationError(ValueError):
    """User-supplied note input was rejected."""


class NoteSaveError(OSError):
    """The notes file could not be written."""


@dataclass(frozen=True)
class Note:
    """A single note bound to a file path and a 0-based line."""

    file_path: str
    line: int
    text: str
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "filePath": self.file_path,
            "line": self.line,
            "text": self.text,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Note | None:
        """Validate and normalize one stored entry; ``None`` if it is invalid."""
        if not isinstance(data, dict):
            return None
        file_path = data.get("filePath")
        line = data.get("line")
        text = data.get("text")
        timestamp = data.get("timestamp")
        if not isinstance(file_path, str) or not file_path:
            return None
        # bool is an int subclass; JSON true/false is not a line number
        if isinstance(line, bool) or not isinstance(line, (int, float)):
            return None
        if isinstance(line, float):
            if not math.isfinite(line) or not line.is_integer():
                return None
            line = int(line)
        if line < 0:
            return None
        if not isinstance(text, str) or not text.strip():
            return None
        if not isinstance(timestamp, str):
            return None
        return cls(
            file_path=canonical_path(file_path),
            line=line,
            text=text.strip(),
            timestamp=timestamp,
        )

    def matches(self, file_path: str, line: int) -> bool:
        return self.file_path == canonical_path(file_path) and self.line == line


def now_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def validate_note_text(text: str | None) -> str:
    """Return trimmed *text* or raise :class:`NoteValidationError`."""
    cleaned = (text or "").strip()
    if not cleaned:
        raise NoteValidationError(MSG_EMPTY_NOTE)
    if len(cleaned) > MAX_NOTE_LENGTH:
        raise NoteValidationError(MSG_NOTE_TOO_LONG)
    return cleaned


def _is_valid_collection(data: Any) -> bool:
    return isinstance(data, dict) and isinstance(data.get("notes"), list)


class NoteStore(JsonStore):
    """Notes keyed by ``(canonical file path, line)``."""

    def __init__(self, path: Path) -> None:
        super().__init__(path)

    def _default(self) -> dict:
        return {"notes": []}

    # -- whole-collection I/O -------------------------------------------------

    def load(self) -> list[Note]:
        """Load every valid note.

        A missing file is an empty collection.  An unparseable file, or one
        whose top level is not ``{"notes": [...]}``, is backed up and treated
        as empty.  Individual invalid entries are dropped.
        """
        try:
            data = self.read_raw()
        except CorruptStoreError:
            logger.warning("notes file %s is not valid JSON", self.path)
            self.backup_corrupt()
            return []
        except OSError:
            logger.error("failed to read notes file %s", self.path, exc_info=True)
            return []

        if data is None:
            logger.debug("no notes file at %s, starting empty", self.path)
            return []
        if not _is_valid_collection(data):
            logger.warning("notes file %s has an invalid structure", self.path)
            self.backup_corrupt()
            return []

        notes: list[Note] = []
        for entry in data["notes"]:
            note = Note.from_dict(entry)
            if note is None:
                logger.warning("dropping invalid note entry: %r", entry)
                continue
            notes.append(note)
        logger.debug("loaded %d notes from %s", len(notes), self.path)
        return notes

    def save(self, notes: list[Note] | dict) -> None:
        """Persist *notes* atomically.

        Accepts a list of :class:`Note` or a raw ``{"notes": [...]}`` dict.
        Raises :class:`NoteSaveError` on a bad shape or any write failure.
        """
        if isinstance(notes, dict):
            data = notes
        elif isinstance(notes, list):
            data = {"notes": [n.to_dict() if isinstance(n, Note) else n for n in notes]}
        else:
            data = notes
        if not _is_valid_collection(data):
            raise NoteSaveError("invalid notes data structure")
        try:
            self.save_raw(data)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("failed to save notes to %s", self.path, exc_info=True)
            raise NoteSaveError(f"could not write {self.path}: {exc}") from exc
        logger.debug("saved %d notes to %s", len(data["notes"]), self.path)

    def initialize(self) -> None:
        """Create an empty notes file if none exists yet."""
        if self.path.exists():
            return
        try:
            self.save(self._default())
        except NoteSaveError:
            logger.debug("could not initialize notes file %s", self.path, exc_info=True)

    # -- mutations ------------------------------------------------------------

    def upsert(self, file_path: str, line: int, text: str) -> bool:
        """Add or replace the note at ``(file_path, line)``.

        Returns ``True`` when the change was written.
        """
        notes = self.load()
        new_note = Note(
            file_path=canonical_path(file_path),
            line=line,
            text=text.strip(),
            timestamp=now_timestamp(),
        )
        for i, note in enumerate(notes):
            if note.matches(file_path, line):
                # Keep the timestamp strictly increasing across fast edits
                if new_note.timestamp <= note.timestamp:
                    new_note = replace(new_note, timestamp=_bump(note.timestamp))
                notes[i] = new_note
                logger.debug("note updated for %s:%d", new_note.file_path, line)
                break
        else:
            notes.append(new_note)
            logger.debug("note added for %s:%d", new_note.file_path, line)
        try:
            self.save(notes)
        except NoteSaveError:
            return False
        return True

    def delete(self, file_path: str, line: int) -> bool:
        """Remove the note at ``(file_path, line)``.

        Returns ``False`` without touching the file when nothing matched, or
        when the write failed.
        """
        notes = self.load()
        remaining = [n for n in notes if not n.matches(file_path, line)]
        if len(remaining) == len(notes):
            return False
        try:
            self.save(remaining)
        except NoteSaveError:
            return False
        return True

    # -- queries --------------------------------------------------------------

    def get(self, file_path: str, line: int) -> Note | None:
        for note in self.load():
            if note.matches(file_path, line):
                return note
        return None

    def exists(self, file_path: str, line: int) -> bool:
        return self.get(file_path, line) is not None

    def for_file(self, file_path: str) -> list[Note]:
        """Notes attached to *file_path*, in stored order."""
        target = canonical_path(file_path)
        return [n for n in self.load() if n.file_path == target]

    def all_sorted(self) -> list[Note]:
        """Every note, ordered by file path then line."""
        return sorted(self.load(), key=lambda n: (n.file_path, n.line))


def _bump(timestamp: str) -> str:
    """Return a timestamp one millisecond after *timestamp* (if parseable)."""
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return now_timestamp()
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        bumped = datetime.fromtimestamp(
            parsed.astimezone(timezone.utc).timestamp() + 0.001, timezone.utc
        )
    except (ValueError, OverflowError, OSError):
        # Already at the edge of the representable range
        return now_timestamp()
    return bumped.isoformat(timespec="milliseconds").replace("+00:00", "Z")
