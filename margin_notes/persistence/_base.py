"""Base JSON persistence store."""

from __future__ import annotations

import json
import os
import shutil
import tempfile
import time
from pathlib import Path

from ..log import logger


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class CorruptStoreError(ValueError):
    """The backing file exists but is not valid JSON."""


class JsonStore:
    """JSON file store with atomic write and backup of corrupt files.

    Subclasses override ``_default()`` to provide the empty-state value
    (``{}`` for dicts, ``[]`` for lists).
    """

    BACKUP_MARKER = "backup"

    def __init__(self, path: Path) -> None:
        self.path = path

    # -- core I/O -------------------------------------------------------------

    def read_raw(self) -> dict | list | None:
        """Parse the JSON file.

        Returns ``None`` when the file does not exist or is blank and raises
        :class:`CorruptStoreError` when it cannot be parsed.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as exc:
            raise CorruptStoreError(f"{self.path}: {exc}") from exc
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except (ValueError, RecursionError) as exc:
            # Deeply nested input exhausts the decoder's recursion limit
            raise CorruptStoreError(f"{self.path}: {exc}") from exc

    def save_raw(self, data: dict | list) -> None:
        """Atomically write *data* as pretty-printed JSON.

        The payload goes to a temporary file in the same directory which is
        then renamed over the target, so readers only ever see the old or the
        new file.  Parents are created as needed.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(data, indent=2, ensure_ascii=False)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

    def backup_corrupt(self) -> Path | None:
        """Copy the current file to ``<path>.backup.<epoch-millis>``.

        Never overwrites an earlier backup and never raises; returns the
        backup path, or ``None`` when nothing was copied.
        """
        try:
            if not self.path.exists():
                return None
            millis = _epoch_millis()
            backup = self._backup_path(millis)
            while backup.exists():
                millis += 1
                backup = self._backup_path(millis)
            shutil.copy2(self.path, backup)
            logger.warning("corrupt store %s backed up to %s", self.path, backup)
            return backup
        except OSError:
            logger.error("failed to back up corrupt store %s", self.path, exc_info=True)
            return None

    def _backup_path(self, millis: int) -> Path:
        return self.path.with_name(f"{self.path.name}.{self.BACKUP_MARKER}.{millis}")

    # -- override point -------------------------------------------------------

    def _default(self) -> dict | list:  # noqa: PLR6301
        """Return the empty-state value for this store (dict by default)."""
        return {}
