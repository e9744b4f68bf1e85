"""User preferences for margin-notes.

Loads settings from ~/.margin-notes/preferences.yaml.
Falls back to sensible defaults if the file doesn't exist or is invalid.
Creates a default file on first run so users can discover and edit it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .constants import (
    CLICK_DEBOUNCE,
    DEFAULT_NOTES_FILE,
    NOTES_DIR,
    PREFS_PATH,
    RENDER_RETRY_DELAY,
    WRAP_WIDTH,
)
from .log import logger

_DEFAULT_YAML = """\
# margin-notes preferences
# Delete this file to reset to defaults.

storage:
  notes_file: ".margin-notes.json"   # file name (kept in ~/.margin-notes/notes) or absolute path

display:
  wrap_width: 60                     # column at which note previews wrap

timing:
  click_debounce: 0.1                # seconds before a marker click is evaluated
  render_retry: 0.2                  # seconds before markers are repainted after a change
"""


@dataclass
class StoragePreferences:
    """Where notes are kept."""

    notes_file: str = DEFAULT_NOTES_FILE


@dataclass
class DisplayPreferences:
    """Marker preview settings."""

    wrap_width: int = WRAP_WIDTH


@dataclass
class TimingPreferences:
    """Debounce and repaint delays (seconds)."""

    click_debounce: float = CLICK_DEBOUNCE
    render_retry: float = RENDER_RETRY_DELAY


@dataclass
class Preferences:
    """Top-level preferences."""

    storage: StoragePreferences = field(default_factory=StoragePreferences)
    display: DisplayPreferences = field(default_factory=DisplayPreferences)
    timing: TimingPreferences = field(default_factory=TimingPreferences)


def load_preferences(path: Path | None = None) -> Preferences:
    """Load preferences from YAML file.

    Falls back to sensible defaults if the file doesn't exist or is invalid.
    Creates a default preferences file on first run.
    """
    path = path or PREFS_PATH
    prefs = Preferences()

    if path.exists():
        try:
            data = yaml.safe_load(path.read_text()) or {}
            if isinstance(data.get("storage"), dict):
                sdata = data["storage"]
                if sdata.get("notes_file"):
                    prefs.storage.notes_file = str(sdata["notes_file"])
            if isinstance(data.get("display"), dict):
                ddata = data["display"]
                if "wrap_width" in ddata:
                    width = int(ddata["wrap_width"])
                    if width > 0:
                        prefs.display.wrap_width = width
            if isinstance(data.get("timing"), dict):
                tdata = data["timing"]
                if "click_debounce" in tdata:
                    prefs.timing.click_debounce = max(0.0, float(tdata["click_debounce"]))
                if "render_retry" in tdata:
                    prefs.timing.render_retry = max(0.0, float(tdata["render_retry"]))
        except Exception:
            logger.debug("invalid preferences file %s, using defaults", path, exc_info=True)
    else:
        # Create default file for user to customize
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(_DEFAULT_YAML)
        except OSError:
            logger.debug("could not write default preferences to %s", path, exc_info=True)

    return prefs


def resolve_notes_path(notes_file: str, notes_dir: Path | None = None) -> Path:
    """Resolve the configured notes file to a concrete path.

    Absolute (or ``~``) paths are used as-is.  Plain names live in
    *notes_dir*; if that directory cannot be created the file goes in the
    home directory instead.
    """
    expanded = Path(os.path.expanduser(notes_file))
    if expanded.is_absolute():
        return expanded
    notes_dir = notes_dir or NOTES_DIR
    try:
        notes_dir.mkdir(parents=True, exist_ok=True)
        return notes_dir / expanded
    except OSError:
        logger.warning("could not create %s, storing notes in home directory", notes_dir)
        return Path.home() / expanded
