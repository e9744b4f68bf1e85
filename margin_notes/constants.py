"""Module-level constants for margin-notes."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "margin-notes"

# Config / data locations
APP_HOME = Path.home() / ".margin-notes"
PREFS_PATH = APP_HOME / "preferences.yaml"
NOTES_DIR = APP_HOME / "notes"
DEFAULT_NOTES_FILE = ".margin-notes.json"

# Note limits
MAX_NOTE_LENGTH = 1000
TRUNCATE_PREVIEW_LENGTH = 50

# Display
WRAP_WIDTH = 60
MARKER_ICON = "\U0001f4ac"  # speech balloon, painted at end of line
UNKNOWN_DATE = "unknown date"

# Click detection: a caret landing within this many characters of the end
# of a line counts as a click on the marker.
MARKER_CLICK_WINDOW = 10

# Timing (seconds)
CLICK_DEBOUNCE = 0.1
RENDER_RETRY_DELAY = 0.2
ACTIVE_CHANGE_DELAY = 0.1
# Re-render after open/activate at these offsets from the event
SETTLE_DELAYS: tuple[float, ...] = (0.5, 1.0)

# Host events the orchestrator subscribes to
EVENT_DOCUMENT_OPENED = "document_opened"
EVENT_ACTIVE_CHANGED = "active_changed"
EVENT_SELECTION_CHANGED = "selection_changed"

# User-facing messages
MSG_NO_ACTIVE_EDITOR = "No active document."
MSG_INVALID_PARAMS = "Invalid note parameters."
MSG_ADD_ERROR = "Could not save note."
MSG_UPDATE_ERROR = "Could not update note."
MSG_DELETE_ERROR = "Could not delete note."
MSG_OPEN_ERROR = "Could not open file"
MSG_READ_ERROR = "Could not read notes."
MSG_LIST_ERROR = "Could not list notes."
MSG_NOTE_ADDED = "Note added"
MSG_NOTE_UPDATED = "Note updated"
MSG_NOTE_DELETED = "Note deleted"
MSG_EMPTY_NOTE = "A note cannot be empty."
MSG_NOTE_TOO_LONG = f"A note cannot exceed {MAX_NOTE_LENGTH} characters."
MSG_NO_NOTES = "No notes found."
MSG_NOTE_NOT_FOUND = "Note not found, it may already have been deleted."
MSG_DELETE_CONFIRM = 'Delete the note on {file_name} (line {line})?\n\n"{text}"'
