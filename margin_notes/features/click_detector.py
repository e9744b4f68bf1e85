"""Click detection on note markers.

Caret moves arrive for many reasons: arrow keys, edits, programmatic
jumps, text selection.  :class:`ClickDetector` only reacts to a collapsed
caret placed by the pointer, debounces bursts, and fires when the caret
lands in the marker area at the end of a line that carries a note.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable

from ..constants import CLICK_DEBOUNCE, MARKER_CLICK_WINDOW
from ..log import logger
from .timers import SetTimer, SingleShotTimer


class SelectionOrigin(str, enum.Enum):
    POINTER = "pointer"
    KEYBOARD = "keyboard"
    COMMAND = "command"


class ClickState(str, enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class SelectionEvent:
    """One caret/selection change reported by the host."""

    path: str
    line: int
    column: int
    line_text: str
    is_empty: bool = True
    origin: SelectionOrigin = SelectionOrigin.POINTER


def in_marker_area(column: int, line_text: str, window: int = MARKER_CLICK_WINDOW) -> bool:
    """True when *column* falls in the last *window* characters of the line."""
    return column >= max(0, len(line_text) - window)


class ClickDetector:
    """Debounced idle → pending → resolved state machine.

    Parameters
    ----------
    has_note:
        ``(path, line) -> bool`` store lookup.
    on_note_click:
        Called with ``(path, line)`` when a marker click resolves.
    set_timer:
        Host one-shot timer factory (e.g. ``app.set_timer``).
    debounce:
        Quiet period in seconds before a candidate click is evaluated.
    window:
        Width of the marker area at the end of a line.
    """

    def __init__(
        self,
        *,
        has_note: Callable[[str, int], bool],
        on_note_click: Callable[[str, int], object],
        set_timer: SetTimer,
        debounce: float = CLICK_DEBOUNCE,
        window: int = MARKER_CLICK_WINDOW,
    ) -> None:
        self._has_note = has_note
        self._on_note_click = on_note_click
        self._timer = SingleShotTimer(set_timer, "click-debounce")
        self.debounce = debounce
        self.window = window

        self.state = ClickState.IDLE
        self.last_position: tuple[int, int] | None = None
        self._pending: SelectionEvent | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def qualifies(self, event: SelectionEvent) -> bool:
        """Whether *event* can start (or restart) a candidate click."""
        if not event.is_empty or event.origin != SelectionOrigin.POINTER:
            return False
        return (event.line, event.column) != self.last_position

    def handle_selection(self, event: SelectionEvent) -> None:
        """Feed one selection change into the state machine."""
        if not self.qualifies(event):
            return
        self.last_position = (event.line, event.column)
        self._pending = event
        self.state = ClickState.PENDING
        self._timer.schedule(self.debounce, self._resolve)

    def cancel(self) -> None:
        self._timer.cancel()
        self._pending = None
        self.state = ClickState.IDLE

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve(self) -> None:
        event, self._pending = self._pending, None
        self.state = ClickState.RESOLVED
        if event is None:
            return
        try:
            if not in_marker_area(event.column, event.line_text, self.window):
                return
            if self._has_note(event.path, event.line):
                logger.debug("marker click on %s:%d", event.path, event.line)
                self._on_note_click(event.path, event.line)
        except Exception:
            logger.debug("click resolution failed", exc_info=True)
