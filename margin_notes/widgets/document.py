"""Document editor, marker gutter and hover bar."""

from __future__ import annotations

from rich.text import Text
from textual import events
from textual.widgets import Static, TextArea

from .._utils import display_path
from ..constants import MARKER_ICON
from ..features.click_detector import SelectionOrigin
from ..features.markers import Marker


class DocumentArea(TextArea):
    """Editable document that remembers what last moved the caret.

    Pointer presses, key presses and programmatic jumps each stamp
    :attr:`input_origin` before the base class moves the selection, so the
    ``SelectionChanged`` handler can tell a click from arrow-key travel.
    """

    def __init__(self, text: str = "", **kwargs) -> None:
        kwargs.setdefault("soft_wrap", False)
        kwargs.setdefault("show_line_numbers", True)
        super().__init__(text, **kwargs)
        self.input_origin: SelectionOrigin = SelectionOrigin.COMMAND

    def on_mouse_down(self, event: events.MouseDown) -> None:
        self.input_origin = SelectionOrigin.POINTER

    def on_key(self, event: events.Key) -> None:
        self.input_origin = SelectionOrigin.KEYBOARD

    def on_paste(self, event: events.Paste) -> None:
        self.input_origin = SelectionOrigin.COMMAND

    def load_text(self, text: str) -> None:
        self.input_origin = SelectionOrigin.COMMAND
        super().load_text(text)

    def jump_to_line(self, line: int) -> None:
        """Put the caret at the start of *line* (clamped) and scroll to it."""
        self.input_origin = SelectionOrigin.COMMAND
        last = max(0, self.document.line_count - 1)
        self.move_cursor((min(max(line, 0), last), 0), center=True)

    @property
    def lines(self) -> list[str]:
        return list(self.document.lines)


class NotesGutter(Static):
    """Side panel listing the markers painted on the active document."""

    def show_markers(self, path: str | None, markers: list[Marker]) -> None:
        text = Text()
        if path:
            text.append(display_path(path), style="bold")
            text.append("\n\n")
        if not markers:
            text.append("No notes on this file.", style="dim")
        for marker in markers:
            preview = marker.note.text.splitlines()[0] if marker.note.text else ""
            if len(preview) > 28:
                preview = preview[:27] + "…"
            text.append(f"{MARKER_ICON} ", style="#0366d6")
            text.append(f"L{marker.line + 1:<4}", style="bold #0366d6")
            text.append(f" {preview}\n")
        self.update(text)


class HoverBar(Static):
    """Shows the wrapped note text and date for the caret line."""

    def show_marker(self, marker: Marker | None) -> None:
        if marker is None:
            self.update("")
            self.display = False
            return
        text = Text()
        text.append(f"{MARKER_ICON} line {marker.line + 1}\n", style="bold #0366d6")
        text.append(marker.hover.wrapped_text, style="#0366d6")
        text.append(f"\n\nAdded {marker.hover.added_at}", style="dim")
        self.update(text)
        self.display = True
