"""Modal screen widgets for margin-notes."""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from rich.markup import escape
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label, OptionList, Static, TextArea
from textual.widgets.option_list import Option

from .._utils import display_path, format_timestamp, truncate_text
from ..constants import MARKER_ICON, MAX_NOTE_LENGTH
from ..persistence.notes import Note

NoteCallback = Callable[[str, int], Awaitable[Any]]


class NoteEditorScreen(ModalScreen[str | None]):
    """Capture note text.  Dismisses with the text, or ``None`` on cancel."""

    BINDINGS = [
        Binding("escape", "cancel", show=False),
        Binding("ctrl+s", "submit", "Save"),
    ]

    def __init__(self, file_path: str, line: int, initial_text: str = "") -> None:
        super().__init__()
        self._file_path = file_path
        self._line = line
        self._initial_text = initial_text

    def compose(self) -> ComposeResult:
        verb = "Edit" if self._initial_text else "Add"
        with Vertical(id="note-editor", classes="modal-box"):
            yield Label(
                f"{MARKER_ICON} {verb} note • "
                f"{escape(display_path(self._file_path))} (line {self._line + 1})",
                classes="modal-title",
            )
            yield TextArea(self._initial_text, id="note-text")
            yield Static(f"Max {MAX_NOTE_LENGTH} characters", id="note-hint")
            with Horizontal(classes="modal-buttons"):
                yield Button("Save", variant="primary", id="save")
                yield Button("Cancel", id="cancel")

    def on_mount(self) -> None:
        self.query_one("#note-text", TextArea).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "save":
            self.action_submit()
        else:
            self.action_cancel()

    def action_submit(self) -> None:
        self.dismiss(self.query_one("#note-text", TextArea).text)

    def action_cancel(self) -> None:
        self.dismiss(None)


class NoteActionScreen(ModalScreen[str | None]):
    """Edit / delete / cancel chooser for a clicked note."""

    BINDINGS = [
        Binding("escape", "cancel", show=False),
    ]

    def __init__(self, note: Note) -> None:
        super().__init__()
        self._note = note

    def compose(self) -> ComposeResult:
        note = self._note
        with Vertical(id="note-actions", classes="modal-box"):
            yield Label(
                f"{MARKER_ICON} {escape(display_path(note.file_path))} "
                f"(line {note.line + 1}) • "
                f"{format_timestamp(note.timestamp, date_only=True)}",
                classes="modal-title",
            )
            yield Static(escape(truncate_text(note.text)), id="note-preview")
            yield OptionList(
                Option("Edit: change the text of this note", id="edit"),
                Option("Delete: remove this note", id="delete"),
                Option("Cancel", id="cancel"),
                id="action-list",
            )

    def on_mount(self) -> None:
        self.query_one("#action-list", OptionList).focus()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        event.stop()
        choice = event.option.id
        self.dismiss(None if choice == "cancel" else choice)

    def action_cancel(self) -> None:
        self.dismiss(None)


class ConfirmScreen(ModalScreen[bool]):
    """Yes/no confirmation.  Dismisses with ``True`` only on confirm."""

    BINDINGS = [
        Binding("escape", "cancel", show=False),
    ]

    def __init__(self, message: str, confirm_label: str = "Delete") -> None:
        super().__init__()
        self._message = message
        self._confirm_label = confirm_label

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm", classes="modal-box"):
            yield Static(escape(self._message), id="confirm-message")
            with Horizontal(classes="modal-buttons"):
                yield Button(self._confirm_label, variant="error", id="confirm-yes")
                yield Button("Cancel", id="confirm-no")

    def on_mount(self) -> None:
        self.query_one("#confirm-no", Button).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "confirm-yes")

    def action_cancel(self) -> None:
        self.dismiss(False)


class NotesListScreen(ModalScreen[None]):
    """Every note, sorted by file and line.  Enter opens, ``d`` deletes."""

    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("d", "delete_selected", "Delete"),
    ]

    def __init__(
        self,
        notes: list[Note],
        open_at: NoteCallback,
        delete_at: NoteCallback,
    ) -> None:
        super().__init__()
        self._notes = list(notes)
        self._open_at = open_at
        self._delete_at = delete_at

    def compose(self) -> ComposeResult:
        options = [
            Option(
                f"{escape(display_path(n.file_path))}:{n.line + 1}  "
                f"{escape(truncate_text(n.text))}",
                id=str(i),
            )
            for i, n in enumerate(self._notes)
        ]
        with Vertical(id="notes-list", classes="modal-box"):
            yield Label(f"{MARKER_ICON} All notes ({len(self._notes)})", classes="modal-title")
            yield OptionList(*options, id="notes-options")
            yield Static("Enter: open   d: delete   Esc: close", id="notes-help")

    def on_mount(self) -> None:
        self.query_one("#notes-options", OptionList).focus()

    def _selected(self) -> Note | None:
        index = self.query_one("#notes-options", OptionList).highlighted
        if index is None or not 0 <= index < len(self._notes):
            return None
        return self._notes[index]

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        event.stop()
        note = self._notes[int(event.option.id)]
        app = self.app
        self.dismiss(None)
        app.run_worker(self._open_at(note.file_path, note.line))

    def action_delete_selected(self) -> None:
        note = self._selected()
        if note is None:
            return
        app = self.app
        self.dismiss(None)
        app.run_worker(self._delete_at(note.file_path, note.line))

    def action_close(self) -> None:
        self.dismiss(None)
