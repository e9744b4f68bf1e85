"""Textual application hosting the notes manager.

:class:`MarginNotesApp` is both the editor host (documents, timers, marker
painting, event subscriptions) and the dialog surface the manager prompts
through.  Only one document is shown at a time; the file list on the left
switches between the documents opened this session.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import Footer, OptionList, TextArea
from textual.widgets.option_list import Option

from ._utils import canonical_path, display_path
from .constants import (
    APP_NAME,
    EVENT_ACTIVE_CHANGED,
    EVENT_DOCUMENT_OPENED,
    EVENT_SELECTION_CHANGED,
    MSG_NO_ACTIVE_EDITOR,
)
from .features.click_detector import SelectionEvent, SelectionOrigin
from .features.events import EventHub, Subscription
from .features.markers import DocumentSnapshot, Marker
from .log import logger
from .notes_manager import NoteCallback, NotesManager
from .persistence.notes import Note, NoteStore
from .preferences import Preferences, load_preferences, resolve_notes_path
from .widgets import (
    ConfirmScreen,
    DocumentArea,
    HoverBar,
    NoteActionScreen,
    NoteEditorScreen,
    NotesGutter,
    NotesListScreen,
)


class MarginNotesApp(App):
    """margin-notes: annotate source lines from the terminal."""

    CSS_PATH = "styles.tcss"
    TITLE = APP_NAME

    BINDINGS = [
        Binding("ctrl+n", "add_note", "Note", show=True),
        Binding("ctrl+l", "list_notes", "All notes", show=True),
        Binding("ctrl+b", "show_note", "Show note", show=True),
        Binding("ctrl+r", "reload_preferences", "Reload", show=True),
        Binding("ctrl+q", "quit", "Quit", show=True),
    ]

    def __init__(
        self,
        files: list[str] | None = None,
        *,
        notes_file: str | None = None,
        prefs_path: Path | None = None,
        preferences: Preferences | None = None,
    ) -> None:
        super().__init__()
        self._initial_files = [canonical_path(f) for f in (files or [])]
        self._notes_file_override = notes_file
        self._prefs_path = prefs_path
        self._preferences = preferences
        self.event_hub = EventHub()
        self.manager: NotesManager | None = None
        # Unsaved buffers for documents that are open but not shown
        self._document_buffers: dict[str, str] = {}
        self._active_path: str | None = None
        self._note_markers: dict[int, Marker] = {}

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def compose(self) -> ComposeResult:
        with Horizontal(id="main-container"):
            yield OptionList(id="file-list")
            with Vertical(id="editor-column"):
                yield DocumentArea(id="document")
                yield HoverBar(id="hover-bar")
            yield NotesGutter(id="notes-gutter")
        yield Footer()

    async def on_mount(self) -> None:
        self.query_one("#hover-bar", HoverBar).display = False
        self._start_manager()
        for path in self._initial_files:
            try:
                await self.open_document(path, 0)
            except OSError as exc:
                self.notify(f"Could not open {display_path(path)}: {exc}", severity="error")
        self.query_one("#document", DocumentArea).focus()

    def on_unmount(self) -> None:
        if self.manager is not None:
            self.manager.dispose()

    def _start_manager(self) -> None:
        prefs = self._preferences or load_preferences(self._prefs_path)
        notes_file = self._notes_file_override or prefs.storage.notes_file
        store = NoteStore(resolve_notes_path(notes_file))
        self.manager = NotesManager(
            store=store,
            host=self,
            ui=self,
            wrap_width=prefs.display.wrap_width,
            click_debounce=prefs.timing.click_debounce,
            render_retry=prefs.timing.render_retry,
        )
        self.manager.activate()
        self.sub_title = display_path(str(store.path))

    # ------------------------------------------------------------------
    # Editor host interface
    # ------------------------------------------------------------------

    @property
    def document_area(self) -> DocumentArea:
        return self.query_one("#document", DocumentArea)

    @property
    def active_path(self) -> str | None:
        return self._active_path

    def active_document(self) -> DocumentSnapshot | None:
        if self._active_path is None:
            return None
        return DocumentSnapshot(self._active_path, self.document_area.lines)

    def visible_documents(self) -> list[DocumentSnapshot]:
        snapshot = self.active_document()
        return [snapshot] if snapshot is not None else []

    def paint_markers(self, path: str, markers: list[Marker]) -> None:
        if path != self._active_path:
            return
        self._note_markers = {m.line: m for m in markers}
        self.query_one("#notes-gutter", NotesGutter).show_markers(path, markers)
        self._update_hover(self.document_area.cursor_location[0])

    def subscribe(self, event: str, handler: Callable[..., object]) -> Subscription:
        return self.event_hub.subscribe(event, handler)

    async def open_document(self, path: str, line: int) -> None:
        """Show *path* (reading it from disk the first time) with the caret on *line*."""
        path = canonical_path(path)
        area = self.document_area
        if path != self._active_path:
            if path in self._document_buffers:
                text = self._document_buffers[path]
            else:
                text = Path(path).read_text(encoding="utf-8", errors="replace")
                self._add_to_file_list(path)
            if self._active_path is not None:
                self._document_buffers[self._active_path] = area.text
            self._document_buffers[path] = text
            self._active_path = path
            self._note_markers = {}
            area.load_text(text)
        area.jump_to_line(line)
        area.focus()
        logger.debug("opened %s at line %d", path, line)
        self.event_hub.emit(EVENT_DOCUMENT_OPENED, path)

    def _add_to_file_list(self, path: str) -> None:
        file_list = self.query_one("#file-list", OptionList)
        file_list.add_option(Option(display_path(path), id=path))

    # ------------------------------------------------------------------
    # Dialog interface
    # ------------------------------------------------------------------

    async def _wait_for(self, screen: Screen) -> Any:
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

        def done(result: Any) -> None:
            if not future.done():
                future.set_result(result)

        self.push_screen(screen, callback=done)
        return await future

    async def prompt_note_text(
        self, file_path: str, line: int, initial_text: str
    ) -> str | None:
        return await self._wait_for(NoteEditorScreen(file_path, line, initial_text))

    async def choose_note_action(self, note: Note) -> str | None:
        return await self._wait_for(NoteActionScreen(note))

    async def confirm_delete(self, note: Note, message: str) -> bool:
        return bool(await self._wait_for(ConfirmScreen(message)))

    def show_notes_list(
        self,
        notes: list[Note],
        open_at: NoteCallback,
        delete_at: NoteCallback,
    ) -> None:
        self.push_screen(NotesListScreen(notes, open_at, delete_at))

    # ------------------------------------------------------------------
    # Widget events
    # ------------------------------------------------------------------

    def on_text_area_selection_changed(self, event: TextArea.SelectionChanged) -> None:
        area = event.text_area
        if not isinstance(area, DocumentArea) or self._active_path is None:
            return
        row, column = event.selection.end
        self._update_hover(row)
        self.event_hub.emit(
            EVENT_SELECTION_CHANGED,
            SelectionEvent(
                path=self._active_path,
                line=row,
                column=column,
                line_text=area.document.get_line(row),
                is_empty=event.selection.is_empty,
                origin=area.input_origin,
            ),
        )
        # One input event accounts for one caret move
        area.input_origin = SelectionOrigin.COMMAND

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        if not isinstance(event.text_area, DocumentArea) or self.manager is None:
            return
        # Line count may have changed; repaint without touching the store
        if self._active_path is not None:
            self.manager.refresh(self._active_path)

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        if event.option_list.id != "file-list" or event.option.id is None:
            return
        path = event.option.id
        if path == self._active_path:
            return
        if self._active_path is not None:
            self._document_buffers[self._active_path] = self.document_area.text
        self._active_path = path
        self._note_markers = {}
        self.document_area.load_text(self._document_buffers.get(path, ""))
        self.document_area.jump_to_line(0)
        self.document_area.focus()
        self.event_hub.emit(EVENT_ACTIVE_CHANGED, path)

    def _update_hover(self, row: int) -> None:
        self.query_one("#hover-bar", HoverBar).show_marker(self._note_markers.get(row))

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def action_add_note(self) -> None:
        if self.manager is None:
            return
        if self._active_path is None:
            self.notify(MSG_NO_ACTIVE_EDITOR, severity="warning")
            return
        line = self.document_area.cursor_location[0]
        self.run_worker(self.manager.add_note(self._active_path, line))

    def action_list_notes(self) -> None:
        if self.manager is not None:
            self.manager.show_all_notes()

    def action_show_note(self) -> None:
        if self.manager is None:
            return
        line = self.document_area.cursor_location[0]
        self.run_worker(self.manager.show_note_for_line(line))

    def action_reload_preferences(self) -> None:
        """Rebuild the manager from freshly loaded preferences."""
        if self.manager is not None:
            self.manager.dispose()
        self._preferences = None
        self._start_manager()
        self.notify(f"Notes file: {self.sub_title}")


def run_app(
    files: list[str] | None = None,
    *,
    notes_file: str | None = None,
    prefs_path: Path | None = None,
) -> None:
    """Launch the TUI."""
    app = MarginNotesApp(files, notes_file=notes_file, prefs_path=prefs_path)
    app.run()
