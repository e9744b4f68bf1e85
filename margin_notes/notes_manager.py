"""Notes manager: wires the store, the marker renderer and click detection.

The manager owns the host-event subscriptions and the timers that paper
over the host's readiness races (a freshly opened document may not be
painted on the first pass).  It is the only place user-facing messages
are produced; nothing below it talks to the user.
"""

from __future__ import annotations

import os
from typing import Any, Awaitable, Callable, Protocol

from ._utils import canonical_path, display_path, truncate_text
from .constants import (
    ACTIVE_CHANGE_DELAY,
    CLICK_DEBOUNCE,
    EVENT_ACTIVE_CHANGED,
    EVENT_DOCUMENT_OPENED,
    EVENT_SELECTION_CHANGED,
    MSG_ADD_ERROR,
    MSG_DELETE_CONFIRM,
    MSG_DELETE_ERROR,
    MSG_INVALID_PARAMS,
    MSG_LIST_ERROR,
    MSG_NO_ACTIVE_EDITOR,
    MSG_NO_NOTES,
    MSG_NOTE_ADDED,
    MSG_NOTE_DELETED,
    MSG_NOTE_NOT_FOUND,
    MSG_NOTE_UPDATED,
    MSG_OPEN_ERROR,
    MSG_READ_ERROR,
    MSG_UPDATE_ERROR,
    RENDER_RETRY_DELAY,
    SETTLE_DELAYS,
    WRAP_WIDTH,
)
from .features.click_detector import ClickDetector, SelectionEvent
from .features.events import Subscription
from .features.markers import DocumentSnapshot, Marker, MarkerRenderer
from .features.timers import SingleShotTimer, TimerHandle
from .log import logger
from .persistence.notes import Note, NoteStore, NoteValidationError, validate_note_text

NoteCallback = Callable[[str, int], Awaitable[Any]]

ACTION_EDIT = "edit"
ACTION_DELETE = "delete"


# ---------------------------------------------------------------------------
# Collaborator protocols
# ---------------------------------------------------------------------------


class EditorHostLike(Protocol):
    """What the manager needs from the host application."""

    def active_document(self) -> DocumentSnapshot | None: ...
    def visible_documents(self) -> list[DocumentSnapshot]: ...
    def paint_markers(self, path: str, markers: list[Marker]) -> None: ...
    def notify(self, message: str, *, severity: str = "information") -> Any: ...
    def set_timer(self, delay: float, callback: Callable[[], object]) -> TimerHandle: ...
    def subscribe(self, event: str, handler: Callable[..., object]) -> Subscription: ...
    def run_worker(self, work: Awaitable[Any]) -> Any: ...
    async def open_document(self, path: str, line: int) -> None: ...


class NoteUILike(Protocol):
    """Dialogs used to capture and confirm user intent."""

    async def prompt_note_text(
        self, file_path: str, line: int, initial_text: str
    ) -> str | None: ...

    async def choose_note_action(self, note: Note) -> str | None: ...

    async def confirm_delete(self, note: Note, message: str) -> bool: ...

    def show_notes_list(
        self,
        notes: list[Note],
        open_at: NoteCallback,
        delete_at: NoteCallback,
    ) -> None: ...


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class NotesManager:
    """Sequence note operations and keep markers in sync.

    Parameters
    ----------
    store:
        The :class:`NoteStore` backing every operation.
    host:
        Object satisfying :class:`EditorHostLike`.
    ui:
        Object satisfying :class:`NoteUILike`.
    """

    def __init__(
        self,
        *,
        store: NoteStore,
        host: EditorHostLike,
        ui: NoteUILike,
        wrap_width: int = WRAP_WIDTH,
        click_debounce: float = CLICK_DEBOUNCE,
        render_retry: float = RENDER_RETRY_DELAY,
    ) -> None:
        self.store = store
        self._host = host
        self._ui = ui
        self.renderer = MarkerRenderer(store, host, wrap_width=wrap_width)
        self.click_detector = ClickDetector(
            has_note=store.exists,
            on_note_click=self._on_marker_click,
            set_timer=host.set_timer,
            debounce=click_debounce,
        )
        self._render_retry = render_retry
        self._settle_timer = SingleShotTimer(host.set_timer, "startup-settle")
        self._retry_timer = SingleShotTimer(host.set_timer, "render-retry")
        self._active_timer = SingleShotTimer(host.set_timer, "active-change")
        self._subscriptions: list[Subscription] = []

    @property
    def notes_path(self) -> str:
        return str(self.store.path)

    @property
    def subscriptions(self) -> list[Subscription]:
        return list(self._subscriptions)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def activate(self) -> list[Subscription]:
        """Subscribe to host events and paint the active document."""
        self.store.initialize()
        logger.debug("notes manager active, notes file %s", self.store.path)
        self._subscriptions.extend(
            [
                self._host.subscribe(EVENT_DOCUMENT_OPENED, self._on_document_opened),
                self._host.subscribe(EVENT_ACTIVE_CHANGED, self._on_active_changed),
                self._host.subscribe(EVENT_SELECTION_CHANGED, self._on_selection_changed),
            ]
        )
        self._render_and_settle()
        return self.subscriptions

    def dispose(self) -> None:
        """Cancel timers and release every subscription."""
        self._settle_timer.cancel()
        self._retry_timer.cancel()
        self._active_timer.cancel()
        self.click_detector.cancel()
        for sub in self._subscriptions:
            sub.dispose()
        self._subscriptions.clear()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def refresh(self, target_path: str | None = None) -> None:
        self.renderer.refresh(target_path)

    def refresh_all_visible(self) -> None:
        self.renderer.refresh_all_visible()

    def notes_for_file(self, file_path: str) -> list[Note]:
        return self.store.for_file(file_path)

    def _render_and_settle(self) -> None:
        """Paint now, then again at each ``SETTLE_DELAYS`` offset."""
        self.refresh()
        self._settle_step(0, 0.0)

    def _settle_step(self, index: int, elapsed: float) -> None:
        if index >= len(SETTLE_DELAYS):
            return
        at = SETTLE_DELAYS[index]

        def fire() -> None:
            self.refresh()
            self.refresh_all_visible()
            self._settle_step(index + 1, at)

        self._settle_timer.schedule(max(0.0, at - elapsed), fire)

    def _render_after_change(self, file_path: str) -> None:
        self.refresh(file_path)
        self.refresh_all_visible()

        def retry() -> None:
            self.refresh(file_path)
            self.refresh_all_visible()

        self._retry_timer.schedule(self._render_retry, retry)

    # ------------------------------------------------------------------
    # Host events
    # ------------------------------------------------------------------

    def _on_document_opened(self, *_args: Any) -> None:
        self._render_and_settle()

    def _on_active_changed(self, *_args: Any) -> None:
        self._active_timer.schedule(ACTIVE_CHANGE_DELAY, self.refresh)

    def _on_selection_changed(self, event: SelectionEvent) -> None:
        self.click_detector.handle_selection(event)

    def _on_marker_click(self, file_path: str, line: int) -> None:
        self._host.run_worker(self.handle_note_click(file_path, line))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def add_note(self, file_path: str | None, line: int | None) -> bool:
        """Prompt for text and add (or replace) the note at *line*."""
        if (
            not file_path
            or not isinstance(line, int)
            or isinstance(line, bool)
            or line < 0
        ):
            self._host.notify(MSG_INVALID_PARAMS, severity="error")
            return False

        try:
            path = canonical_path(file_path)
            existing = self.store.get(path, line)
            text = await self._ui.prompt_note_text(
                path, line, existing.text if existing else ""
            )
            if text is None:
                logger.debug("add note cancelled for %s:%d", path, line)
                return False
            cleaned = validate_note_text(text)
            if not self.store.upsert(path, line, cleaned):
                self._host.notify(MSG_ADD_ERROR, severity="error")
                return False
        except NoteValidationError as exc:
            self._host.notify(str(exc), severity="warning")
            return False
        except Exception:
            logger.error("add note failed for %s:%s", file_path, line, exc_info=True)
            self._host.notify(MSG_ADD_ERROR, severity="error")
            return False

        self._host.notify(MSG_NOTE_UPDATED if existing else MSG_NOTE_ADDED)
        self._render_after_change(path)
        return True

    async def edit_note(self, note: Note) -> bool:
        try:
            text = await self._ui.prompt_note_text(note.file_path, note.line, note.text)
            if text is None:
                return False
            cleaned = validate_note_text(text)
            if not self.store.upsert(note.file_path, note.line, cleaned):
                self._host.notify(MSG_UPDATE_ERROR, severity="error")
                return False
        except NoteValidationError as exc:
            self._host.notify(str(exc), severity="warning")
            return False
        except Exception:
            logger.error("edit note failed for %s:%d", note.file_path, note.line, exc_info=True)
            self._host.notify(MSG_UPDATE_ERROR, severity="error")
            return False

        self._host.notify(MSG_NOTE_UPDATED)
        self._render_after_change(note.file_path)
        return True

    async def delete_note(self, note: Note) -> bool:
        """Ask for confirmation, then delete *note*."""
        message = MSG_DELETE_CONFIRM.format(
            file_name=os.path.basename(note.file_path) or "unknown file",
            line=note.line + 1,
            text=truncate_text(note.text),
        )
        try:
            if not await self._ui.confirm_delete(note, message):
                return False
            if not self.store.exists(note.file_path, note.line):
                self._host.notify(MSG_NOTE_NOT_FOUND, severity="warning")
                return False
            if not self.store.delete(note.file_path, note.line):
                self._host.notify(MSG_DELETE_ERROR, severity="error")
                return False
        except Exception:
            logger.error(
                "delete note failed for %s:%d", note.file_path, note.line, exc_info=True
            )
            self._host.notify(MSG_DELETE_ERROR, severity="error")
            return False

        self._host.notify(MSG_NOTE_DELETED)
        self._render_after_change(note.file_path)
        return True

    async def delete_at(self, file_path: str, line: int) -> bool:
        """Listing-surface callback: delete the note at ``(file_path, line)``."""
        try:
            note = self.store.get(file_path, line)
        except Exception:
            logger.error("note lookup failed for %s:%d", file_path, line, exc_info=True)
            self._host.notify(MSG_DELETE_ERROR, severity="error")
            return False
        if note is None:
            self._host.notify(MSG_NOTE_NOT_FOUND, severity="warning")
            return False
        return await self.delete_note(note)

    async def open_at(self, file_path: str, line: int) -> bool:
        """Listing-surface callback: open *file_path* with the caret on *line*."""
        try:
            await self._host.open_document(file_path, line)
        except Exception:
            logger.debug("open failed for %s", file_path, exc_info=True)
            self._host.notify(
                f"{MSG_OPEN_ERROR}: {os.path.basename(file_path)}", severity="error"
            )
            return False
        return True

    def show_all_notes(self) -> bool:
        try:
            notes = self.store.all_sorted()
        except Exception:
            logger.error("listing notes failed", exc_info=True)
            self._host.notify(MSG_LIST_ERROR, severity="error")
            return False
        if not notes:
            self._host.notify(MSG_NO_NOTES)
            return False
        self._ui.show_notes_list(notes, self.open_at, self.delete_at)
        return True

    async def show_note_for_line(self, line: int) -> bool:
        """Open the action dialog for the note on *line* of the active document."""
        snapshot = self._host.active_document()
        if snapshot is None:
            self._host.notify(MSG_NO_ACTIVE_EDITOR, severity="warning")
            return False
        try:
            if not self.store.exists(snapshot.path, line):
                return False
        except Exception:
            logger.error("note lookup failed for %s:%d", snapshot.path, line, exc_info=True)
            self._host.notify(MSG_READ_ERROR, severity="error")
            return False
        return await self.handle_note_click(snapshot.path, line)

    async def handle_note_click(self, file_path: str, line: int) -> bool:
        """Offer edit / delete for the note at ``(file_path, line)``."""
        try:
            note = self.store.get(file_path, line)
        except Exception:
            logger.error("note lookup failed for %s:%d", file_path, line, exc_info=True)
            self._host.notify(MSG_READ_ERROR, severity="error")
            return False
        if note is None:
            return False
        try:
            action = await self._ui.choose_note_action(note)
        except Exception:
            logger.debug("note action dialog failed", exc_info=True)
            return False
        if action == ACTION_EDIT:
            return await self.edit_note(note)
        if action == ACTION_DELETE:
            return await self.delete_note(note)
        logger.debug("no action chosen for note %s:%d", display_path(file_path), line)
        return False
