"""Shared test fixtures for the margin-notes test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest

from margin_notes.features.events import EventHub, Subscription
from margin_notes.features.markers import DocumentSnapshot, Marker
from margin_notes.persistence.notes import Note, NoteStore


# -- Timers -------------------------------------------------------------------


class FakeTimer:
    """Stand-in for a Textual ``Timer``: fires only when told to."""

    def __init__(self, delay: float, callback: Callable[[], object]) -> None:
        self.delay = delay
        self.callback = callback
        self.stopped = False
        self.fired = False

    def stop(self) -> None:
        self.stopped = True

    def fire(self) -> None:
        if self.stopped or self.fired:
            return
        self.fired = True
        self.callback()


class FakeScheduler:
    """Callable usable as ``set_timer`` that records every timer it starts."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], object]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.stopped and not t.fired]

    def run_all(self, limit: int = 50) -> int:
        """Fire pending timers (including ones they schedule).  Returns the count."""
        fired = 0
        while self.pending and fired < limit:
            self.pending[0].fire()
            fired += 1
        return fired


# -- Host / dialog doubles ------------------------------------------------------


class FakeHost:
    """In-memory editor host satisfying ``EditorHostLike``."""

    def __init__(self) -> None:
        self.documents: dict[str, list[str]] = {}
        self.active: str | None = None
        self.visible: list[str] = []
        self.painted: dict[str, list[Marker]] = {}
        self.paint_calls: list[str] = []
        self.notifications: list[tuple[str, str]] = []
        self.workers: list[Any] = []
        self.opened: list[tuple[str, int]] = []
        self.open_error: Exception | None = None
        self.events = EventHub()
        self.set_timer = FakeScheduler()

    def add_document(self, path: str, lines: list[str], *, active: bool = True) -> None:
        self.documents[path] = lines
        if path not in self.visible:
            self.visible.append(path)
        if active:
            self.active = path

    def active_document(self) -> DocumentSnapshot | None:
        if self.active is None:
            return None
        return DocumentSnapshot(self.active, self.documents[self.active])

    def visible_documents(self) -> list[DocumentSnapshot]:
        return [DocumentSnapshot(p, self.documents[p]) for p in self.visible]

    def paint_markers(self, path: str, markers: list[Marker]) -> None:
        self.painted[path] = markers
        self.paint_calls.append(path)

    def notify(self, message: str, *, severity: str = "information") -> None:
        self.notifications.append((message, severity))

    def subscribe(self, event: str, handler: Callable[..., object]) -> Subscription:
        return self.events.subscribe(event, handler)

    def run_worker(self, work: Any) -> None:
        self.workers.append(work)

    async def open_document(self, path: str, line: int) -> None:
        if self.open_error is not None:
            raise self.open_error
        self.opened.append((path, line))

    @property
    def messages(self) -> list[str]:
        return [m for m, _ in self.notifications]


class FakeUI:
    """Scripted dialog surface satisfying ``NoteUILike``."""

    def __init__(self) -> None:
        self.texts: list[str | None] = []
        self.actions: list[str | None] = []
        self.confirms: list[bool] = []
        self.prompts: list[tuple[str, int, str]] = []
        self.confirm_messages: list[str] = []
        self.listed: list[tuple[list[Note], Any, Any]] = []

    async def prompt_note_text(self, file_path: str, line: int, initial_text: str):
        self.prompts.append((file_path, line, initial_text))
        return self.texts.pop(0) if self.texts else None

    async def choose_note_action(self, note: Note):
        return self.actions.pop(0) if self.actions else None

    async def confirm_delete(self, note: Note, message: str) -> bool:
        self.confirm_messages.append(message)
        return self.confirms.pop(0) if self.confirms else False

    def show_notes_list(self, notes, open_at, delete_at) -> None:
        self.listed.append((notes, open_at, delete_at))


# -- Fixtures -------------------------------------------------------------------


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for file-based tests."""
    return tmp_path


@pytest.fixture
def notes_path(tmp_path: Path) -> Path:
    return tmp_path / "store" / "notes.json"


@pytest.fixture
def store(notes_path: Path) -> NoteStore:
    return NoteStore(notes_path)


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def ui() -> FakeUI:
    return FakeUI()


@pytest.fixture
def sample_source(tmp_path: Path) -> Path:
    """A small source file on disk."""
    path = tmp_path / "src" / "a.ts"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        "import x from 'y';\n"
        "\n"
        "function main() {\n"
        "  const value = compute();\n"
        "  return value;\n"
        "}\n"
    )
    return path
