"""Tests for margin_notes.notes_manager (operations, events, timers)."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from margin_notes.constants import (
    EVENT_ACTIVE_CHANGED,
    EVENT_DOCUMENT_OPENED,
    EVENT_SELECTION_CHANGED,
)
from margin_notes.features.click_detector import SelectionEvent, SelectionOrigin
from margin_notes.notes_manager import ACTION_DELETE, ACTION_EDIT, NotesManager
from margin_notes.persistence.notes import NoteStore


@pytest.fixture
def doc(tmp_path, host) -> str:
    path = str(tmp_path / "src" / "a.ts")
    host.add_document(path, ["import x;", "", "function main() {", "  return 1;", "}"])
    return path


@pytest.fixture
def manager(store, host, ui) -> NotesManager:
    return NotesManager(store=store, host=host, ui=ui)


def _stored(store: NoteStore) -> list[dict]:
    return json.loads(store.path.read_text())["notes"]


# ===========================================================================
# Lifecycle and rendering
# ===========================================================================


class TestActivate:
    def test_creates_notes_file(self, manager, store, doc):
        assert not store.path.exists()
        manager.activate()
        assert json.loads(store.path.read_text()) == {"notes": []}

    def test_subscribes_three_events(self, manager, host, doc):
        host.subscribe = MagicMock(wraps=host.subscribe)
        subs = manager.activate()
        assert len(subs) == 3
        assert [c.args[0] for c in host.subscribe.call_args_list] == [
            EVENT_DOCUMENT_OPENED,
            EVENT_ACTIVE_CHANGED,
            EVENT_SELECTION_CHANGED,
        ]

    def test_renders_immediately_and_settles(self, manager, host, doc):
        manager.activate()
        assert host.paint_calls == [doc]
        assert [t.delay for t in host.set_timer.pending] == [0.5]
        host.set_timer.run_all()
        delays = [t.delay for t in host.set_timer.timers]
        assert delays == [0.5, 0.5]
        # initial + (active + visible) at each of the two settle points
        assert len(host.paint_calls) == 5

    def test_existing_notes_painted(self, manager, store, host, doc):
        store.upsert(doc, 2, "look here")
        manager.activate()
        markers = host.painted[doc]
        assert [(m.line, m.column) for m in markers] == [(2, len("function main() {"))]

    def test_dispose_releases_everything(self, manager, host, doc):
        manager.activate()
        manager.dispose()
        assert host.set_timer.pending == []
        assert manager.subscriptions == []
        host.events.emit(
            EVENT_SELECTION_CHANGED, SelectionEvent(doc, 3, 11, "  return 1;")
        )
        assert host.set_timer.pending == []

    def test_dispose_twice(self, manager, doc):
        manager.activate()
        manager.dispose()
        manager.dispose()

    def test_notes_path(self, manager, store):
        assert manager.notes_path == str(store.path)


class TestHostEvents:
    def test_document_opened_renders(self, manager, host, doc):
        manager.activate()
        host.set_timer.run_all()
        host.paint_calls.clear()
        host.events.emit(EVENT_DOCUMENT_OPENED, doc)
        assert host.paint_calls == [doc]
        assert host.set_timer.pending

    def test_active_changed_delayed(self, manager, host, doc):
        manager.activate()
        host.set_timer.run_all()
        host.paint_calls.clear()
        host.events.emit(EVENT_ACTIVE_CHANGED, doc)
        assert host.paint_calls == []
        assert [t.delay for t in host.set_timer.pending] == [0.1]
        host.set_timer.run_all()
        assert host.paint_calls == [doc]

    def test_marker_click_starts_worker(self, manager, store, host, doc):
        store.upsert(doc, 3, "check return")
        manager.activate()
        host.set_timer.run_all()
        host.events.emit(
            EVENT_SELECTION_CHANGED,
            SelectionEvent(doc, 3, len("  return 1;"), "  return 1;"),
        )
        host.set_timer.run_all()
        assert len(host.workers) == 1
        host.workers[0].close()

    def test_keyboard_selection_no_worker(self, manager, store, host, doc):
        store.upsert(doc, 3, "check return")
        manager.activate()
        host.events.emit(
            EVENT_SELECTION_CHANGED,
            SelectionEvent(doc, 3, 11, "  return 1;", origin=SelectionOrigin.KEYBOARD),
        )
        host.set_timer.run_all()
        assert host.workers == []

    def test_events_ignored_after_dispose(self, manager, host, doc):
        manager.activate()
        manager.dispose()
        host.paint_calls.clear()
        host.events.emit(EVENT_DOCUMENT_OPENED, doc)
        assert host.paint_calls == []


# ===========================================================================
# Add / edit
# ===========================================================================


class TestAddNote:
    @pytest.mark.asyncio
    async def test_add(self, manager, store, host, ui, doc):
        ui.texts.append("  remember this  ")
        assert await manager.add_note(doc, 2) is True
        assert ui.prompts == [(doc, 2, "")]
        assert _stored(store)[0]["text"] == "remember this"
        assert host.notifications[-1] == ("Note added", "information")
        assert host.paint_calls[0] == doc
        assert [t.delay for t in host.set_timer.pending] == [0.2]

    @pytest.mark.asyncio
    async def test_retry_render(self, manager, host, ui, doc):
        ui.texts.append("x")
        await manager.add_note(doc, 0)
        before = len(host.paint_calls)
        host.set_timer.run_all()
        assert len(host.paint_calls) == before + 2

    @pytest.mark.asyncio
    async def test_update_prefills_existing(self, manager, store, host, ui, doc):
        store.upsert(doc, 1, "old")
        ui.texts.append("new")
        assert await manager.add_note(doc, 1) is True
        assert ui.prompts[0][2] == "old"
        assert [n["text"] for n in _stored(store)] == ["new"]
        assert host.messages[-1] == "Note updated"

    @pytest.mark.asyncio
    async def test_cancel_is_silent(self, manager, store, host, ui, doc):
        ui.texts.append(None)
        assert await manager.add_note(doc, 1) is False
        assert host.notifications == []
        assert not store.path.exists()

    @pytest.mark.asyncio
    async def test_blank_text_rejected(self, manager, store, host, ui, doc):
        ui.texts.append("   ")
        assert await manager.add_note(doc, 1) is False
        assert host.notifications == [("A note cannot be empty.", "warning")]
        assert store.load() == []

    @pytest.mark.asyncio
    async def test_too_long_rejected(self, manager, store, host, ui, doc):
        ui.texts.append("x" * 1001)
        assert await manager.add_note(doc, 1) is False
        assert host.notifications[0][1] == "warning"
        assert "1000" in host.notifications[0][0]

    @pytest.mark.asyncio
    async def test_max_length_accepted(self, manager, store, ui, doc):
        ui.texts.append("x" * 1000)
        assert await manager.add_note(doc, 1) is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path, line", [(None, 1), ("", 1), ("/p/a.ts", -1), ("/p/a.ts", None)])
    async def test_invalid_params(self, manager, host, ui, path, line):
        assert await manager.add_note(path, line) is False
        assert host.notifications == [("Invalid note parameters.", "error")]
        assert ui.prompts == []

    @pytest.mark.asyncio
    async def test_save_failure(self, manager, host, ui, doc):
        manager.store.upsert = MagicMock(return_value=False)
        ui.texts.append("text")
        assert await manager.add_note(doc, 1) is False
        assert host.notifications == [("Could not save note.", "error")]

    @pytest.mark.asyncio
    async def test_unexpected_error(self, manager, host, ui, doc):
        ui.prompt_note_text = MagicMock(side_effect=RuntimeError("dialog crashed"))
        assert await manager.add_note(doc, 1) is False
        assert host.notifications == [("Could not save note.", "error")]

    @pytest.mark.asyncio
    async def test_path_canonicalized(self, manager, store, ui, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        ui.texts.append("rel")
        await manager.add_note("src/../b.ts", 0)
        assert _stored(store)[0]["filePath"] == str(tmp_path / "b.ts")


class TestEditNote:
    @pytest.mark.asyncio
    async def test_edit(self, manager, store, host, ui, doc):
        store.upsert(doc, 0, "before")
        ui.texts.append("after")
        assert await manager.edit_note(store.get(doc, 0)) is True
        assert store.get(doc, 0).text == "after"
        assert host.messages == ["Note updated"]

    @pytest.mark.asyncio
    async def test_edit_cancel(self, manager, store, host, ui, doc):
        store.upsert(doc, 0, "before")
        ui.texts.append(None)
        assert await manager.edit_note(store.get(doc, 0)) is False
        assert store.get(doc, 0).text == "before"
        assert host.notifications == []

    @pytest.mark.asyncio
    async def test_edit_failure(self, manager, store, host, ui, doc):
        store.upsert(doc, 0, "before")
        note = store.get(doc, 0)
        manager.store.upsert = MagicMock(return_value=False)
        ui.texts.append("after")
        assert await manager.edit_note(note) is False
        assert host.notifications == [("Could not update note.", "error")]


# ===========================================================================
# Delete
# ===========================================================================


class TestDeleteNote:
    @pytest.mark.asyncio
    async def test_confirmed(self, manager, store, host, ui, doc):
        store.upsert(doc, 3, "bye")
        ui.confirms.append(True)
        assert await manager.delete_note(store.get(doc, 3)) is True
        assert store.load() == []
        assert host.messages == ["Note deleted"]
        assert host.painted[doc] == []

    @pytest.mark.asyncio
    async def test_confirm_message(self, manager, store, ui, doc):
        store.upsert(doc, 3, "y" * 80)
        ui.confirms.append(False)
        await manager.delete_note(store.get(doc, 3))
        message = ui.confirm_messages[0]
        assert "a.ts" in message
        assert "line 4" in message
        assert "y" * 50 + "..." in message

    @pytest.mark.asyncio
    async def test_declined(self, manager, store, host, ui, doc):
        store.upsert(doc, 3, "stay")
        ui.confirms.append(False)
        assert await manager.delete_note(store.get(doc, 3)) is False
        assert store.exists(doc, 3)
        assert host.notifications == []

    @pytest.mark.asyncio
    async def test_already_gone(self, manager, store, host, ui, doc):
        store.upsert(doc, 3, "racing")
        note = store.get(doc, 3)
        store.delete(doc, 3)
        ui.confirms.append(True)
        assert await manager.delete_note(note) is False
        assert host.notifications[0][1] == "warning"

    @pytest.mark.asyncio
    async def test_write_failure(self, manager, store, host, ui, doc):
        store.upsert(doc, 3, "stuck")
        note = store.get(doc, 3)
        manager.store.delete = MagicMock(return_value=False)
        ui.confirms.append(True)
        assert await manager.delete_note(note) is False
        assert host.notifications == [("Could not delete note.", "error")]

    @pytest.mark.asyncio
    async def test_delete_at_missing(self, manager, host, doc):
        assert await manager.delete_at(doc, 4) is False
        assert host.notifications[0][1] == "warning"

    @pytest.mark.asyncio
    async def test_delete_at(self, manager, store, ui, doc):
        store.upsert(doc, 4, "x")
        ui.confirms.append(True)
        assert await manager.delete_at(doc, 4) is True
        assert not store.exists(doc, 4)


# ===========================================================================
# Listing, opening, note actions
# ===========================================================================


class TestShowAllNotes:
    def test_empty(self, manager, host, ui):
        assert manager.show_all_notes() is False
        assert host.messages == ["No notes found."]
        assert ui.listed == []

    def test_sorted_list(self, manager, store, ui, tmp_path):
        b = str(tmp_path / "b.ts")
        a = str(tmp_path / "a.ts")
        store.upsert(b, 0, "b0")
        store.upsert(a, 5, "a5")
        store.upsert(a, 1, "a1")
        assert manager.show_all_notes() is True
        notes, open_at, delete_at = ui.listed[0]
        assert [(n.file_path, n.line) for n in notes] == [(a, 1), (a, 5), (b, 0)]
        assert open_at == manager.open_at
        assert delete_at == manager.delete_at


class TestOpenAt:
    @pytest.mark.asyncio
    async def test_open(self, manager, host, doc):
        assert await manager.open_at(doc, 3) is True
        assert host.opened == [(doc, 3)]

    @pytest.mark.asyncio
    async def test_open_failure(self, manager, host):
        host.open_error = FileNotFoundError("gone")
        assert await manager.open_at("/nowhere/missing.ts", 0) is False
        assert host.notifications == [("Could not open file: missing.ts", "error")]


class TestNoteActions:
    @pytest.mark.asyncio
    async def test_click_edit(self, manager, store, ui, doc):
        store.upsert(doc, 2, "v1")
        ui.actions.append(ACTION_EDIT)
        ui.texts.append("v2")
        assert await manager.handle_note_click(doc, 2) is True
        assert store.get(doc, 2).text == "v2"

    @pytest.mark.asyncio
    async def test_click_delete(self, manager, store, ui, doc):
        store.upsert(doc, 2, "v1")
        ui.actions.append(ACTION_DELETE)
        ui.confirms.append(True)
        assert await manager.handle_note_click(doc, 2) is True
        assert not store.exists(doc, 2)

    @pytest.mark.asyncio
    async def test_click_dismissed(self, manager, store, host, ui, doc):
        store.upsert(doc, 2, "v1")
        ui.actions.append(None)
        assert await manager.handle_note_click(doc, 2) is False
        assert host.notifications == []

    @pytest.mark.asyncio
    async def test_click_without_note(self, manager, ui, doc):
        assert await manager.handle_note_click(doc, 2) is False

    @pytest.mark.asyncio
    async def test_show_note_for_line(self, manager, store, ui, doc):
        store.upsert(doc, 1, "here")
        ui.actions.append(ACTION_EDIT)
        ui.texts.append("changed")
        assert await manager.show_note_for_line(1) is True
        assert store.get(doc, 1).text == "changed"

    @pytest.mark.asyncio
    async def test_show_note_no_document(self, manager, host):
        assert await manager.show_note_for_line(0) is False
        assert host.notifications[0][1] == "warning"

    @pytest.mark.asyncio
    async def test_show_note_empty_line(self, manager, host, doc):
        assert await manager.show_note_for_line(0) is False
        assert host.notifications == []


class TestStoreFailures:
    """A store that raises is reported, never propagated to the worker."""

    @pytest.fixture
    def broken(self, manager):
        for name in ("get", "exists", "all_sorted", "load"):
            setattr(manager.store, name, MagicMock(side_effect=OSError("disk gone")))
        return manager

    @pytest.mark.asyncio
    async def test_delete_at(self, broken, host, ui, doc):
        assert await broken.delete_at(doc, 0) is False
        assert host.notifications == [("Could not delete note.", "error")]
        assert ui.confirm_messages == []

    @pytest.mark.asyncio
    async def test_handle_note_click(self, broken, host, ui, doc):
        assert await broken.handle_note_click(doc, 0) is False
        assert host.notifications == [("Could not read notes.", "error")]

    @pytest.mark.asyncio
    async def test_show_note_for_line(self, broken, host, doc):
        assert await broken.show_note_for_line(0) is False
        assert host.notifications == [("Could not read notes.", "error")]

    def test_show_all_notes(self, broken, host, ui):
        assert broken.show_all_notes() is False
        assert host.notifications == [("Could not list notes.", "error")]
        assert ui.listed == []

    @pytest.mark.asyncio
    async def test_undecodable_notes_file(self, manager, store, host, ui, doc):
        store.path.parent.mkdir(parents=True, exist_ok=True)
        store.path.write_bytes(b"\xff\xfe\x00garbage\x80")
        assert await manager.delete_at(doc, 0) is False
        assert await manager.handle_note_click(doc, 0) is False
        assert manager.show_all_notes() is False
        assert host.messages[-1] == "No notes found."


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_add_then_update_then_delete(self, manager, store, host, ui, doc):
        manager.activate()
        ui.texts.extend(["first", "second"])
        await manager.add_note(doc, 3)
        first_ts = store.get(doc, 3).timestamp
        await manager.add_note(doc, 3)
        note = store.get(doc, 3)
        assert len(store.load()) == 1
        assert note.text == "second"
        assert note.timestamp > first_ts

        ui.confirms.append(True)
        await manager.delete_note(note)
        assert store.load() == []
        assert host.messages == ["Note added", "Note updated", "Note deleted"]
