"""Textual widgets and screens for margin-notes."""

from .document import DocumentArea, HoverBar, NotesGutter
from .screens import ConfirmScreen, NoteActionScreen, NoteEditorScreen, NotesListScreen

__all__ = [
    "ConfirmScreen",
    "DocumentArea",
    "HoverBar",
    "NoteActionScreen",
    "NoteEditorScreen",
    "NotesGutter",
    "NotesListScreen",
]
