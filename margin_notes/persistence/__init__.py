"""Persistence layer – each store owns its file path, data format, and I/O."""

from ._base import CorruptStoreError, JsonStore
from .notes import (
    Note,
    NoteSaveError,
    NoteStore,
    NoteValidationError,
    validate_note_text,
)

__all__ = [
    "CorruptStoreError",
    "JsonStore",
    "Note",
    "NoteSaveError",
    "NoteStore",
    "NoteValidationError",
    "validate_note_text",
]
