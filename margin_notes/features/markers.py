"""Position resolver: map stored notes onto a live document.

:func:`render_markers` is a pure function of a document snapshot and the
notes for its path.  :class:`MarkerRenderer` fetches both and hands the
result to the host painter; it keeps no marker state of its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Protocol, Sequence

from .._utils import canonical_path, format_text_for_display, format_timestamp
from ..constants import WRAP_WIDTH
from ..log import logger

if TYPE_CHECKING:
    from ..persistence.notes import Note, NoteStore


@dataclass(frozen=True)
class DocumentSnapshot:
    """The parts of a live document the resolver needs."""

    path: str
    lines: Sequence[str]

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def line_text(self, line: int) -> str:
        return self.lines[line]


@dataclass(frozen=True)
class HoverPayload:
    """Preview shown when the user hovers or rests on a marker."""

    wrapped_text: str
    added_at: str

    def as_text(self) -> str:
        return f"{self.wrapped_text}\n\nAdded {self.added_at}"


@dataclass(frozen=True)
class Marker:
    """A note indicator painted after the last character of *line*."""

    line: int
    column: int
    note: Note
    hover: HoverPayload


class MarkerHostLike(Protocol):
    """Minimal host interface used by :class:`MarkerRenderer`."""

    def active_document(self) -> DocumentSnapshot | None: ...
    def visible_documents(self) -> list[DocumentSnapshot]: ...
    def paint_markers(self, path: str, markers: list[Marker]) -> None: ...


def build_hover(note: Note, wrap_width: int = WRAP_WIDTH) -> HoverPayload:
    return HoverPayload(
        wrapped_text=format_text_for_display(note.text, wrap_width),
        added_at=format_timestamp(note.timestamp),
    )


def render_markers(
    snapshot: DocumentSnapshot,
    notes: Iterable[Note],
    wrap_width: int = WRAP_WIDTH,
) -> list[Marker]:
    """Markers for every note that fits inside *snapshot*.

    Notes whose line is past the end of the document are skipped (the
    document shrank since they were written) but stay in the store.
    """
    markers: list[Marker] = []
    for note in notes:
        if note.line < 0 or note.line >= snapshot.line_count:
            logger.debug(
                "note on line %d not shown, %s has %d lines",
                note.line,
                snapshot.path,
                snapshot.line_count,
            )
            continue
        markers.append(
            Marker(
                line=note.line,
                column=len(snapshot.line_text(note.line)),
                note=note,
                hover=build_hover(note, wrap_width),
            )
        )
    markers.sort(key=lambda m: m.line)
    return markers


class MarkerRenderer:
    """Recompute markers on demand and pass them to the host painter.

    Parameters
    ----------
    store:
        The :class:`NoteStore` queried on every render.
    host:
        Object satisfying :class:`MarkerHostLike`.
    wrap_width:
        Column at which hover text is wrapped.
    """

    def __init__(
        self,
        store: NoteStore,
        host: MarkerHostLike,
        *,
        wrap_width: int = WRAP_WIDTH,
    ) -> None:
        self._store = store
        self._host = host
        self.wrap_width = wrap_width

    def markers_for(self, snapshot: DocumentSnapshot) -> list[Marker]:
        return render_markers(snapshot, self._store.for_file(snapshot.path), self.wrap_width)

    def refresh(self, target_path: str | None = None) -> None:
        """Re-render the active document.

        With *target_path*, only re-render when that file is the active one.
        """
        snapshot = self._host.active_document()
        if snapshot is None:
            return
        if target_path is not None and canonical_path(snapshot.path) != canonical_path(
            target_path
        ):
            return
        self._paint(snapshot)

    def refresh_all_visible(self) -> None:
        for snapshot in self._host.visible_documents():
            self._paint(snapshot)

    def _paint(self, snapshot: DocumentSnapshot) -> None:
        try:
            markers = self.markers_for(snapshot)
            logger.debug("painting %d markers on %s", len(markers), snapshot.path)
            self._host.paint_markers(snapshot.path, markers)
        except Exception:
            logger.debug("marker render failed for %s", snapshot.path, exc_info=True)
