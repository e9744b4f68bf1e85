"""Entry point for the margin-notes CLI."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from . import __version__
from ._utils import display_path
from .constants import MSG_NO_NOTES
from .log import log_to_file, logger
from .persistence.notes import NoteStore
from .preferences import load_preferences, resolve_notes_path


def _notes_store(notes_file: str | None, prefs_path: Path | None) -> NoteStore:
    prefs = load_preferences(prefs_path)
    return NoteStore(resolve_notes_path(notes_file or prefs.storage.notes_file))


def _print_notes(store: NoteStore) -> int:
    """Print every note, sorted by file and line.  Returns the count."""
    notes = store.all_sorted()
    if not notes:
        print(MSG_NO_NOTES)
        return 0
    current_file = None
    for note in notes:
        if note.file_path != current_file:
            if current_file is not None:
                print()
            current_file = note.file_path
            print(display_path(note.file_path))
        first, *rest = note.text.splitlines() or [""]
        print(f"  {note.line + 1:>5}  {first}")
        for extra in rest:
            print(f"         {extra}")
    return len(notes)


def main(argv: list[str] | None = None) -> None:
    """Run margin-notes."""
    parser = argparse.ArgumentParser(
        prog="margin-notes",
        description="Attach notes to lines of source files.",
    )
    parser.add_argument(
        "--version",
        "-V",
        action="version",
        version=f"margin-notes {__version__}",
    )
    parser.add_argument(
        "--notes-file",
        "-n",
        type=str,
        help="Notes file name or path (overrides storage.notes_file)",
    )
    parser.add_argument(
        "--prefs",
        type=Path,
        help="Preferences file (default: ~/.margin-notes/preferences.yaml)",
    )
    parser.add_argument(
        "--list",
        "-l",
        action="store_true",
        help="Print all notes and exit",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Write debug logs to this file",
    )
    parser.add_argument(
        "files",
        nargs="*",
        help="Files to open",
    )

    args = parser.parse_args(argv)

    if args.log_file:
        log_to_file(args.log_file)

    if args.list:
        _print_notes(_notes_store(args.notes_file, args.prefs))
        return

    try:
        from .app import run_app

        run_app(args.files, notes_file=args.notes_file, prefs_path=args.prefs)
    except (KeyboardInterrupt, SystemExit):
        pass
    except Exception:
        logger.debug("Fatal error in margin-notes", exc_info=True)
        import traceback

        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
