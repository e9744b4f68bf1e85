"""margin-notes: line-anchored notes for source files, in the terminal."""

__version__ = "0.1.0"
