"""Save-file subsystem exceptions."""

from __future__ import annotations

from pathlib import Path


class SaveFileError(Exception):
    """Base class for save-file errors."""


class SaveFileNotFoundError(SaveFileError, FileNotFoundError):
    """Requested save file does not exist."""


class InvalidSizeError(SaveFileError):
    """Save file or buffer length differs from the declared fixed size."""

    def __init__(self, path: str | Path | None, *, expected: int, actual: int) -> None:
        location = f" ({path})" if path is not None else ""
        super().__init__(f"Invalid save size{location}: expected {expected} bytes, got {actual}")
        self.path = None if path is None else str(path)
        self.expected = expected
        self.actual = actual
