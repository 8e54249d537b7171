"""Stable public API surface for SRAMKit.

This module is the supported import path for library users.
"""

from __future__ import annotations

from pathlib import Path

from srampack.diff import ComparisonFlag, ComparisonOptions, ComparisonResult, ComparisonSession
from srampack.marshal import RecordLayout, load_layout_from_file, opaque_layout
from srampack.savefile import SaveFile, SaveFileNotFoundError

__version__ = "0.1.0"

LayoutSource = RecordLayout | str | Path | None


def _resolve_layout(layout: LayoutSource, sample: str | Path) -> RecordLayout:
    if isinstance(layout, RecordLayout):
        return layout
    if layout is not None:
        return load_layout_from_file(layout)
    try:
        return opaque_layout(Path(sample).stat().st_size)
    except FileNotFoundError as error:
        raise SaveFileNotFoundError(f"Save file not found: {sample}") from error


def load(path: str | Path, layout: LayoutSource = None) -> SaveFile:
    """Load a save file.

    Args:
        path: Save file path.
        layout: A ``RecordLayout``, a path to a JSON layout file, or ``None`` to
            treat the file as an opaque buffer of its current size.

    Returns:
        Loaded save file.
    """
    return SaveFile.load(path, _resolve_layout(layout, path))


def compare(
    current: str | Path | SaveFile,
    comparison: str | Path | SaveFile,
    *,
    layout: LayoutSource = None,
    options: ComparisonOptions | None = None,
) -> ComparisonResult:
    """Compare two save files and return every changed unit.

    Args:
        current: Current save file or its path.
        comparison: Save file (or path) compared against.
        layout: Layout used to load paths; ignored for ``SaveFile`` arguments.
        options: Region selection and unit options. Defaults compare every
            save slot and every non-slot region byte by byte.

    Returns:
        Structured comparison result.
    """
    if not isinstance(current, SaveFile):
        current = load(current, layout)
    if not isinstance(comparison, SaveFile):
        comparison = load(comparison, current.layout if layout is None else layout)
    return ComparisonSession(current, comparison, options or ComparisonOptions()).run()


def read_offset(
    path: str | Path,
    offset: int,
    *,
    width: int = 1,
    slot: int | None = None,
    layout: LayoutSource = None,
) -> int:
    """Read one value stored in the layout's source byte order.

    Args:
        path: Save file path.
        offset: Offset from the buffer start, or from the slot start when
            ``slot`` is given.
        width: Value width in bytes (1, 2 or 4).
        slot: Optional 1-based save slot.
        layout: Layout source, as for :func:`load`.

    Returns:
        Unsigned value.
    """
    return load(path, layout).read_offset(offset, width, slot=slot)


def write_offset(
    path: str | Path,
    offset: int,
    value: int,
    *,
    width: int | None = None,
    slot: int | None = None,
    layout: LayoutSource = None,
    out: str | Path | None = None,
) -> Path:
    """Write one whole value and persist the save file.

    Args:
        path: Save file path.
        offset: Offset from the buffer start, or from the slot start.
        value: Unsigned value to write.
        width: Value width in bytes; inferred from ``value`` when omitted.
        slot: Optional 1-based save slot.
        layout: Layout source, as for :func:`load`.
        out: Write the edited save here instead of overwriting ``path``.

    Returns:
        Path written.
    """
    save = load(path, layout)
    save.write_offset(offset, value, width, slot=slot)
    return save.save(out)


__all__ = [
    "__version__",
    "ComparisonFlag",
    "ComparisonOptions",
    "ComparisonResult",
    "RecordLayout",
    "SaveFile",
    "load",
    "compare",
    "read_offset",
    "write_offset",
]
