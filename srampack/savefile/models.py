"""Save-file model owning one raw buffer and its layout."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from srampack.marshal import Record, RecordLayout, dematerialize, materialize
from srampack.savefile.exceptions import InvalidSizeError
from srampack.savefile.io import read_save_buffer, write_save_buffer

OFFSET_WIDTHS: tuple[int, ...] = (1, 2, 4)


def infer_value_width(value: int) -> int:
    """Smallest offset-write width able to hold ``value``."""
    if value < 0:
        raise ValueError(f"Offset values must be unsigned, got {value}")
    if value <= 0xFF:
        return 1
    if value <= 0xFFFF:
        return 2
    if value <= 0xFFFFFFFF:
        return 4
    raise ValueError(f"Value {value} does not fit 4 bytes")


@dataclass(slots=True)
class SaveFile:
    """A fixed-size save buffer interpreted through a record layout.

    The buffer is only changed through :meth:`write_offset` and
    :meth:`apply_record`, each replacing whole values.
    """

    layout: RecordLayout
    _buffer: bytearray = field(repr=False)
    path: Path | None = None
    is_modified: bool = False

    def __post_init__(self) -> None:
        if len(self._buffer) != self.layout.size:
            raise InvalidSizeError(self.path, expected=self.layout.size, actual=len(self._buffer))

    @classmethod
    def load(cls, path: str | Path, layout: RecordLayout) -> SaveFile:
        target = Path(path)
        data = read_save_buffer(target, expected_size=layout.size)
        return cls(layout=layout, _buffer=bytearray(data), path=target)

    @classmethod
    def from_bytes(
        cls,
        data: bytes | bytearray,
        layout: RecordLayout,
        *,
        path: str | Path | None = None,
    ) -> SaveFile:
        return cls(
            layout=layout,
            _buffer=bytearray(data),
            path=Path(path) if path is not None else None,
        )

    @property
    def size(self) -> int:
        return len(self._buffer)

    @property
    def data(self) -> bytes:
        return bytes(self._buffer)

    def span(self, offset: int, length: int) -> bytes:
        if offset < 0 or length < 0 or offset + length > self.size:
            raise ValueError(f"Span {offset}+{length} is outside the {self.size}-byte buffer")
        return bytes(self._buffer[offset : offset + length])

    def region(self, name: str) -> bytes:
        """Raw bytes of a top-level layout field."""
        spec = self.layout.field(name)
        return self.span(self.layout.offset_of(name), spec.width)

    @property
    def slot_count(self) -> int:
        return len(self.layout.slots)

    def slot_bytes(self, slot: int) -> bytes:
        """Raw bytes of a 1-based save slot."""
        return self.region(self.layout.slots[self._slot_index(slot)])

    def _slot_index(self, slot: int) -> int:
        if slot < 1 or slot > self.slot_count:
            raise ValueError(f"Save slot must be between 1 and {self.slot_count}, got {slot}")
        return slot - 1

    def _absolute_offset(self, offset: int, width: int, slot: int | None) -> int:
        if slot is None:
            base, limit = 0, self.size
        else:
            slot_name = self.layout.slots[self._slot_index(slot)]
            base = self.layout.offset_of(slot_name)
            limit = self.layout.field(slot_name).width
        if offset < 0 or offset + width > limit:
            where = "buffer" if slot is None else f"save slot {slot}"
            raise ValueError(f"Offset {offset} (+{width}) is outside the {limit}-byte {where}")
        return base + offset

    def read_offset(self, offset: int, width: int = 1, *, slot: int | None = None) -> int:
        """Read an unsigned value stored in the layout's source byte order."""
        if width not in OFFSET_WIDTHS:
            raise ValueError(f"Offset width must be one of {OFFSET_WIDTHS}, got {width}")
        start = self._absolute_offset(offset, width, slot)
        return int.from_bytes(self._buffer[start : start + width], self.layout.byte_order)

    def write_offset(
        self,
        offset: int,
        value: int,
        width: int | None = None,
        *,
        slot: int | None = None,
    ) -> int:
        """Write one whole value at ``offset`` and return the width used."""
        resolved_width = width if width is not None else infer_value_width(value)
        if resolved_width not in OFFSET_WIDTHS:
            raise ValueError(f"Offset width must be one of {OFFSET_WIDTHS}, got {resolved_width}")
        if value < 0 or value >= 1 << (resolved_width * 8):
            raise ValueError(f"Value {value} does not fit {resolved_width} byte(s)")

        start = self._absolute_offset(offset, resolved_width, slot)
        self._buffer[start : start + resolved_width] = value.to_bytes(
            resolved_width, self.layout.byte_order
        )
        self.is_modified = True
        return resolved_width

    def to_record(self) -> Record:
        return materialize(self._buffer, self.layout)

    def slot_record(self, slot: int) -> Record:
        """Decoded fields of a 1-based save slot."""
        if self.slot_count == 0:
            raise ValueError(f"Layout {self.layout.name} defines no save slots")
        return self.to_record()[self.layout.slots[self._slot_index(slot)]]

    def apply_record(self, record: Record) -> None:
        """Replace the whole buffer with an encoded record."""
        encoded = dematerialize(record, self.layout)
        self._buffer[:] = encoded
        self.is_modified = True

    def save(self, path: str | Path | None = None) -> Path:
        """Persist the buffer to ``path`` (defaults to the file it was loaded from)."""
        target = Path(path) if path is not None else self.path
        if target is None:
            raise ValueError("SaveFile has no path; pass one to save()")
        written = write_save_buffer(target, self._buffer, expected_size=self.layout.size)
        if path is None or target == self.path:
            self.is_modified = False
        return written
