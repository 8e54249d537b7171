"""Buffer <-> record marshaling with per-field byte-order correction.

Host order is fixed to little-endian so that materialization is a pure
function of ``(buffer, layout)`` on every platform. Layouts whose source
hardware stored data big-endian are read through the reordering path, which
reverses every multi-byte integer unless the field opts out.
"""

from __future__ import annotations

from typing import Any

from srampack.marshal.exceptions import LayoutMismatchError
from srampack.marshal.layout import FieldSpec, RecordLayout
from srampack.marshal.record import Record, coerce_field_value
from srampack.marshal.types import HOST_BYTE_ORDER

Buffer = bytes | bytearray | memoryview


def materialize_host_endian(buffer: Buffer, layout: RecordLayout) -> Record:
    """Decode ``buffer`` positionally, without any byte reordering."""
    return _decode(_checked_bytes(buffer, layout), layout, reorder=False)


def materialize_reordered_endian(buffer: Buffer, layout: RecordLayout) -> Record:
    """Decode ``buffer`` written by hardware of the opposite byte order."""
    return _decode(_checked_bytes(buffer, layout), layout, reorder=True)


def serialize(record: Record, layout: RecordLayout | None = None) -> bytes:
    """Encode a record back into source hardware byte order.

    Inverse of :func:`materialize_reordered_endian`.
    """
    target = layout or record.layout
    return bytes(_encode(record, target, reorder=True))


def serialize_host_endian(record: Record, layout: RecordLayout | None = None) -> bytes:
    """Inverse of :func:`materialize_host_endian`."""
    target = layout or record.layout
    return bytes(_encode(record, target, reorder=False))


def materialize(buffer: Buffer, layout: RecordLayout) -> Record:
    """Decode using the path implied by the layout's source byte order."""
    if layout.byte_order == HOST_BYTE_ORDER:
        return materialize_host_endian(buffer, layout)
    return materialize_reordered_endian(buffer, layout)


def dematerialize(record: Record, layout: RecordLayout | None = None) -> bytes:
    """Encode using the path implied by the layout's source byte order."""
    target = layout or record.layout
    if target.byte_order == HOST_BYTE_ORDER:
        return serialize_host_endian(record, target)
    return serialize(record, target)


def swap_uint24(data: Buffer) -> bytes:
    """Reverse a packed 3-byte integer."""
    if len(data) != 3:
        raise ValueError(f"Packed 3-byte integer requires 3 bytes, got {len(data)}")
    return bytes((data[2], data[1], data[0]))


def unpack_uint24(data: Buffer) -> int:
    """Widen packed 3 host-order bytes to an integer with a zero top byte."""
    if len(data) != 3:
        raise ValueError(f"Packed 3-byte integer requires 3 bytes, got {len(data)}")
    return int.from_bytes(bytes(data) + b"\x00", HOST_BYTE_ORDER)


def pack_uint24(value: int) -> bytes:
    if value < 0 or value > 0xFFFFFF:
        raise ValueError(f"Value {value} does not fit a packed 3-byte integer")
    return value.to_bytes(4, HOST_BYTE_ORDER)[:3]


def _checked_bytes(buffer: Buffer, layout: RecordLayout) -> bytes:
    data = bytes(buffer)
    if len(data) != layout.size:
        raise LayoutMismatchError(
            f"Buffer is {len(data)} bytes but layout {layout.name} requires {layout.size}"
        )
    return data


def _decode(data: bytes, layout: RecordLayout, *, reorder: bool) -> Record:
    values: dict[str, Any] = {}
    for spec, offset in layout.iter_fields():
        values[spec.name] = _decode_field(data[offset : offset + spec.width], spec, reorder=reorder)
    return Record(layout=layout, values=values)


def _decode_field(chunk: bytes, spec: FieldSpec, *, reorder: bool) -> Any:
    if spec.kind == "bytes":
        return chunk

    if spec.kind == "int":
        if reorder and spec.endian == "reverse" and spec.width > 1:
            if spec.width == 3:
                return unpack_uint24(swap_uint24(chunk))
            chunk = chunk[::-1]
        return int.from_bytes(chunk, HOST_BYTE_ORDER)

    assert spec.layout is not None
    if not reorder or spec.endian == "keep":
        return _decode(chunk, spec.layout, reorder=False)
    if spec.endian == "reverse_bytes_only":
        return _decode(chunk[::-1], spec.layout, reorder=False)
    return _decode(chunk, spec.layout, reorder=True)


def _encode(record: Record, layout: RecordLayout, *, reorder: bool) -> bytearray:
    out = bytearray(layout.size)
    for spec, offset in layout.iter_fields():
        try:
            value = record.values[spec.name]
        except KeyError as error:
            raise LayoutMismatchError(
                f"Record for {record.layout.name} has no value for {layout.name}.{spec.name}"
            ) from error
        out[offset : offset + spec.width] = _encode_field(value, spec, reorder=reorder)
    return out


def _encode_field(value: Any, spec: FieldSpec, *, reorder: bool) -> bytes:
    value = coerce_field_value(spec, value)

    if spec.kind == "bytes":
        return value

    if spec.kind == "int":
        if spec.width == 3:
            raw = pack_uint24(value)
            return swap_uint24(raw) if reorder and spec.endian == "reverse" else raw
        raw = value.to_bytes(spec.width, HOST_BYTE_ORDER)
        if reorder and spec.endian == "reverse":
            return raw[::-1]
        return raw

    assert spec.layout is not None
    if not reorder or spec.endian == "keep":
        return bytes(_encode(value, spec.layout, reorder=False))
    if spec.endian == "reverse_bytes_only":
        return bytes(_encode(value, spec.layout, reorder=False))[::-1]
    return bytes(_encode(value, spec.layout, reorder=True))
