"""Unit-by-unit byte span comparison."""

from __future__ import annotations

from typing import Callable, Iterator

from srampack.diff.classifier import classify_change
from srampack.diff.exceptions import DiffContractError
from srampack.diff.models import ChangeDescriptor, RegionDiff, RegionEvent, RegionMarker
from srampack.marshal.types import HOST_BYTE_ORDER

UNIT_WIDTHS: tuple[int, ...] = (1, 2, 4)

OffsetNamer = Callable[[int], str | None]
Span = bytes | bytearray | memoryview


def iter_region_events(
    name: str,
    base_offset: int,
    current: Span,
    comparison: Span,
    *,
    unit_width: int = 1,
    offset_name: OffsetNamer | None = None,
) -> Iterator[RegionEvent]:
    """Yield a marker then one descriptor per differing unit of a region.

    Units are read positionally in host order. Spans from hardware of the
    other byte order should go through :func:`reorder_units` first.

    The contract is checked before the first event is requested.
    """
    _check_contract(current, comparison, unit_width)
    return _walk_region(
        name,
        base_offset,
        bytes(current),
        bytes(comparison),
        unit_width=unit_width,
        offset_name=offset_name,
    )


def _walk_region(
    name: str,
    base_offset: int,
    current: bytes,
    comparison: bytes,
    *,
    unit_width: int,
    offset_name: OffsetNamer | None,
) -> Iterator[RegionEvent]:
    marked = False
    length = len(current)
    for offset in range(0, length, unit_width):
        width = min(unit_width, length - offset)
        left = current[offset : offset + width]
        right = comparison[offset : offset + width]
        if left == right:
            continue

        if not marked:
            marked = True
            yield RegionMarker(name=name, base_offset=base_offset, length=length)

        current_value = int.from_bytes(left, HOST_BYTE_ORDER)
        comparison_value = int.from_bytes(right, HOST_BYTE_ORDER)
        change = classify_change(current_value, comparison_value, width)
        yield ChangeDescriptor(
            offset=offset,
            absolute_offset=base_offset + offset,
            name=offset_name(offset) if offset_name is not None else None,
            width=width,
            current=current_value,
            comparison=comparison_value,
            delta=change.delta,
            sign=change.sign,
            magnitude=change.magnitude,
            flipped_bits=change.flipped_bits,
            single_bit=change.single_bit,
        )


def diff_region(
    name: str,
    base_offset: int,
    current: Span,
    comparison: Span,
    *,
    unit_width: int = 1,
    offset_name: OffsetNamer | None = None,
    max_changes: int | None = None,
) -> RegionDiff:
    """Collect region events. ``max_changes`` caps stored descriptors, not counts."""
    if max_changes is not None and max_changes < 0:
        raise DiffContractError(f"max_changes must be >= 0, got {max_changes}")

    region = RegionDiff(name=name, base_offset=base_offset, length=len(current))
    events = iter_region_events(
        name,
        base_offset,
        current,
        comparison,
        unit_width=unit_width,
        offset_name=offset_name,
    )
    for event in events:
        if isinstance(event, RegionMarker):
            region.marker = event
            continue
        region.changed_units += 1
        if max_changes is None or len(region.changes) < max_changes:
            region.changes.append(event)
        else:
            region.truncated_changes = True
    return region


def reorder_units(data: Span, unit_width: int) -> bytes:
    """Reverse the bytes of every unit, including a shorter trailing unit."""
    if unit_width not in UNIT_WIDTHS:
        raise DiffContractError(f"Unit width must be one of {UNIT_WIDTHS}, got {unit_width}")
    raw = bytes(data)
    if unit_width == 1:
        return raw
    out = bytearray()
    for offset in range(0, len(raw), unit_width):
        out += raw[offset : offset + unit_width][::-1]
    return bytes(out)


def _check_contract(current: Span, comparison: Span, unit_width: int) -> None:
    if unit_width not in UNIT_WIDTHS:
        raise DiffContractError(f"Unit width must be one of {UNIT_WIDTHS}, got {unit_width}")
    if len(current) != len(comparison):
        raise DiffContractError(
            f"Spans differ in length: current={len(current)} comparison={len(comparison)}"
        )
