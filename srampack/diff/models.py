"""Data models for region markers, change descriptors and comparison results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

from srampack.diff.classifier import ChangeSign


@dataclass(frozen=True, slots=True)
class RegionMarker:
    """Signals that a named region holds at least one difference."""

    name: str
    base_offset: int
    length: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "base_offset": self.base_offset,
            "length": self.length,
        }


@dataclass(frozen=True, slots=True)
class ChangeDescriptor:
    """A single changed unit. ``offset`` is relative to the region base."""

    offset: int
    absolute_offset: int
    name: str | None
    width: int
    current: int
    comparison: int
    delta: int
    sign: ChangeSign
    magnitude: int
    flipped_bits: int
    single_bit: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "offset": self.offset,
            "absolute_offset": self.absolute_offset,
            "name": self.name,
            "width": self.width,
            "current": self.current,
            "comparison": self.comparison,
            "delta": self.delta,
            "sign": self.sign,
            "magnitude": self.magnitude,
            "flipped_bits": self.flipped_bits,
            "single_bit": self.single_bit,
        }


RegionEvent = RegionMarker | ChangeDescriptor


@dataclass(slots=True)
class RegionDiff:
    """Collected diff events of one region."""

    name: str
    base_offset: int
    length: int
    marker: RegionMarker | None = None
    changes: list[ChangeDescriptor] = field(default_factory=list)
    changed_units: int = 0
    truncated_changes: bool = False

    @property
    def identical(self) -> bool:
        return self.changed_units == 0

    def events(self) -> Iterator[RegionEvent]:
        if self.marker is None:
            return
        yield self.marker
        yield from self.changes

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "base_offset": self.base_offset,
            "length": self.length,
            "identical": self.identical,
            "changed_units": self.changed_units,
            "marker": self.marker.to_dict() if self.marker is not None else None,
            "changes": [change.to_dict() for change in self.changes],
            "truncated_changes": self.truncated_changes,
        }


@dataclass(slots=True)
class ComparisonResult:
    """Structured comparison of two save buffers."""

    layout_name: str
    unit_width: int
    reverse_byte_order: bool
    regions: list[RegionDiff]

    @property
    def total_changed_units(self) -> int:
        return sum(region.changed_units for region in self.regions)

    @property
    def identical(self) -> bool:
        return self.total_changed_units == 0

    def events(self) -> Iterator[RegionEvent]:
        """Ordered marker/descriptor stream across all regions."""
        for region in self.regions:
            yield from region.events()

    def summary(self) -> dict[str, int]:
        return {
            "regions": len(self.regions),
            "changed_regions": sum(1 for region in self.regions if not region.identical),
            "changed_units": self.total_changed_units,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "layout": self.layout_name,
            "unit_width": self.unit_width,
            "reverse_byte_order": self.reverse_byte_order,
            "identical": self.identical,
            "total_changed_units": self.total_changed_units,
            "summary": self.summary(),
            "regions": [region.to_dict() for region in self.regions],
        }
