"""Declarative record layouts describing how a flat save buffer is structured."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from pathlib import Path
from typing import Any, Iterator

from srampack.marshal.exceptions import (
    LayoutConfigError,
    LayoutMismatchError,
    UnsupportedFieldError,
)
from srampack.marshal.types import (
    BYTE_ORDERS,
    ENDIAN_POLICIES,
    FIELD_KINDS,
    HOST_BYTE_ORDER,
    INT_WIDTHS,
    ByteOrder,
    EndianPolicy,
    FieldKind,
)


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """A single named span of a record layout."""

    name: str
    kind: FieldKind
    width: int = 0
    layout: RecordLayout | None = None
    endian: EndianPolicy = "reverse"

    def __post_init__(self) -> None:
        if not self.name or "." in self.name:
            raise LayoutConfigError(f"Invalid field name: {self.name!r}")
        if self.kind not in FIELD_KINDS:
            raise UnsupportedFieldError(f"Unsupported field kind {self.kind!r} for {self.name}")
        if self.endian not in ENDIAN_POLICIES:
            raise UnsupportedFieldError(
                f"Unsupported endian policy {self.endian!r} for {self.name}"
            )
        if self.endian == "reverse_bytes_only" and self.kind != "struct":
            raise UnsupportedFieldError(
                f"Field {self.name}: reverse_bytes_only applies to nested records only"
            )
        if self.kind == "struct":
            if self.layout is None:
                raise UnsupportedFieldError(f"Struct field {self.name} requires a nested layout")
            if self.width == 0:
                object.__setattr__(self, "width", self.layout.size)
            elif self.width != self.layout.size:
                raise LayoutMismatchError(
                    f"Struct field {self.name} declares width {self.width} "
                    f"but nested layout {self.layout.name} is {self.layout.size} bytes"
                )
        if self.width <= 0:
            raise LayoutMismatchError(f"Field {self.name} must have a positive width")
        if self.kind == "int" and self.width not in INT_WIDTHS:
            raise UnsupportedFieldError(f"Unsupported integer width {self.width} for {self.name}")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "kind": self.kind,
            "width": self.width,
            "endian": self.endian,
        }
        if self.layout is not None:
            payload["record"] = self.layout.name
        return payload


def int_field(name: str, width: int, *, endian: EndianPolicy = "reverse") -> FieldSpec:
    return FieldSpec(name=name, kind="int", width=width, endian=endian)


def bytes_field(name: str, width: int) -> FieldSpec:
    return FieldSpec(name=name, kind="bytes", width=width, endian="keep")


def struct_field(
    name: str,
    layout: RecordLayout,
    *,
    endian: EndianPolicy = "reverse",
) -> FieldSpec:
    return FieldSpec(name=name, kind="struct", layout=layout, endian=endian)


@dataclass(frozen=True, slots=True)
class RecordLayout:
    """Ordered, non-overlapping field table that exactly tiles a buffer.

    Offsets are derived from field order. ``size`` may be declared to pin the
    expected buffer length; it must equal the sum of the field widths.
    """

    name: str
    fields: tuple[FieldSpec, ...]
    size: int | None = None
    byte_order: ByteOrder = HOST_BYTE_ORDER
    slots: tuple[str, ...] = ()
    _offsets: tuple[int, ...] = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))
        object.__setattr__(self, "slots", tuple(self.slots))

        if not self.fields:
            raise LayoutConfigError(f"Layout {self.name} has no fields")
        if self.byte_order not in BYTE_ORDERS:
            raise LayoutConfigError(f"Unsupported byte order: {self.byte_order}")

        offsets: list[int] = []
        seen: set[str] = set()
        total = 0
        for spec in self.fields:
            if spec.name in seen:
                raise LayoutConfigError(f"Duplicate field {spec.name} in layout {self.name}")
            seen.add(spec.name)
            offsets.append(total)
            total += spec.width
        object.__setattr__(self, "_offsets", tuple(offsets))

        if self.size is None:
            object.__setattr__(self, "size", total)
        elif self.size != total:
            raise LayoutMismatchError(
                f"Layout {self.name} declares {self.size} bytes but its fields sum to {total}"
            )

        self._validate_slots()

    def _validate_slots(self) -> None:
        slot_layout: RecordLayout | None = None
        for slot_name in self.slots:
            spec = self.field(slot_name)
            if spec.kind != "struct" or spec.layout is None:
                raise LayoutConfigError(f"Save slot {slot_name} must be a struct field")
            if slot_layout is None:
                slot_layout = spec.layout
            elif spec.layout != slot_layout:
                raise LayoutConfigError(
                    f"Save slot {slot_name} does not share the layout of {self.slots[0]}"
                )

    def iter_fields(self) -> Iterator[tuple[FieldSpec, int]]:
        """Yield ``(field, offset)`` pairs in buffer order."""
        yield from zip(self.fields, self._offsets)

    def field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(f"Unknown field {name} in layout {self.name}")

    def offset_of(self, path: str) -> int:
        """Return the offset of a dotted field path relative to this layout."""
        layout: RecordLayout = self
        offset = 0
        parts = path.split(".")
        for index, part in enumerate(parts):
            spec = layout.field(part)
            offset += layout._offsets[layout.fields.index(spec)]
            if index == len(parts) - 1:
                break
            if spec.layout is None:
                raise KeyError(f"Field {part} of layout {layout.name} has no sub-fields")
            if spec.endian == "reverse_bytes_only":
                raise KeyError(f"Field {part} is stored reversed; address it as a whole")
            layout = spec.layout
        return offset

    def field_at(self, offset: int) -> str | None:
        """Return the dotted path of the leaf field covering ``offset``."""
        if offset < 0 or offset >= self.size:
            return None
        for spec, start in self.iter_fields():
            if start <= offset < start + spec.width:
                relative = offset - start
                if spec.kind == "struct" and spec.layout is not None:
                    if spec.endian == "reverse_bytes_only":
                        relative = spec.width - 1 - relative
                    child = spec.layout.field_at(relative)
                    return f"{spec.name}.{child}" if child is not None else spec.name
                if spec.kind == "bytes" and spec.width > 1:
                    return f"{spec.name}[{relative}]"
                return spec.name
        return None

    @property
    def slot_layout(self) -> RecordLayout | None:
        if not self.slots:
            return None
        return self.field(self.slots[0]).layout

    def slot_offset(self, slot: int) -> int:
        """Return the absolute offset of a 1-based save slot."""
        if slot < 1 or slot > len(self.slots):
            raise ValueError(f"Save slot must be between 1 and {len(self.slots)}, got {slot}")
        return self.offset_of(self.slots[slot - 1])

    def to_dict(self) -> dict[str, Any]:
        records: dict[str, Any] = {}
        _collect_records(self, records)
        return {
            "name": self.name,
            "size": self.size,
            "byte_order": self.byte_order,
            "slots": list(self.slots),
            "fields": [
                {**spec.to_dict(), "offset": offset} for spec, offset in self.iter_fields()
            ],
            "records": records,
        }


def _collect_records(layout: RecordLayout, out: dict[str, Any]) -> None:
    for spec in layout.fields:
        nested = spec.layout
        if nested is None or nested.name in out:
            continue
        out[nested.name] = {
            "size": nested.size,
            "fields": [
                {**child.to_dict(), "offset": offset} for child, offset in nested.iter_fields()
            ],
        }
        _collect_records(nested, out)


def opaque_layout(size: int, *, name: str = "buffer") -> RecordLayout:
    """Layout for plain byte-level comparison of a buffer with no known structure."""
    return RecordLayout(name=name, fields=(bytes_field("data", size),), size=size)


def layout_from_dict(raw: dict[str, Any]) -> RecordLayout:
    """Build a layout from its JSON representation."""
    if not isinstance(raw, dict):
        raise LayoutConfigError("Layout definition must be a JSON object")

    raw_records = raw.get("records", {})
    if not isinstance(raw_records, dict):
        raise LayoutConfigError("Layout 'records' must be an object")

    built: dict[str, RecordLayout] = {}
    building: list[str] = []

    def resolve_record(record_name: str) -> RecordLayout:
        if record_name in built:
            return built[record_name]
        if record_name in building:
            raise LayoutConfigError(f"Record {record_name} references itself")
        definition = raw_records.get(record_name)
        if not isinstance(definition, dict):
            raise LayoutConfigError(f"Unknown record: {record_name}")
        building.append(record_name)
        layout = RecordLayout(
            name=record_name,
            fields=_parse_fields(definition.get("fields"), resolve_record, owner=record_name),
            size=_optional_int(definition.get("size"), key=f"{record_name}.size"),
        )
        building.pop()
        built[record_name] = layout
        return layout

    name = raw.get("name", "layout")
    if not isinstance(name, str):
        raise LayoutConfigError("Layout 'name' must be a string")
    slots = raw.get("slots", [])
    if not isinstance(slots, list) or not all(isinstance(item, str) for item in slots):
        raise LayoutConfigError("Layout 'slots' must be a list of field names")

    try:
        return RecordLayout(
            name=name,
            fields=_parse_fields(raw.get("fields"), resolve_record, owner=name),
            size=_optional_int(raw.get("size"), key="size"),
            byte_order=raw.get("byte_order", HOST_BYTE_ORDER),
            slots=tuple(slots),
        )
    except KeyError as error:
        raise LayoutConfigError(f"Layout {name}: {error.args[0]}") from error


def _parse_fields(
    raw_fields: Any,
    resolve_record: Any,
    *,
    owner: str,
) -> tuple[FieldSpec, ...]:
    if not isinstance(raw_fields, list) or not raw_fields:
        raise LayoutConfigError(f"{owner}: 'fields' must be a non-empty list")

    fields: list[FieldSpec] = []
    expected_offset = 0
    for index, entry in enumerate(raw_fields):
        if not isinstance(entry, dict):
            raise LayoutConfigError(f"{owner}: field #{index} must be an object")
        field_name = entry.get("name")
        if not isinstance(field_name, str):
            raise LayoutConfigError(f"{owner}: field #{index} requires a string 'name'")

        nested: RecordLayout | None = None
        if "record" in entry:
            nested = resolve_record(str(entry["record"]))
        elif "fields" in entry:
            nested = RecordLayout(
                name=f"{owner}.{field_name}",
                fields=_parse_fields(
                    entry["fields"], resolve_record, owner=f"{owner}.{field_name}"
                ),
            )

        kind = entry.get("kind", "struct" if nested is not None else None)
        if not isinstance(kind, str):
            raise LayoutConfigError(f"{owner}.{field_name}: 'kind' is required")
        endian = entry.get("endian", "keep" if kind == "bytes" else "reverse")
        width = _optional_int(entry.get("width"), key=f"{owner}.{field_name}.width") or 0

        spec = FieldSpec(name=field_name, kind=kind, width=width, layout=nested, endian=endian)

        declared_offset = _optional_int(entry.get("offset"), key=f"{owner}.{field_name}.offset")
        if declared_offset is not None and declared_offset != expected_offset:
            raise LayoutMismatchError(
                f"{owner}.{field_name} declares offset {declared_offset} "
                f"but previous fields end at {expected_offset}"
            )
        expected_offset += spec.width
        fields.append(spec)
    return tuple(fields)


def _optional_int(value: Any, *, key: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise LayoutConfigError(f"'{key}' must be an integer")
    if isinstance(value, str):
        try:
            return int(value, 0)
        except ValueError as error:
            raise LayoutConfigError(f"'{key}' must be an integer, got {value!r}") from error
    if not isinstance(value, int):
        raise LayoutConfigError(f"'{key}' must be an integer")
    return value


def load_layout_from_file(path: str | Path) -> RecordLayout:
    """Load a record layout from a JSON file."""
    layout_path = Path(path)
    try:
        raw = json.loads(layout_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise
    except json.JSONDecodeError as error:
        raise LayoutConfigError(f"Invalid layout JSON ({layout_path}): {error}") from error

    if not isinstance(raw, dict):
        raise LayoutConfigError(f"Layout file must contain a JSON object ({layout_path}).")
    return layout_from_dict(raw)
