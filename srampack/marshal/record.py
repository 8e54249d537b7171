"""Typed in-memory view of a materialized record."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

from srampack.marshal.layout import FieldSpec, RecordLayout


@dataclass(slots=True)
class Record:
    """Field values of one layout level, keyed by field name in layout order.

    Values are ``int`` for integer fields, ``bytes`` for opaque fields and a
    nested ``Record`` for struct fields.
    """

    layout: RecordLayout
    values: dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, path: str) -> Any:
        record, name = self._walk(path)
        return record.values[name]

    def __setitem__(self, path: str, value: Any) -> None:
        self.set(path, value)

    def get(self, path: str, default: Any = None) -> Any:
        try:
            return self[path]
        except KeyError:
            return default

    def set(self, path: str, value: Any) -> None:
        """Replace one field value, checking it fits the field."""
        record, name = self._walk(path)
        spec = record.layout.field(name)
        record.values[name] = coerce_field_value(spec, value)

    def _walk(self, path: str) -> tuple[Record, str]:
        parts = path.split(".")
        record: Record = self
        for part in parts[:-1]:
            child = record.values.get(part)
            if not isinstance(child, Record):
                raise KeyError(f"{part} is not a nested record in {record.layout.name}")
            record = child
        if parts[-1] not in record.values:
            raise KeyError(f"Unknown field {parts[-1]} in {record.layout.name}")
        return record, parts[-1]

    def copy(self) -> Record:
        return Record(
            layout=self.layout,
            values={
                name: value.copy() if isinstance(value, Record) else value
                for name, value in self.values.items()
            },
        )

    def iter_leaves(self, prefix: str = "") -> Iterator[tuple[str, Any]]:
        """Yield ``(dotted_path, value)`` for every non-struct field, in layout order."""
        for name, value in self.values.items():
            path = f"{prefix}{name}"
            if isinstance(value, Record):
                yield from value.iter_leaves(f"{path}.")
            else:
                yield path, value

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for name, value in self.values.items():
            if isinstance(value, Record):
                payload[name] = value.to_dict()
            elif isinstance(value, bytes):
                payload[name] = value.hex()
            else:
                payload[name] = value
        return payload


def coerce_field_value(spec: FieldSpec, value: Any) -> Any:
    if spec.kind == "int":
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Field {spec.name} expects an int, got {type(value).__name__}")
        limit = 1 << (spec.width * 8)
        if value < 0 or value >= limit:
            raise ValueError(f"Value {value} does not fit {spec.width}-byte field {spec.name}")
        return value
    if spec.kind == "bytes":
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise TypeError(f"Field {spec.name} expects bytes, got {type(value).__name__}")
        data = bytes(value)
        if len(data) != spec.width:
            raise ValueError(f"Field {spec.name} expects {spec.width} bytes, got {len(data)}")
        return data
    if spec.kind == "struct":
        if not isinstance(value, Record) or value.layout != spec.layout:
            raise TypeError(f"Field {spec.name} expects a {spec.layout.name} record")
        return value
    return value
