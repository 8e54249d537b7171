"""Record layouts and buffer marshaling for SRAMKit."""

from srampack.marshal.codec import (
    dematerialize,
    materialize,
    materialize_host_endian,
    materialize_reordered_endian,
    pack_uint24,
    serialize,
    serialize_host_endian,
    swap_uint24,
    unpack_uint24,
)
from srampack.marshal.exceptions import (
    LayoutConfigError,
    LayoutMismatchError,
    MarshalError,
    UnsupportedFieldError,
)
from srampack.marshal.layout import (
    FieldSpec,
    RecordLayout,
    bytes_field,
    int_field,
    layout_from_dict,
    load_layout_from_file,
    opaque_layout,
    struct_field,
)
from srampack.marshal.record import Record
from srampack.marshal.types import HOST_BYTE_ORDER, INT_WIDTHS

__all__ = [
    "HOST_BYTE_ORDER",
    "INT_WIDTHS",
    "MarshalError",
    "LayoutMismatchError",
    "UnsupportedFieldError",
    "LayoutConfigError",
    "FieldSpec",
    "RecordLayout",
    "Record",
    "int_field",
    "bytes_field",
    "struct_field",
    "opaque_layout",
    "layout_from_dict",
    "load_layout_from_file",
    "materialize",
    "dematerialize",
    "materialize_host_endian",
    "materialize_reordered_endian",
    "serialize",
    "serialize_host_endian",
    "swap_uint24",
    "unpack_uint24",
    "pack_uint24",
]
