"""Type definitions for record layouts."""

from typing import Literal

FieldKind = Literal["int", "struct", "bytes"]
EndianPolicy = Literal["reverse", "keep", "reverse_bytes_only"]
ByteOrder = Literal["little", "big"]

FIELD_KINDS: tuple[str, ...] = ("int", "struct", "bytes")
ENDIAN_POLICIES: tuple[str, ...] = ("reverse", "keep", "reverse_bytes_only")
BYTE_ORDERS: tuple[str, ...] = ("little", "big")

# Packed 3-byte integers are handled separately from the struct-style widths.
INT_WIDTHS: tuple[int, ...] = (1, 2, 3, 4, 8)

HOST_BYTE_ORDER: ByteOrder = "little"
