"""Fixed-width little-endian value codec shared by every command."""

from __future__ import annotations

import struct
from enum import Enum
from typing import Union

from .constants import NAME_FIELD_SIZE

U16 = struct.Struct("<H")
U32 = struct.Struct("<I")
I32 = struct.Struct("<i")
U64 = struct.Struct("<Q")
I64 = struct.Struct("<q")

UINT32_MAX = 0xFFFFFFFF
UINT64_MAX = 0xFFFFFFFFFFFFFFFF
INT32_MIN = -0x80000000
INT32_MAX = 0x7FFFFFFF
INT64_MIN = -0x8000000000000000


def _normalise_int(name: str, value: object, low: int, high: int) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got boolean")
    try:
        num = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if not (low <= num <= high):
        raise ValueError(f"{name} must be within {low}..{high}")
    return num


def pack_u16(value: int) -> bytes:
    return U16.pack(_normalise_int("u16", value, 0, 0xFFFF))


def pack_u32(value: int) -> bytes:
    return U32.pack(_normalise_int("u32", value, 0, UINT32_MAX))


def pack_i32(value: int) -> bytes:
    return I32.pack(_normalise_int("i32", value, INT32_MIN, INT32_MAX))


def pack_u64(value: int) -> bytes:
    return U64.pack(_normalise_int("u64", value, 0, UINT64_MAX))


def pack_i64(value: int) -> bytes:
    return I64.pack(_normalise_int("i64", value, INT64_MIN, 0x7FFFFFFFFFFFFFFF))


def pack_word32(value: int) -> bytes:
    """Pack a 4-byte field accepting either a signed or unsigned value."""
    return U32.pack(_normalise_int("word32", value, INT32_MIN, UINT32_MAX) & UINT32_MAX)


def pack_word64(value: int) -> bytes:
    """Pack an 8-byte field accepting either a signed or unsigned value."""
    return U64.pack(_normalise_int("word64", value, INT64_MIN, UINT64_MAX) & UINT64_MAX)


def unpack_u16(data: bytes, offset: int = 0) -> int:
    return U16.unpack_from(data, offset)[0]


def unpack_u32(data: bytes, offset: int = 0) -> int:
    return U32.unpack_from(data, offset)[0]


def unpack_i32(data: bytes, offset: int = 0) -> int:
    return I32.unpack_from(data, offset)[0]


def unpack_u64(data: bytes, offset: int = 0) -> int:
    return U64.unpack_from(data, offset)[0]


def unpack_i64(data: bytes, offset: int = 0) -> int:
    return I64.unpack_from(data, offset)[0]


def encode_name(text: str, size: int = NAME_FIELD_SIZE) -> bytes:
    """Encode *text* as ASCII into a NUL padded region of *size* bytes.

    Names longer than the region are truncated; a name that exactly fills the
    region carries no terminator.
    """
    raw = text.encode("ascii")[:size]
    return raw.ljust(size, b"\0")


def decode_name(data: bytes, offset: int = 0, size: int = NAME_FIELD_SIZE) -> str:
    """Decode an ASCII name stopping at the first NUL or the region end."""
    region = bytes(data[offset : offset + size])
    end = region.find(b"\0")
    if end >= 0:
        region = region[:end]
    return region.decode("ascii", errors="replace")


def ascii_cstring(text: str) -> bytes:
    """ASCII bytes of *text* followed by one NUL terminator."""
    return text.encode("ascii") + b"\0"


class ValueKind(Enum):
    UINT64 = ("UInt64", U64)
    INT64 = ("Int64", I64)
    UINT32 = ("UInt32", U32)
    INT32 = ("Int32", I32)
    UINT16 = ("UInt16", U16)

    def __init__(self, label: str, layout: struct.Struct) -> None:
        self.label = label
        self.layout = layout

    @property
    def size(self) -> int:
        return self.layout.size

    @classmethod
    def parse(cls, text: Union[str, "ValueKind"]) -> "ValueKind":
        if isinstance(text, ValueKind):
            return text
        wanted = text.strip().lower()
        for kind in cls:
            if kind.label.lower() == wanted or kind.name.lower() == wanted:
                return kind
        raise ValueError(f"unknown value kind: {text!r}")


def encode_value(value: int, kind: ValueKind) -> bytes:
    try:
        return kind.layout.pack(int(value))
    except struct.error as exc:
        raise ValueError(f"{value} does not fit {kind.label}") from exc


def decode_value(data: bytes, kind: ValueKind, offset: int = 0) -> int:
    if len(data) - offset < kind.size:
        raise ValueError(f"{kind.label} needs {kind.size} bytes, got {len(data) - offset}")
    return kind.layout.unpack_from(data, offset)[0]


__all__ = [
    "U16",
    "U32",
    "I32",
    "U64",
    "I64",
    "UINT32_MAX",
    "UINT64_MAX",
    "INT32_MIN",
    "INT32_MAX",
    "INT64_MIN",
    "pack_u16",
    "pack_u32",
    "pack_i32",
    "pack_u64",
    "pack_i64",
    "pack_word32",
    "pack_word64",
    "unpack_u16",
    "unpack_u32",
    "unpack_i32",
    "unpack_u64",
    "unpack_i64",
    "encode_name",
    "decode_name",
    "ascii_cstring",
    "ValueKind",
    "encode_value",
    "decode_value",
]
