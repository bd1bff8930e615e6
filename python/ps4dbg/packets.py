"""Command framing and fixed-layout record codecs.

Layouts (all little-endian):

    header        magic:u32  command:u32  length:u32                 12 bytes
    process entry name:32s   pid:u32                                 36 bytes
    map entry     name:32s   start:u64  end:u64  offset:u64  prot:u16 58 bytes
    rpc frame     pid:i32    stub:u64   address:u64  args:6*u64      68 bytes
    rpc response  echo:u32   value:u64                               12 bytes

Request payloads are assembled from an explicit list of field variants
(:class:`FixedInt32`, :class:`FixedInt64`, :class:`RawBytes`) so the width of
every field is chosen where the command is built.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from typing import Iterable, List, NamedTuple, Sequence, Tuple, Union

from .constants import (
    CMD_PACKET_MAGIC,
    CMD_PACKET_SIZE,
    NAME_FIELD_SIZE,
    PROC_CALL_RESPONSE_SIZE,
    PROC_LIST_ENTRY_SIZE,
    PROC_MAP_ENTRY_SIZE,
    RPC_MAX_ARGS,
)
from .errors import MalformedResponseError, TooManyArgumentsError
from .values import (
    INT32_MAX,
    INT32_MIN,
    decode_name,
    encode_name,
    pack_i32,
    pack_u32,
    pack_u64,
    pack_word32,
    pack_word64,
)

logger = logging.getLogger(__name__)

HEADER = struct.Struct("<III")
PROCESS_ENTRY = struct.Struct(f"<{NAME_FIELD_SIZE}sI")
MAP_ENTRY = struct.Struct(f"<{NAME_FIELD_SIZE}sQQQH")
RPC_CALL_FRAME = struct.Struct(f"<iQQ{RPC_MAX_ARGS}Q")
RPC_CALL_RESPONSE = struct.Struct("<IQ")

assert HEADER.size == CMD_PACKET_SIZE
assert PROCESS_ENTRY.size == PROC_LIST_ENTRY_SIZE
assert MAP_ENTRY.size == PROC_MAP_ENTRY_SIZE
assert RPC_CALL_RESPONSE.size == PROC_CALL_RESPONSE_SIZE


# ---------------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------------


class CommandHeader(NamedTuple):
    magic: int
    command: int
    length: int


def encode_header(command_id: int, payload_length: int) -> bytes:
    """Return the 12-byte header announcing *command_id* and its payload size."""
    return HEADER.pack(CMD_PACKET_MAGIC, int(command_id) & 0xFFFFFFFF, int(payload_length) & 0xFFFFFFFF)


def decode_header(data: bytes) -> CommandHeader:
    if len(data) != HEADER.size:
        raise MalformedResponseError(f"header must be {HEADER.size} bytes, got {len(data)}")
    return CommandHeader(*HEADER.unpack(data))


# ---------------------------------------------------------------------------
# Payload fields
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FixedInt32:
    value: int

    def encode(self) -> bytes:
        return pack_word32(self.value)


@dataclass(frozen=True)
class FixedInt64:
    value: int

    def encode(self) -> bytes:
        return pack_word64(self.value)


@dataclass(frozen=True)
class RawBytes:
    data: bytes

    def encode(self) -> bytes:
        return bytes(self.data)


PayloadField = Union[FixedInt32, FixedInt64, RawBytes]


def plain_int(value: int) -> PayloadField:
    """Pick the width for an untyped integer: 4 bytes unless it leaves the i32 range."""
    if INT32_MIN <= value <= INT32_MAX:
        return FixedInt32(value)
    return FixedInt64(value)


def as_field(value: object) -> PayloadField:
    if isinstance(value, (FixedInt32, FixedInt64, RawBytes)):
        return value
    if isinstance(value, bool):
        raise TypeError("boolean payload fields are not supported")
    if isinstance(value, int):
        return plain_int(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return RawBytes(bytes(value))
    raise TypeError(f"unsupported payload field: {value!r}")


def encode_payload(fields: Iterable[object], total_length: int) -> bytes:
    """Pack *fields* contiguously into exactly *total_length* bytes.

    A field that does not fit in the remaining space is dropped; the
    remainder of the buffer stays zero filled.
    """
    payload = bytearray(total_length)
    offset = 0
    for index, raw in enumerate(fields):
        chunk = as_field(raw).encode()
        if offset + len(chunk) > total_length:
            logger.debug(
                "dropping payload field %d (%d bytes) at offset %d of %d",
                index,
                len(chunk),
                offset,
                total_length,
            )
            continue
        payload[offset : offset + len(chunk)] = chunk
        offset += len(chunk)
    return bytes(payload)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProcessEntry:
    name: str
    pid: int

    def encode(self) -> bytes:
        return PROCESS_ENTRY.pack(encode_name(self.name), self.pid & 0xFFFFFFFF)

    @classmethod
    def decode(cls, data: bytes, offset: int = 0) -> "ProcessEntry":
        _, pid = PROCESS_ENTRY.unpack_from(data, offset)
        return cls(name=decode_name(data, offset), pid=pid)


@dataclass(frozen=True)
class MapEntry:
    name: str
    start: int
    end: int
    offset: int
    prot: int

    @property
    def size(self) -> int:
        return self.end - self.start

    def encode(self) -> bytes:
        return MAP_ENTRY.pack(encode_name(self.name), self.start, self.end, self.offset, self.prot)

    @classmethod
    def decode(cls, data: bytes, offset: int = 0) -> "MapEntry":
        _, start, end, value_offset, prot = MAP_ENTRY.unpack_from(data, offset)
        return cls(name=decode_name(data, offset), start=start, end=end, offset=value_offset, prot=prot)


@dataclass(frozen=True)
class ProcessList:
    number: int
    processes: List[ProcessEntry] = field(default_factory=list)

    def __iter__(self):
        return iter(self.processes)

    def __len__(self) -> int:
        return len(self.processes)


@dataclass(frozen=True)
class ProcessMaps:
    pid: int
    entries: List[MapEntry] = field(default_factory=list)

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def _check_record_buffer(kind: str, buffer: bytes, count: int, record_size: int) -> None:
    if count < 0:
        raise MalformedResponseError(f"negative {kind} count: {count}")
    expected = count * record_size
    if len(buffer) != expected:
        raise MalformedResponseError(
            f"{kind} buffer holds {len(buffer)} bytes, expected {expected} for {count} entries"
        )


def decode_process_entries(buffer: bytes, count: int) -> List[ProcessEntry]:
    _check_record_buffer("process list", buffer, count, PROCESS_ENTRY.size)
    return [ProcessEntry.decode(buffer, i * PROCESS_ENTRY.size) for i in range(count)]


def encode_process_entries(entries: Sequence[ProcessEntry]) -> bytes:
    return b"".join(entry.encode() for entry in entries)


def decode_map_entries(buffer: bytes, count: int) -> List[MapEntry]:
    _check_record_buffer("map list", buffer, count, MAP_ENTRY.size)
    return [MapEntry.decode(buffer, i * MAP_ENTRY.size) for i in range(count)]


def encode_map_entries(entries: Sequence[MapEntry]) -> bytes:
    return b"".join(entry.encode() for entry in entries)


def encode_count(count: int) -> bytes:
    return pack_u32(count)


# ---------------------------------------------------------------------------
# RPC
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RpcCallFrame:
    pid: int
    stub: int
    address: int
    args: Tuple[int, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))
        if len(self.args) > RPC_MAX_ARGS:
            raise TooManyArgumentsError(len(self.args), RPC_MAX_ARGS)

    def encode(self) -> bytes:
        """Pack the frame; out-of-range fields raise :class:`ValueError`."""
        slots = list(self.args) + [0] * (RPC_MAX_ARGS - len(self.args))
        return b"".join(
            [pack_i32(self.pid), pack_u64(self.stub), pack_u64(self.address)]
            + [pack_word64(slot) for slot in slots]
        )

    @classmethod
    def decode(cls, data: bytes) -> "RpcCallFrame":
        if len(data) != RPC_CALL_FRAME.size:
            raise MalformedResponseError(f"rpc frame must be {RPC_CALL_FRAME.size} bytes, got {len(data)}")
        pid, stub, address, *args = RPC_CALL_FRAME.unpack(data)
        return cls(pid=pid, stub=stub, address=address, args=tuple(args))


class RpcResult(NamedTuple):
    echo: int
    value: int


def decode_rpc_response(data: bytes) -> RpcResult:
    if len(data) != RPC_CALL_RESPONSE.size:
        raise MalformedResponseError(
            f"rpc response must be {RPC_CALL_RESPONSE.size} bytes, got {len(data)}"
        )
    return RpcResult(*RPC_CALL_RESPONSE.unpack(data))


def encode_rpc_response(echo: int, value: int) -> bytes:
    return RPC_CALL_RESPONSE.pack(echo & 0xFFFFFFFF, value & 0xFFFFFFFFFFFFFFFF)


__all__ = [
    "HEADER",
    "PROCESS_ENTRY",
    "MAP_ENTRY",
    "RPC_CALL_FRAME",
    "RPC_CALL_RESPONSE",
    "CommandHeader",
    "encode_header",
    "decode_header",
    "FixedInt32",
    "FixedInt64",
    "RawBytes",
    "PayloadField",
    "plain_int",
    "as_field",
    "encode_payload",
    "ProcessEntry",
    "MapEntry",
    "ProcessList",
    "ProcessMaps",
    "decode_process_entries",
    "encode_process_entries",
    "decode_map_entries",
    "encode_map_entries",
    "encode_count",
    "RpcCallFrame",
    "RpcResult",
    "decode_rpc_response",
    "encode_rpc_response",
]
