"""Command dispatcher for the debug agent protocol.

:class:`PS4Debug` owns one connection and drives every supported command
through a :class:`~python.ps4dbg.exchange.CommandExchange`.  Three shapes
cover the protocol:

* query   - header + payload, status, fixed or count-prefixed response
* write   - header + payload, status, bulk data, status again
* rpc     - header + 68-byte call frame, status, 12-byte response

Any failure after the first byte of a command has been written drops the
connection; callers reconnect explicitly.
"""

from __future__ import annotations

import contextlib
import dataclasses
import logging
import threading
from typing import Callable, Iterator, Optional, Union

from .constants import (
    COMMANDS,
    COUNT_SIZE,
    MAX_RECORD_COUNT,
    PROC_ALLOC_SIZE,
    PROC_CALL_RESPONSE_SIZE,
    PROC_INSTALL_SIZE,
    Command,
)
from .errors import MalformedResponseError, NotConnectedError, PS4DebugError
from .exchange import CommandExchange
from .packets import (
    FixedInt32,
    FixedInt64,
    MapEntry,
    ProcessEntry,
    ProcessList,
    ProcessMaps,
    RpcCallFrame,
    RpcResult,
    decode_map_entries,
    decode_process_entries,
    decode_rpc_response,
)
from .transport import ByteStream, ChunkedTransport, SocketStream, TransportConfig
from .values import (
    ValueKind,
    ascii_cstring,
    decode_value,
    encode_value,
    pack_u64,
    unpack_i32,
    unpack_u32,
    unpack_u64,
)

logger = logging.getLogger(__name__)

StreamFactory = Callable[[TransportConfig], ByteStream]

DEFAULT_NOTIFY_TYPE = 222


class PS4Debug:
    """Synchronous client for one debug agent connection."""

    def __init__(
        self,
        config: Optional[TransportConfig] = None,
        *,
        stream_factory: Optional[StreamFactory] = None,
    ) -> None:
        self.config = dataclasses.replace(config) if config else TransportConfig()
        self._stream_factory: StreamFactory = stream_factory or SocketStream.open
        self._transport: Optional[ChunkedTransport] = None
        self._lock = threading.RLock()
        self.last_exchange: Optional[CommandExchange] = None

    #
    # Connection lifecycle
    #
    @property
    def connected(self) -> bool:
        transport = self._transport
        return transport is not None and transport.usable

    def connect(self, host: Optional[str] = None, port: Optional[int] = None) -> bool:
        """Open a new connection, closing any previous one."""
        with self._lock:
            if host is not None:
                self.config.host = host
            if port is not None:
                self.config.port = int(port)
            self.disconnect()
            stream = self._stream_factory(self.config)
            self._transport = ChunkedTransport(stream, max_chunk=self.config.max_chunk)
            logger.info("connected to %s:%s", self.config.host, self.config.port)
            return True

    def attach(self, stream: ByteStream) -> None:
        """Adopt an already established stream."""
        with self._lock:
            self.disconnect()
            self._transport = ChunkedTransport(stream, max_chunk=self.config.max_chunk)

    def disconnect(self) -> bool:
        with self._lock:
            transport = self._transport
            self._transport = None
            if transport is not None:
                transport.close()
                logger.info("disconnected from %s:%s", self.config.host, self.config.port)
            return True

    def __enter__(self) -> "PS4Debug":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def _require_transport(self) -> ChunkedTransport:
        transport = self._transport
        if transport is None or not transport.usable:
            raise NotConnectedError()
        return transport

    def _begin(self, command: Command) -> CommandExchange:
        exchange = CommandExchange(
            self._require_transport(),
            COMMANDS[command],
            on_failure=self._drop_connection,
        )
        self.last_exchange = exchange
        return exchange

    def _drop_connection(self, exc: Optional[BaseException]) -> None:
        reason = f"{type(exc).__name__}: {exc}" if exc is not None else "incomplete exchange"
        logger.warning("dropping connection to %s:%s (%s)", self.config.host, self.config.port, reason)
        self.disconnect()

    #
    # Console commands
    #
    def notify(self, message_type: int, message: str) -> None:
        """Show a notification popup on the target."""
        self._require_transport()
        text = ascii_cstring(message)
        with self._lock:
            with self._begin(Command.CONSOLE_NOTIFY) as exchange:
                exchange.send_request([FixedInt32(message_type), FixedInt32(len(text))])
                exchange.send_data(text)
                exchange.check_status()

    def print_message(self, message: str) -> None:
        """Print *message* on the target's console log."""
        self._require_transport()
        text = ascii_cstring(message)
        with self._lock:
            with self._begin(Command.CONSOLE_PRINT) as exchange:
                exchange.send_request([FixedInt32(len(text))])
                exchange.send_data(text)
                exchange.check_status()

    def reboot(self) -> None:
        """Reboot the target; the connection is closed afterwards."""
        with self._lock:
            with self._begin(Command.CONSOLE_REBOOT) as exchange:
                exchange.send_request()
                exchange.check_status()
            self.disconnect()

    #
    # Process queries
    #
    def get_process_list(self) -> ProcessList:
        spec = COMMANDS[Command.PROC_LIST]
        with self._lock:
            with self._begin(Command.PROC_LIST) as exchange:
                exchange.send_request()
                exchange.check_status()
                count = unpack_u32(exchange.receive(COUNT_SIZE))
                if count > MAX_RECORD_COUNT:
                    raise MalformedResponseError(f"process count {count} exceeds {MAX_RECORD_COUNT}")
                data = exchange.receive(count * spec.record_size)
        return ProcessList(number=count, processes=decode_process_entries(data, count))

    def get_process_maps(self, pid: int) -> ProcessMaps:
        spec = COMMANDS[Command.PROC_MAPS]
        with self._lock:
            with self._begin(Command.PROC_MAPS) as exchange:
                exchange.send_request([FixedInt32(pid)])
                exchange.check_status()
                count = unpack_i32(exchange.receive(COUNT_SIZE))
                if count < 0:
                    raise MalformedResponseError(f"negative map count {count} for pid {pid}")
                if count > MAX_RECORD_COUNT:
                    raise MalformedResponseError(f"map count {count} for pid {pid} exceeds {MAX_RECORD_COUNT}")
                data = exchange.receive(count * spec.record_size)
        return ProcessMaps(pid=pid, entries=decode_map_entries(data, count))

    def find_process(self, name: str, exact: bool = False) -> Optional[ProcessEntry]:
        """First process named *name* (case-insensitive substring unless *exact*)."""
        needle = name.lower()
        for entry in self.get_process_list():
            if exact and entry.name == name:
                return entry
            if not exact and needle in entry.name.lower():
                return entry
        return None

    def find_map_entry(self, pid: int, name: str, contains: bool = False) -> Optional[MapEntry]:
        for entry in self.get_process_maps(pid):
            if (contains and name in entry.name) or entry.name == name:
                return entry
        return None

    #
    # Memory
    #
    def read_memory(self, pid: int, address: int, length: int) -> bytes:
        self._require_transport()
        if length < 0:
            raise ValueError(f"read length must be non-negative, got {length}")
        with self._lock:
            with self._begin(Command.PROC_READ) as exchange:
                exchange.send_request([FixedInt32(pid), FixedInt64(address), FixedInt32(length)])
                exchange.check_status()
                return exchange.receive(length)

    def write_memory(self, pid: int, address: int, data: Union[bytes, bytearray, memoryview]) -> None:
        payload = bytes(data)
        with self._lock:
            with self._begin(Command.PROC_WRITE) as exchange:
                exchange.send_request([FixedInt32(pid), FixedInt64(address), FixedInt32(len(payload))])
                exchange.check_status()
                exchange.send_data(payload)
                exchange.check_status()

    def read_uint64(self, pid: int, address: int) -> int:
        return unpack_u64(self.read_memory(pid, address, 8))

    def write_uint64(self, pid: int, address: int, value: int) -> None:
        self._require_transport()
        self.write_memory(pid, address, pack_u64(value))

    def read_value(self, pid: int, address: int, kind: ValueKind) -> int:
        return decode_value(self.read_memory(pid, address, kind.size), kind)

    def write_value(self, pid: int, address: int, value: int, kind: ValueKind) -> None:
        self._require_transport()
        self.write_memory(pid, address, encode_value(value, kind))

    def write_string(self, pid: int, address: int, text: str) -> None:
        """Write *text* as ASCII plus a NUL terminator."""
        self._require_transport()
        self.write_memory(pid, address, ascii_cstring(text))

    def allocate_memory(self, pid: int, length: int) -> int:
        with self._lock:
            with self._begin(Command.PROC_ALLOC) as exchange:
                exchange.send_request([FixedInt32(pid), FixedInt32(length)])
                exchange.check_status()
                return unpack_u64(exchange.receive(PROC_ALLOC_SIZE))

    def free_memory(self, pid: int, address: int, length: int) -> None:
        with self._lock:
            with self._begin(Command.PROC_FREE) as exchange:
                exchange.send_request([FixedInt32(pid), FixedInt64(address), FixedInt32(length)])
                exchange.check_status()

    @contextlib.contextmanager
    def allocated_memory(self, pid: int, length: int) -> Iterator[int]:
        """Allocate *length* bytes in *pid* for the duration of the block."""
        address = self.allocate_memory(pid, length)
        try:
            yield address
        except BaseException:
            self._release(pid, address, length, quiet=True)
            raise
        self._release(pid, address, length, quiet=False)

    def _release(self, pid: int, address: int, length: int, *, quiet: bool) -> None:
        if not self.connected:
            logger.warning("connection lost; 0x%X (%d bytes) in pid %d was not freed", address, length, pid)
            return
        try:
            self.free_memory(pid, address, length)
        except PS4DebugError:
            if not quiet:
                raise
            logger.warning("freeing 0x%X (%d bytes) in pid %d failed", address, length, pid, exc_info=True)

    #
    # RPC
    #
    def install_rpc(self, pid: int) -> int:
        """Install the call stub in *pid* and return its address."""
        with self._lock:
            with self._begin(Command.PROC_INSTALL) as exchange:
                exchange.send_request([FixedInt32(pid)])
                exchange.check_status()
                return unpack_u64(exchange.receive(PROC_INSTALL_SIZE))

    def call_raw(self, pid: int, stub: int, address: int, *args: int) -> RpcResult:
        self._require_transport()
        frame = RpcCallFrame(pid=pid, stub=stub, address=address, args=args).encode()
        with self._lock:
            with self._begin(Command.PROC_CALL) as exchange:
                exchange.send_header()
                exchange.send_frame(frame)
                exchange.check_status()
                response = exchange.receive(PROC_CALL_RESPONSE_SIZE)
        return decode_rpc_response(response)

    def call(self, pid: int, stub: int, address: int, *args: int) -> int:
        """Run the function at *address* in *pid* and return its 64-bit result."""
        return self.call_raw(pid, stub, address, *args).value


__all__ = ["PS4Debug", "StreamFactory", "DEFAULT_NOTIFY_TYPE"]
