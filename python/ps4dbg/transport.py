"""
Transport layer for ps4dbg.

Responsibilities:
    * Open TCP connections to the debug agent with connect and idle timeouts.
    * Move arbitrary-length byte sequences in chunks of at most
      ``NET_MAX_LENGTH`` bytes.
    * Turn EOF, socket errors and idle timeouts into terminal errors; a
      transport that failed once is never reused.
"""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass, field
from typing import Optional, Protocol

from .constants import DEFAULT_PORT, NET_MAX_LENGTH
from .errors import ConnectionClosedError, ConnectionTimeoutError, PS4DebugError

logger = logging.getLogger(__name__)


class ByteStream(Protocol):
    """Ordered, reliable byte stream consumed by :class:`ChunkedTransport`."""

    def write(self, data: bytes) -> None:
        ...

    def read(self, max_bytes: int) -> bytes:
        """Return up to *max_bytes*; an empty result means EOF."""
        ...

    def close(self) -> None:
        ...


@dataclass
class TransportConfig:
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    connect_timeout: float = 10.0
    read_timeout: Optional[float] = 30.0
    max_chunk: int = NET_MAX_LENGTH


class SocketStream:
    """:class:`ByteStream` over a connected TCP socket."""

    def __init__(self, sock: socket.socket) -> None:
        self._sock: Optional[socket.socket] = sock

    @classmethod
    def open(cls, config: TransportConfig) -> "SocketStream":
        try:
            sock = socket.create_connection(
                (config.host, config.port),
                timeout=config.connect_timeout,
            )
        except socket.timeout as exc:
            raise ConnectionTimeoutError(f"connect to {config.host}:{config.port} timed out") from exc
        except OSError as exc:
            raise ConnectionClosedError(f"connect to {config.host}:{config.port} failed: {exc}") from exc
        sock.settimeout(config.read_timeout)
        logger.debug("connected to %s:%s (read timeout %s)", config.host, config.port, config.read_timeout)
        return cls(sock)

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise ConnectionClosedError("socket closed")
        return self._sock

    def write(self, data: bytes) -> None:
        sock = self._require_socket()
        try:
            sock.sendall(data)
        except socket.timeout as exc:
            raise ConnectionTimeoutError("write timed out") from exc
        except OSError as exc:
            raise ConnectionClosedError(f"write failed: {exc}") from exc

    def read(self, max_bytes: int) -> bytes:
        sock = self._require_socket()
        try:
            return sock.recv(max_bytes)
        except socket.timeout as exc:
            raise ConnectionTimeoutError("read timed out") from exc
        except OSError as exc:
            raise ConnectionClosedError(f"read failed: {exc}") from exc

    def close(self) -> None:
        sock = self._sock
        self._sock = None
        if sock is None:
            return
        try:
            sock.close()
        except OSError:
            pass


def send_data(stream: ByteStream, data: bytes, *, max_chunk: int = NET_MAX_LENGTH) -> int:
    """Write all of *data* to *stream* in order; return the chunk count."""
    view = memoryview(data)
    chunks = 0
    offset = 0
    while offset < len(view):
        size = min(max_chunk, len(view) - offset)
        stream.write(bytes(view[offset : offset + size]))
        offset += size
        chunks += 1
    return chunks


def receive_data(stream: ByteStream, length: int, *, max_chunk: int = NET_MAX_LENGTH) -> bytes:
    """Read exactly *length* bytes from *stream*."""
    if length < 0:
        raise ValueError(f"cannot receive a negative length ({length})")
    buffer = bytearray()
    while len(buffer) < length:
        chunk = stream.read(min(max_chunk, length - len(buffer)))
        if not chunk:
            raise ConnectionClosedError(
                "connection closed while receiving data",
                expected=length,
                received=len(buffer),
            )
        buffer.extend(chunk)
    return bytes(buffer)


@dataclass
class ChunkedTransport:
    """Chunked send/receive over one :class:`ByteStream`."""

    stream: ByteStream
    max_chunk: int = NET_MAX_LENGTH

    bytes_sent: int = field(init=False, default=0)
    bytes_received: int = field(init=False, default=0)
    _broken: bool = field(init=False, default=False)
    _closed: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        if self.max_chunk <= 0:
            raise ValueError("max_chunk must be positive")

    @property
    def usable(self) -> bool:
        return not (self._broken or self._closed)

    def _ensure_usable(self) -> None:
        if self._closed:
            raise ConnectionClosedError("transport closed")
        if self._broken:
            raise ConnectionClosedError("transport unusable after an earlier failure")

    def send(self, data: bytes) -> None:
        self._ensure_usable()
        if not data:
            return
        try:
            chunks = send_data(self.stream, data, max_chunk=self.max_chunk)
        except BaseException:
            self._broken = True
            raise
        self.bytes_sent += len(data)
        logger.debug("sent %d bytes in %d chunk(s)", len(data), chunks)

    def receive(self, length: int) -> bytes:
        self._ensure_usable()
        if length < 0:
            raise ValueError(f"cannot receive a negative length ({length})")
        if length == 0:
            return b""
        try:
            data = receive_data(self.stream, length, max_chunk=self.max_chunk)
        except BaseException:
            self._broken = True
            raise
        self.bytes_received += len(data)
        logger.debug("received %d bytes", len(data))
        return data

    def invalidate(self) -> None:
        self._broken = True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self.stream.close()
        except PS4DebugError as exc:
            logger.debug("stream close failed: %s", exc)


__all__ = [
    "ByteStream",
    "TransportConfig",
    "SocketStream",
    "ChunkedTransport",
    "send_data",
    "receive_data",
]
