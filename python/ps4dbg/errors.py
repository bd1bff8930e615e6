"""Exception types raised by the ps4dbg protocol client."""

from __future__ import annotations

from typing import Optional


class PS4DebugError(RuntimeError):
    """Base class for every protocol client failure."""


class NotConnectedError(PS4DebugError):
    """Raised when an operation is attempted without an established connection."""

    def __init__(self, message: str = "not connected") -> None:
        super().__init__(message)


class ConnectionClosedError(PS4DebugError):
    """Raised when the stream ends or fails before an exchange completes."""

    def __init__(
        self,
        message: str = "connection closed",
        *,
        expected: Optional[int] = None,
        received: Optional[int] = None,
    ) -> None:
        if expected is not None:
            message = f"{message} (received {received or 0} of {expected} bytes)"
        super().__init__(message)
        self.expected = expected
        self.received = received


class ConnectionTimeoutError(ConnectionClosedError):
    """Raised when the idle read timeout of the underlying stream expires."""


class ProtocolStatusError(PS4DebugError):
    """Raised when the agent answers with a status word other than success."""

    def __init__(self, code: int) -> None:
        super().__init__(f"agent returned status 0x{code:08X}")
        self.code = code


class TooManyArgumentsError(PS4DebugError, ValueError):
    """Raised when an RPC call is given more arguments than the frame holds."""

    def __init__(self, count: int, limit: int) -> None:
        super().__init__(f"too many rpc arguments: {count} (max {limit})")
        self.count = count
        self.limit = limit


class MalformedResponseError(PS4DebugError):
    """Raised when a response does not match the size its command defines."""


class ExchangeStateError(PS4DebugError):
    """Raised when a command exchange step is taken out of order."""


__all__ = [
    "PS4DebugError",
    "NotConnectedError",
    "ConnectionClosedError",
    "ConnectionTimeoutError",
    "ProtocolStatusError",
    "TooManyArgumentsError",
    "MalformedResponseError",
    "ExchangeStateError",
]
