"""Status verification and per-command request/response sequencing.

Each command runs inside one :class:`CommandExchange`.  The exchange walks a
fixed set of states::

    IDLE -> HEADER_SENT -> PAYLOAD_SENT -> STATUS_OK -> RESPONSE_RECEIVED
                               |              |
                               +-> DATA_SENT <+   (bulk phase, then status)

Steps taken out of order raise :class:`ExchangeStateError` before any byte
moves.  When an exchange is left early (an exception, or a ``with`` block
that exits before the status was read) the transport is invalidated: the
agent may still be waiting for, or sending, bytes that belong to it.
"""

from __future__ import annotations

import enum
import logging
from typing import Callable, Iterable, List, Optional

from .constants import STATUS_SIZE, STATUS_SUCCESS, CommandSpec
from .errors import ExchangeStateError, ProtocolStatusError
from .packets import encode_header, encode_payload
from .transport import ChunkedTransport
from .values import unpack_u32

logger = logging.getLogger(__name__)


def check_status(transport: ChunkedTransport) -> int:
    """Read one status word; return it on success, raise otherwise."""
    status = unpack_u32(transport.receive(STATUS_SIZE))
    if status != STATUS_SUCCESS:
        logger.debug("status 0x%08X", status)
        raise ProtocolStatusError(status)
    return status


class ExchangeState(enum.Enum):
    IDLE = "idle"
    HEADER_SENT = "header_sent"
    PAYLOAD_SENT = "payload_sent"
    DATA_SENT = "data_sent"
    STATUS_OK = "status_ok"
    RESPONSE_RECEIVED = "response_received"
    FAILED = "failed"


_S = ExchangeState

_ALLOWED = {
    "send_header": {_S.IDLE},
    "send_payload": {_S.HEADER_SENT},
    "send_data": {_S.PAYLOAD_SENT, _S.STATUS_OK},
    "check_status": {_S.PAYLOAD_SENT, _S.DATA_SENT},
    "receive": {_S.STATUS_OK, _S.RESPONSE_RECEIVED},
}

_COMPLETE = {_S.STATUS_OK, _S.RESPONSE_RECEIVED}

FailureHook = Callable[[Optional[BaseException]], None]


class CommandExchange:
    """One command's trip through the connection."""

    def __init__(
        self,
        transport: ChunkedTransport,
        spec: CommandSpec,
        *,
        on_failure: Optional[FailureHook] = None,
    ) -> None:
        self.transport = transport
        self.spec = spec
        self._on_failure = on_failure
        self._state = _S.IDLE
        self._declared_length = 0
        self.trace: List[ExchangeState] = [_S.IDLE]

    @property
    def state(self) -> ExchangeState:
        return self._state

    @property
    def complete(self) -> bool:
        return self._state in _COMPLETE

    def _advance(self, new_state: ExchangeState) -> None:
        self._state = new_state
        self.trace.append(new_state)

    def _require(self, step: str) -> None:
        if self._state not in _ALLOWED[step]:
            raise ExchangeStateError(
                f"{self.spec.command.name}: cannot {step.replace('_', ' ')} in state {self._state.value}"
            )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def _payload_length(self, payload_length: Optional[int]) -> int:
        if payload_length is None:
            return self.spec.request_size or 0
        return payload_length

    def send_header(self, payload_length: Optional[int] = None) -> None:
        self._require("send_header")
        payload_length = self._payload_length(payload_length)
        self._declared_length = payload_length
        logger.debug("-> %s (0x%08X) payload=%d", self.spec.command.name, self.spec.id, payload_length)
        self.transport.send(encode_header(self.spec.id, payload_length))
        self._advance(_S.HEADER_SENT)

    def send_frame(self, frame: bytes) -> None:
        """Send a pre-encoded payload that must match the declared length."""
        self._require("send_payload")
        if len(frame) != self._declared_length:
            raise ExchangeStateError(
                f"{self.spec.command.name}: frame is {len(frame)} bytes, header declared {self._declared_length}"
            )
        if frame:
            self.transport.send(frame)
        self._advance(_S.PAYLOAD_SENT)

    def send_request(self, fields: Iterable[object] = (), *, payload_length: Optional[int] = None) -> None:
        """Send header and payload; the payload is encoded before anything is written."""
        self._require("send_header")
        payload_length = self._payload_length(payload_length)
        frame = encode_payload(fields, payload_length) if payload_length else b""
        self.send_header(payload_length)
        self.send_frame(frame)

    def send_data(self, data: bytes) -> None:
        self._require("send_data")
        self.transport.send(data)
        self._advance(_S.DATA_SENT)

    def check_status(self) -> int:
        self._require("check_status")
        status = check_status(self.transport)
        self._advance(_S.STATUS_OK)
        return status

    def receive(self, length: int) -> bytes:
        self._require("receive")
        data = self.transport.receive(length)
        self._advance(_S.RESPONSE_RECEIVED)
        return data

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def fail(self, exc: Optional[BaseException] = None) -> None:
        if self._state is _S.FAILED:
            return
        logger.warning(
            "%s aborted in state %s; connection invalidated",
            self.spec.command.name,
            self._state.value,
        )
        self._advance(_S.FAILED)
        self.transport.invalidate()
        if self._on_failure is not None:
            self._on_failure(exc)

    def __enter__(self) -> "CommandExchange":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is not None:
            # nothing reached the wire
            if self._state is _S.IDLE and self.transport.usable:
                return False
            self.fail(exc)
            return False
        if not self.complete:
            state = self._state
            self.fail(None)
            raise ExchangeStateError(f"{self.spec.command.name}: exchange abandoned in state {state.value}")
        return False


__all__ = [
    "check_status",
    "ExchangeState",
    "CommandExchange",
]
