"""
ps4dbg - Client for the PS4 debug agent's binary command protocol.

The package talks to the agent over one TCP connection and wraps every
supported command in a blocking method.  Each module keeps one concern:

    constants.py  → command identifiers, magic, fixed sizes
    values.py     → little-endian integer and name codecs
    packets.py    → header, payload fields, record and RPC frame layouts
    transport.py  → connection and chunked send/receive
    exchange.py   → status checks and per-command sequencing
    client.py     → PS4Debug, the command dispatcher
"""

from .client import DEFAULT_NOTIFY_TYPE, PS4Debug  # noqa: F401
from .constants import COMMANDS, DEFAULT_PORT, Command, CommandSpec  # noqa: F401
from .errors import (  # noqa: F401
    ConnectionClosedError,
    ConnectionTimeoutError,
    ExchangeStateError,
    MalformedResponseError,
    NotConnectedError,
    PS4DebugError,
    ProtocolStatusError,
    TooManyArgumentsError,
)
from .exchange import CommandExchange, ExchangeState  # noqa: F401
from .packets import (  # noqa: F401
    FixedInt32,
    FixedInt64,
    MapEntry,
    ProcessEntry,
    ProcessList,
    ProcessMaps,
    RawBytes,
    RpcCallFrame,
    RpcResult,
)
from .transport import ChunkedTransport, SocketStream, TransportConfig  # noqa: F401
from .values import ValueKind  # noqa: F401

__all__ = [
    "PS4Debug",
    "DEFAULT_NOTIFY_TYPE",
    "Command",
    "CommandSpec",
    "COMMANDS",
    "DEFAULT_PORT",
    "PS4DebugError",
    "NotConnectedError",
    "ConnectionClosedError",
    "ConnectionTimeoutError",
    "ProtocolStatusError",
    "TooManyArgumentsError",
    "MalformedResponseError",
    "ExchangeStateError",
    "CommandExchange",
    "ExchangeState",
    "FixedInt32",
    "FixedInt64",
    "RawBytes",
    "ProcessEntry",
    "ProcessList",
    "MapEntry",
    "ProcessMaps",
    "RpcCallFrame",
    "RpcResult",
    "TransportConfig",
    "SocketStream",
    "ChunkedTransport",
    "ValueKind",
]

__version__ = "0.1.0"
