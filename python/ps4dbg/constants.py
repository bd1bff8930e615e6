"""Wire constants and the command table shared by the protocol client.

Every command identifier and the fixed sizes associated with it live in
``COMMANDS``, keyed by the :class:`Command` enumeration.  The table is built
once at import time and exposed read-only so callers cannot patch sizes at
runtime.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from types import MappingProxyType
from typing import Mapping, Optional

CMD_PACKET_MAGIC = 0xFFAABBCC
STATUS_SUCCESS = 0x80000000

CMD_PACKET_SIZE = 12
STATUS_SIZE = 4
COUNT_SIZE = 4
NET_MAX_LENGTH = 8192

NAME_FIELD_SIZE = 32
PROC_LIST_ENTRY_SIZE = 36
PROC_MAP_ENTRY_SIZE = 58
PROC_INSTALL_SIZE = 8
PROC_ALLOC_SIZE = 8
PROC_CALL_RESPONSE_SIZE = 12

RPC_MAX_ARGS = 6

# upper bound on count-prefixed responses; larger counts are treated as corrupt
MAX_RECORD_COUNT = 0x10000

DEFAULT_PORT = 744


class Command(IntEnum):
    PROC_LIST = 0xBDAA0001
    PROC_READ = 0xBDAA0002
    PROC_WRITE = 0xBDAA0003
    PROC_MAPS = 0xBDAA0004
    PROC_INSTALL = 0xBDAA0005
    PROC_CALL = 0xBDAA0006
    PROC_ELF = 0xBDAA0007
    PROC_PROTECT = 0xBDAA0008
    PROC_SCAN = 0xBDAA0009
    PROC_INFO = 0xBDAA000A
    PROC_ALLOC = 0xBDAA000B
    PROC_FREE = 0xBDAA000C

    CONSOLE_REBOOT = 0xBDDD0001
    CONSOLE_END = 0xBDDD0002
    CONSOLE_PRINT = 0xBDDD0003
    CONSOLE_NOTIFY = 0xBDDD0004
    CONSOLE_INFO = 0xBDDD0005


@dataclass(frozen=True)
class CommandSpec:
    """Fixed sizes for one command.

    ``request_size`` is the payload length declared in the header.
    ``response_size`` is the size of a fixed response body, ``record_size``
    the size of each entry of a count-prefixed response.  ``None`` means the
    command has no such phase (or it is not driven by this client).
    """

    command: Command
    request_size: Optional[int] = None
    response_size: Optional[int] = None
    record_size: Optional[int] = None

    @property
    def id(self) -> int:
        return int(self.command)


def _build_table() -> Mapping[Command, CommandSpec]:
    specs = [
        CommandSpec(Command.PROC_LIST, request_size=0, record_size=PROC_LIST_ENTRY_SIZE),
        CommandSpec(Command.PROC_READ, request_size=16),
        CommandSpec(Command.PROC_WRITE, request_size=16),
        CommandSpec(Command.PROC_MAPS, request_size=4, record_size=PROC_MAP_ENTRY_SIZE),
        CommandSpec(Command.PROC_INSTALL, request_size=4, response_size=PROC_INSTALL_SIZE),
        CommandSpec(Command.PROC_CALL, request_size=68, response_size=PROC_CALL_RESPONSE_SIZE),
        CommandSpec(Command.PROC_ELF, request_size=8, response_size=8),
        CommandSpec(Command.PROC_PROTECT),
        CommandSpec(Command.PROC_SCAN),
        CommandSpec(Command.PROC_INFO),
        CommandSpec(Command.PROC_ALLOC, request_size=8, response_size=PROC_ALLOC_SIZE),
        CommandSpec(Command.PROC_FREE, request_size=16),
        CommandSpec(Command.CONSOLE_REBOOT, request_size=0),
        CommandSpec(Command.CONSOLE_END),
        CommandSpec(Command.CONSOLE_PRINT, request_size=4),
        CommandSpec(Command.CONSOLE_NOTIFY, request_size=8),
        CommandSpec(Command.CONSOLE_INFO),
    ]
    table = {spec.command: spec for spec in specs}
    missing = set(Command) - set(table)
    if missing:
        raise RuntimeError(f"command table incomplete: {sorted(cmd.name for cmd in missing)}")
    return MappingProxyType(table)


COMMANDS: Mapping[Command, CommandSpec] = _build_table()


def command_spec(command: Command) -> CommandSpec:
    """Return the table entry for *command*."""
    return COMMANDS[command]


__all__ = [
    "CMD_PACKET_MAGIC",
    "STATUS_SUCCESS",
    "CMD_PACKET_SIZE",
    "STATUS_SIZE",
    "COUNT_SIZE",
    "NET_MAX_LENGTH",
    "NAME_FIELD_SIZE",
    "PROC_LIST_ENTRY_SIZE",
    "PROC_MAP_ENTRY_SIZE",
    "PROC_INSTALL_SIZE",
    "PROC_ALLOC_SIZE",
    "PROC_CALL_RESPONSE_SIZE",
    "RPC_MAX_ARGS",
    "MAX_RECORD_COUNT",
    "DEFAULT_PORT",
    "Command",
    "CommandSpec",
    "COMMANDS",
    "command_spec",
]
