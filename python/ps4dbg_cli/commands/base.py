"""Command base classes for the ps4dbg CLI."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from python.ps4dbg import ConnectionClosedError, NotConnectedError, PS4DebugError

from ..context import DebuggerContext
from ..output import emit_error

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_TRANSPORT = 2

TRANSPORT_ERRORS = (ConnectionClosedError, NotConnectedError)


class CommandArgumentParser(argparse.ArgumentParser):
    """argparse parser that reports usage errors without exiting the REPL."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage()
        print(f"{self.prog}: error: {message}")
        raise SystemExit(EXIT_ERROR)


def failure_code(exc: BaseException) -> int:
    """Exit code for a failed client operation."""
    if isinstance(exc, TRANSPORT_ERRORS):
        return EXIT_TRANSPORT
    return EXIT_ERROR


@dataclass
class Command:
    """Abstract command description."""

    name: str
    description: str
    aliases: Sequence[str] = field(default_factory=tuple)

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        raise NotImplementedError("Command must implement run()")

    def format_help(self) -> str:
        return f"{self.name:<12} {self.description}"

    def parse_args(self, parser: argparse.ArgumentParser, argv: List[str]) -> Optional[argparse.Namespace]:
        try:
            return parser.parse_args(argv)
        except SystemExit:
            return None

    def fail(self, ctx: DebuggerContext, action: str, exc: Exception) -> int:
        data = {"type": type(exc).__name__}
        code = getattr(exc, "code", None)
        if isinstance(exc, PS4DebugError) and isinstance(code, int):
            data["code"] = f"0x{code:08X}"
        emit_error(ctx, message=f"{action} failed: {exc}", data=data)
        return failure_code(exc)
