"""Connect command implementation."""

from __future__ import annotations

from typing import List

from python.ps4dbg import PS4DebugError

from .base import Command, CommandArgumentParser
from ..context import DebuggerContext
from ..output import emit_result
from ..parser import parse_int


class ConnectCommand(Command):
    def __init__(self) -> None:
        super().__init__("connect", "Connect to the debug agent", aliases=("open",))
        self._parser = CommandArgumentParser(prog="connect", add_help=False)
        self._parser.add_argument("host", nargs="?", help="Agent host")
        self._parser.add_argument("--host", dest="host_opt", type=str, help="Agent host")
        self._parser.add_argument("--port", type=parse_int, help="Agent port")

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        args = self.parse_args(self._parser, argv)
        if args is None:
            return 1
        host = args.host_opt or args.host
        if host:
            ctx.host = host
        if args.port:
            ctx.port = args.port
        ctx.disconnect()
        try:
            ctx.ensure_client()
        except PS4DebugError as exc:
            return self.fail(ctx, "connect", exc)
        emit_result(
            ctx,
            message=f"Connected to {ctx.host}:{ctx.port}",
            data={"result": "connected", "host": ctx.host, "port": ctx.port},
        )
        return 0
