"""rpc command (install the call stub and invoke remote functions)."""

from __future__ import annotations

import argparse
from typing import List

from python.ps4dbg import PS4DebugError, TooManyArgumentsError

from .base import Command, CommandArgumentParser
from ..context import DebuggerContext
from ..output import emit_error, emit_result
from ..parser import parse_int


class RpcCommand(Command):
    def __init__(self) -> None:
        super().__init__("rpc", "Install the RPC stub or call a remote function")
        parser = CommandArgumentParser(prog="rpc", add_help=False)
        sub = parser.add_subparsers(dest="subcmd", parser_class=CommandArgumentParser)
        sub.required = True

        install = sub.add_parser("install", add_help=False)
        install.add_argument("pid", type=parse_int)

        call = sub.add_parser("call", add_help=False)
        call.add_argument("pid", type=parse_int)
        call.add_argument("stub", type=parse_int)
        call.add_argument("address", type=parse_int)
        call.add_argument("args", nargs="*", type=parse_int)

        self._parser = parser

    def format_help(self) -> str:
        return super().format_help() + " (install|call)"

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        args = self.parse_args(self._parser, argv)
        if args is None:
            return 1
        try:
            if args.subcmd == "install":
                return self._handle_install(ctx, args)
            return self._handle_call(ctx, args)
        except TooManyArgumentsError as exc:
            emit_error(ctx, message=str(exc))
            return 1
        except PS4DebugError as exc:
            return self.fail(ctx, f"rpc {args.subcmd}", exc)
        except ValueError as exc:
            emit_error(ctx, message=f"rpc {args.subcmd}: {exc}")
            return 1

    def _handle_install(self, ctx: DebuggerContext, args: argparse.Namespace) -> int:
        stub = ctx.ensure_client().install_rpc(args.pid)
        emit_result(ctx, message=f"rpc stub at 0x{stub:X}", data={"pid": args.pid, "stub": stub})
        return 0

    def _handle_call(self, ctx: DebuggerContext, args: argparse.Namespace) -> int:
        result = ctx.ensure_client().call_raw(args.pid, args.stub, args.address, *args.args)
        emit_result(
            ctx,
            message=f"rpc 0x{args.address:X} -> 0x{result.value:X} ({result.value})",
            data={"address": args.address, "value": result.value, "echo": result.echo},
        )
        return 0
