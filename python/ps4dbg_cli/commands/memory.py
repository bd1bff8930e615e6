"""Memory inspection and patching command."""

from __future__ import annotations

import argparse
from typing import List

from python.ps4dbg import PS4DebugError, ValueKind

from .base import Command, CommandArgumentParser
from ..context import DebuggerContext
from ..output import emit_error, emit_result, render_hexdump
from ..parser import parse_hex_bytes, parse_int


class MemoryCommand(Command):
    def __init__(self) -> None:
        super().__init__("mem", "Read, write and allocate process memory", aliases=("memory", "x"))
        parser = CommandArgumentParser(prog="mem", add_help=False)
        sub = parser.add_subparsers(dest="subcmd", parser_class=CommandArgumentParser)
        sub.required = True

        read = sub.add_parser("read", add_help=False)
        read.add_argument("pid", type=parse_int)
        read.add_argument("address", type=parse_int)
        read.add_argument("--count", type=parse_int, default=16)

        write = sub.add_parser("write", add_help=False)
        write.add_argument("pid", type=parse_int)
        write.add_argument("address", type=parse_int)
        write.add_argument("data", nargs="+", help="Hex bytes, e.g. 'de ad be ef'")

        u64 = sub.add_parser("u64", add_help=False)
        u64.add_argument("pid", type=parse_int)
        u64.add_argument("address", type=parse_int)
        u64.add_argument("value", nargs="?", type=parse_int)

        value = sub.add_parser("value", add_help=False)
        value.add_argument("pid", type=parse_int)
        value.add_argument("address", type=parse_int)
        value.add_argument("value", nargs="?", type=parse_int)
        value.add_argument("--kind", type=ValueKind.parse, default=ValueKind.UINT32)

        string = sub.add_parser("string", add_help=False)
        string.add_argument("pid", type=parse_int)
        string.add_argument("address", type=parse_int)
        string.add_argument("text", nargs="+")

        alloc = sub.add_parser("alloc", add_help=False)
        alloc.add_argument("pid", type=parse_int)
        alloc.add_argument("length", type=parse_int)

        free = sub.add_parser("free", add_help=False)
        free.add_argument("pid", type=parse_int)
        free.add_argument("address", type=parse_int)
        free.add_argument("length", type=parse_int)

        self._parser = parser

    def format_help(self) -> str:
        return super().format_help() + " (read|write|u64|value|string|alloc|free)"

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        args = self.parse_args(self._parser, argv)
        if args is None:
            return 1
        handler = getattr(self, f"_handle_{args.subcmd}")
        try:
            return handler(ctx, args)
        except PS4DebugError as exc:
            return self.fail(ctx, f"mem {args.subcmd}", exc)
        except ValueError as exc:
            emit_error(ctx, message=f"mem {args.subcmd}: {exc}")
            return 1

    def _handle_read(self, ctx: DebuggerContext, args: argparse.Namespace) -> int:
        if args.count < 0:
            emit_error(ctx, message="count must be non-negative")
            return 1
        data = ctx.ensure_client().read_memory(args.pid, args.address, args.count)
        if ctx.json_output:
            emit_result(
                ctx,
                message="memory",
                data={"pid": args.pid, "address": args.address, "length": len(data), "hex": data.hex()},
            )
            return 0
        render_hexdump(data, args.address)
        return 0

    def _handle_write(self, ctx: DebuggerContext, args: argparse.Namespace) -> int:
        payload = parse_hex_bytes(" ".join(args.data))
        ctx.ensure_client().write_memory(args.pid, args.address, payload)
        emit_result(
            ctx,
            message=f"wrote {len(payload)} bytes at 0x{args.address:X}",
            data={"pid": args.pid, "address": args.address, "length": len(payload)},
        )
        return 0

    def _handle_u64(self, ctx: DebuggerContext, args: argparse.Namespace) -> int:
        client = ctx.ensure_client()
        if args.value is None:
            value = client.read_uint64(args.pid, args.address)
            emit_result(ctx, message=f"0x{args.address:X}: 0x{value:016X} ({value})", data={"value": value})
            return 0
        client.write_uint64(args.pid, args.address, args.value)
        emit_result(ctx, message=f"0x{args.address:X} <- 0x{args.value:X}", data={"value": args.value})
        return 0

    def _handle_value(self, ctx: DebuggerContext, args: argparse.Namespace) -> int:
        client = ctx.ensure_client()
        kind: ValueKind = args.kind
        if args.value is None:
            value = client.read_value(args.pid, args.address, kind)
            emit_result(ctx, message=f"0x{args.address:X}: {value} ({kind.label})", data={"value": value, "kind": kind.label})
            return 0
        client.write_value(args.pid, args.address, args.value, kind)
        emit_result(ctx, message=f"0x{args.address:X} <- {args.value} ({kind.label})", data={"value": args.value, "kind": kind.label})
        return 0

    def _handle_string(self, ctx: DebuggerContext, args: argparse.Namespace) -> int:
        text = " ".join(args.text)
        ctx.ensure_client().write_string(args.pid, args.address, text)
        emit_result(ctx, message=f"wrote {len(text) + 1} bytes at 0x{args.address:X}", data={"text": text})
        return 0

    def _handle_alloc(self, ctx: DebuggerContext, args: argparse.Namespace) -> int:
        address = ctx.ensure_client().allocate_memory(args.pid, args.length)
        emit_result(ctx, message=f"allocated 0x{args.length:X} bytes at 0x{address:X}", data={"address": address})
        return 0

    def _handle_free(self, ctx: DebuggerContext, args: argparse.Namespace) -> int:
        ctx.ensure_client().free_memory(args.pid, args.address, args.length)
        emit_result(ctx, message=f"freed 0x{args.address:X}", data={"address": args.address})
        return 0
