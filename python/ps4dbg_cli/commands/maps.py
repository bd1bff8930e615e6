"""maps command (virtual memory map of a process)."""

from __future__ import annotations

from typing import List

from python.ps4dbg import PS4DebugError

from .base import Command, CommandArgumentParser
from ..context import DebuggerContext
from ..output import emit_result, map_rows, render_map_table
from ..parser import parse_int


class MapsCommand(Command):
    def __init__(self) -> None:
        super().__init__("maps", "Show memory maps of a process", aliases=("vm",))
        self._parser = CommandArgumentParser(prog="maps", add_help=False)
        self._parser.add_argument("pid", type=parse_int)
        self._parser.add_argument("name", nargs="?", help="Only show the entry with this name")
        self._parser.add_argument("--contains", action="store_true", help="Match names by substring")

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        args = self.parse_args(self._parser, argv)
        if args is None:
            return 1
        try:
            client = ctx.ensure_client()
            if args.name is not None:
                entry = client.find_map_entry(args.pid, args.name, contains=args.contains)
                entries = [entry] if entry is not None else []
            else:
                entries = list(client.get_process_maps(args.pid))
        except PS4DebugError as exc:
            return self.fail(ctx, f"maps {args.pid}", exc)
        if args.name is not None and not entries:
            print(f"map entry {args.name!r} not found in pid {args.pid}")
            return 1
        if ctx.json_output:
            emit_result(ctx, message="maps", data={"pid": args.pid, "entries": map_rows(entries)})
            return 0
        render_map_table(entries)
        return 0
