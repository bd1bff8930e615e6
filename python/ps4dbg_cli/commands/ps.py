"""ps command (process listing)."""

from __future__ import annotations

from typing import List

from python.ps4dbg import PS4DebugError

from .base import Command, CommandArgumentParser
from ..context import DebuggerContext
from ..output import emit_result, process_rows, render_process_table


class PsCommand(Command):
    def __init__(self) -> None:
        super().__init__("ps", "List processes or find one by name")
        self._parser = CommandArgumentParser(prog="ps", add_help=False)
        self._parser.add_argument("name", nargs="?", help="Process name (case-insensitive substring)")
        self._parser.add_argument("--exact", action="store_true", help="Require an exact name match")

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        args = self.parse_args(self._parser, argv)
        if args is None:
            return 1
        if args.name is None:
            return self._run_list(ctx)
        return self._run_find(ctx, args.name, args.exact)

    def _run_list(self, ctx: DebuggerContext) -> int:
        try:
            processes = ctx.ensure_client().get_process_list()
        except PS4DebugError as exc:
            return self.fail(ctx, "ps", exc)
        entries = list(processes)
        if ctx.json_output:
            emit_result(ctx, message="ps", data={"number": processes.number, "processes": process_rows(entries)})
            return 0
        render_process_table(entries)
        return 0

    def _run_find(self, ctx: DebuggerContext, name: str, exact: bool) -> int:
        try:
            entry = ctx.ensure_client().find_process(name, exact=exact)
        except PS4DebugError as exc:
            return self.fail(ctx, f"ps {name}", exc)
        if entry is None:
            print(f"process {name!r} not found")
            return 1
        emit_result(ctx, message=f"{entry.pid} {entry.name}", data={"pid": entry.pid, "name": entry.name})
        return 0
