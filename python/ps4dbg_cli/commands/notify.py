"""notify command (popup and console print on the target)."""

from __future__ import annotations

from typing import List

from python.ps4dbg import PS4DebugError
from python.ps4dbg.client import DEFAULT_NOTIFY_TYPE

from .base import Command, CommandArgumentParser
from ..context import DebuggerContext
from ..output import emit_result
from ..parser import parse_int


class NotifyCommand(Command):
    def __init__(self) -> None:
        super().__init__("notify", "Show a notification on the target", aliases=("say",))
        self._parser = CommandArgumentParser(prog="notify", add_help=False)
        self._parser.add_argument("text", nargs="+")
        self._parser.add_argument("--type", dest="message_type", type=parse_int, default=DEFAULT_NOTIFY_TYPE)
        self._parser.add_argument("--print", dest="console", action="store_true", help="Print to the console log instead")

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        args = self.parse_args(self._parser, argv)
        if args is None:
            return 1
        text = " ".join(args.text)
        try:
            client = ctx.ensure_client()
            if args.console:
                client.print_message(text)
            else:
                client.notify(args.message_type, text)
        except UnicodeEncodeError:
            print("notify: text must be ASCII")
            return 1
        except PS4DebugError as exc:
            return self.fail(ctx, "notify", exc)
        emit_result(ctx, message="sent", data={"text": text, "console": args.console})
        return 0
