"""Disconnect command."""

from __future__ import annotations

from typing import List

from .base import Command
from ..context import DebuggerContext
from ..output import emit_result


class DisconnectCommand(Command):
    def __init__(self) -> None:
        super().__init__("disconnect", "Close the agent connection", aliases=("close",))

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        was_connected = ctx.connected
        ctx.disconnect()
        message = f"Disconnected from {ctx.host}:{ctx.port}" if was_connected else "Not connected"
        emit_result(ctx, message=message, data={"result": "disconnected", "was_connected": was_connected})
        return 0
