"""Connection status command."""

from __future__ import annotations

from typing import List

from .base import Command
from ..context import DebuggerContext
from ..output import emit_result


class StatusCommand(Command):
    def __init__(self) -> None:
        super().__init__("status", "Show connection status", aliases=("info",))

    def run(self, ctx: DebuggerContext, argv: List[str]) -> int:
        if not ctx.connected:
            emit_result(
                ctx,
                message=f"Not connected (target {ctx.host}:{ctx.port})",
                data={"status": "disconnected", "host": ctx.host, "port": ctx.port},
            )
            return 0
        data = {
            "status": "connected",
            "host": ctx.host,
            "port": ctx.port,
            "timeout": ctx.timeout,
        }
        emit_result(ctx, message=f"Connected to {ctx.host}:{ctx.port} (timeout {ctx.timeout}s)", data=data)
        return 0
