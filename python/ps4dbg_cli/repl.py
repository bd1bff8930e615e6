"""Interactive REPL for the ps4dbg CLI."""

from __future__ import annotations

import logging
from typing import List, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.patch_stdout import patch_stdout

from .commands import CommandRegistry
from .commands.help import HelpCommand
from .completion import DebuggerCompleter
from .context import DebuggerContext
from .history import CommandHistory
from .parser import split_command

LOGGER = logging.getLogger("ps4dbg_cli.repl")


class DebuggerREPL:
    """prompt_toolkit REPL dispatching lines to the command registry."""

    def __init__(
        self,
        ctx: DebuggerContext,
        registry: CommandRegistry,
        *,
        history: Optional[CommandHistory] = None,
    ) -> None:
        self.ctx = ctx
        self.registry = registry
        self.history = history
        help_command = self.registry.get("help")
        if isinstance(help_command, HelpCommand):
            help_command.bind(registry)

    def _prompt(self) -> str:
        return "ps4dbg* " if self.ctx.connected else "ps4dbg> "

    def run(self) -> int:
        history = self.history if self.history is not None else InMemoryHistory()
        session = PromptSession(
            history=history,
            completer=DebuggerCompleter(self.ctx, self.registry),
            complete_while_typing=True,
        )
        buffer: List[str] = []
        while True:
            try:
                with patch_stdout():
                    line = session.prompt(self._prompt())
            except (EOFError, KeyboardInterrupt):
                print()
                self.ctx.disconnect()
                return 0
            if self._handle_multiline(buffer, line):
                continue
            payload = line
            if buffer:
                payload = " ".join(buffer)
                buffer.clear()
                history.append_string(payload)
            self.dispatch(payload)

    def dispatch(self, line: str) -> Optional[int]:
        stripped = line.strip()
        if not stripped:
            return None
        argv = split_command(stripped)
        if not argv:
            return None
        cmd_name, *cmd_args = argv
        if cmd_name.startswith("#parse-error"):
            print(f"Parse error: {cmd_name.split(':', 1)[-1]}")
            return 1
        cmd_name = self.ctx.resolve_alias(cmd_name)
        command = self.registry.get(cmd_name)
        if not command:
            print(f"Unknown command: {cmd_name}")
            return 1
        try:
            return command.run(self.ctx, cmd_args)
        except SystemExit:
            raise
        except Exception as exc:
            LOGGER.exception("command failed")
            print(f"Command '{cmd_name}' failed: {exc}")
            return 1

    @staticmethod
    def _handle_multiline(buffer: List[str], line: str) -> bool:
        stripped = line.rstrip()
        if stripped.endswith("\\"):
            buffer.append(stripped[:-1])
            return True
        if buffer:
            buffer.append(stripped)
        return False
