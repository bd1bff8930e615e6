"""prompt_toolkit completer for the ps4dbg REPL."""

from __future__ import annotations

import shlex
from typing import Dict, Iterable, List, Sequence

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .commands import CommandRegistry
from .context import DebuggerContext

SUBCOMMANDS: Dict[str, Sequence[str]] = {
    "mem": ("read", "write", "u64", "value", "string", "alloc", "free"),
    "rpc": ("install", "call"),
}

VALUE_KINDS: Sequence[str] = ("uint64", "int64", "uint32", "int32", "uint16")


def _normalise_tokens(text: str) -> List[str]:
    if not text:
        return []
    try:
        tokens = shlex.split(text, posix=True)
    except ValueError:
        tokens = text.strip().split()
    if text[-1].isspace():
        tokens.append("")
    return tokens


class DebuggerCompleter(Completer):
    """Completes command names, subcommands and value kinds."""

    def __init__(self, ctx: DebuggerContext, registry: CommandRegistry) -> None:
        self.ctx = ctx
        self.registry = registry

    def get_completions(self, document: Document, complete_event) -> Iterable[Completion]:
        tokens = _normalise_tokens(document.text_before_cursor)
        if len(tokens) <= 1:
            prefix = tokens[0] if tokens else ""
            candidates: Iterable[str] = self.registry.names()
        else:
            prefix = tokens[-1]
            command = self.registry.get(self.ctx.resolve_alias(tokens[0]))
            name = command.name if command else tokens[0]
            if len(tokens) == 2:
                candidates = SUBCOMMANDS.get(name, ())
            elif tokens[-2] == "--kind":
                candidates = VALUE_KINDS
            else:
                candidates = ()
        for entry in self._format_candidates(candidates, prefix):
            yield Completion(entry, start_position=-len(prefix))

    @staticmethod
    def _format_candidates(candidates: Iterable[str], prefix: str = "") -> List[str]:
        needle = prefix.lower()
        return sorted({c for c in candidates if c.lower().startswith(needle)})
