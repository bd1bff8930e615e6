"""REPL history persisted between ps4dbg sessions."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from prompt_toolkit.history import History

LOGGER = logging.getLogger("ps4dbg_cli.history")

SESSION_END_COMMANDS = frozenset({"exit", "quit", "q"})


class CommandHistory(History):
    """prompt_toolkit history backed by an append-only file.

    Each accepted line is appended to the file as it is entered.  Once the
    file holds twice ``limit`` lines it is rewritten down to the newest
    ``limit``.  Continuation fragments (lines ending in a backslash), repeats
    of the previous line and session-ending commands are not stored.
    """

    def __init__(self, path: Optional[str], *, limit: int = 1000) -> None:
        super().__init__()
        self.limit = max(1, int(limit or 1))
        self.path = Path(path).expanduser() if path else None
        self._entries: List[str] = []
        self._lines_on_disk = 0
        if self.path:
            self._read()

    def _read(self) -> None:
        try:
            data = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return
        except OSError as exc:
            LOGGER.warning("could not read history %s: %s", self.path, exc)
            return
        lines = [line.strip() for line in data.splitlines() if line.strip()]
        self._lines_on_disk = len(lines)
        self._entries = lines[-self.limit :]

    def _wanted(self, text: str) -> bool:
        if not text or text.endswith("\\"):
            return False
        if text.split(None, 1)[0] in SESSION_END_COMMANDS:
            return False
        return not (self._entries and self._entries[-1] == text)

    # prompt_toolkit expects the newest entry first
    def load_history_strings(self) -> Iterable[str]:
        return list(reversed(self._entries))

    def store_string(self, string: str) -> None:
        text = string.strip()
        if not self._wanted(text):
            return
        self._entries.append(text)
        del self._entries[: -self.limit]
        if self.path:
            self._write(text)

    def _write(self, text: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if self._lines_on_disk + 1 > 2 * self.limit:
                self.path.write_text("\n".join(self._entries) + "\n", encoding="utf-8")
                self._lines_on_disk = len(self._entries)
                LOGGER.debug("compacted history %s to %d entries", self.path, self._lines_on_disk)
                return
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(text + "\n")
            self._lines_on_disk += 1
        except OSError as exc:
            LOGGER.warning("could not write history %s: %s", self.path, exc)

    def snapshot(self) -> List[str]:
        """Stored entries, oldest first."""
        return list(self._entries)
