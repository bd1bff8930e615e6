"""Lightweight command parsing helpers for the ps4dbg CLI."""

from __future__ import annotations

import shlex
from typing import List


def split_command(line: str) -> List[str]:
    """Split a command line into argv tokens using shlex rules."""
    if not line:
        return []
    try:
        return shlex.split(line, comments=False, posix=True)
    except ValueError as exc:
        # Raw line plus a marker so callers can report the parse error.
        return [f"#parse-error:{exc}", line.strip()]


def parse_int(text: str) -> int:
    """Parse a decimal or prefixed (0x, 0o, 0b) integer; argparse ``type`` helper."""
    return int(text.replace("_", ""), 0)


def parse_hex_bytes(text: str) -> bytes:
    """Parse ``"de ad be ef"``, ``"deadbeef"`` or ``"0xdeadbeef"`` into bytes."""
    cleaned = "".join(text.split())
    if cleaned.lower().startswith("0x"):
        cleaned = cleaned[2:]
    return bytes.fromhex(cleaned)
