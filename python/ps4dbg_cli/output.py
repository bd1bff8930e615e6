"""Output helpers for the ps4dbg CLI."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional

from tabulate import tabulate

from python.ps4dbg import MapEntry, ProcessEntry

from .context import DebuggerContext


def _json_dump(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, indent=2, sort_keys=True)


def emit_result(ctx: DebuggerContext, *, message: str, data: Optional[Mapping[str, Any]] = None) -> None:
    """Emit a successful command result."""
    if ctx.json_output:
        payload: Dict[str, Any] = {"status": "ok"}
        if data is not None:
            payload["result"] = data
        else:
            payload["message"] = message
        print(_json_dump(payload))
    else:
        print(message)


def emit_error(ctx: DebuggerContext, *, message: str, data: Optional[Mapping[str, Any]] = None) -> None:
    """Emit an error message respecting JSON mode."""
    payload: Dict[str, Any] = {"status": "error", "error": message}
    if data:
        payload["details"] = dict(data)
    if ctx.json_output:
        print(_json_dump(payload))
    else:
        print(f"error: {message}")


def process_rows(entries: List[ProcessEntry]) -> List[Dict[str, Any]]:
    return [{"pid": entry.pid, "name": entry.name} for entry in entries]


def map_rows(entries: List[MapEntry]) -> List[Dict[str, Any]]:
    return [
        {
            "name": entry.name,
            "start": entry.start,
            "end": entry.end,
            "offset": entry.offset,
            "prot": entry.prot,
        }
        for entry in entries
    ]


def render_process_table(entries: List[ProcessEntry]) -> None:
    if not entries:
        print("  processes: (none)")
        return
    rows = [[entry.pid, entry.name] for entry in entries]
    print(tabulate(rows, headers=["pid", "name"], tablefmt="github"))


def _prot_text(prot: int) -> str:
    return "".join(flag if prot & bit else "-" for flag, bit in (("r", 1), ("w", 2), ("x", 4)))


def render_map_table(entries: List[MapEntry]) -> None:
    if not entries:
        print("  maps: (none)")
        return
    rows = [
        [
            f"0x{entry.start:012X}",
            f"0x{entry.end:012X}",
            f"0x{entry.size:X}",
            f"0x{entry.offset:X}",
            _prot_text(entry.prot),
            entry.name,
        ]
        for entry in entries
    ]
    print(tabulate(rows, headers=["start", "end", "size", "offset", "prot", "name"], tablefmt="github"))


def format_hexdump(data: bytes, start: int = 0, *, width: int = 16) -> List[str]:
    """Classic hex + ASCII dump lines."""
    lines: List[str] = []
    for offset in range(0, len(data), width):
        chunk = data[offset : offset + width]
        hex_text = " ".join(f"{byte:02X}" for byte in chunk)
        padding = width - len(chunk)
        if padding > 0:
            hex_text += "   " * padding
        ascii_text = "".join(chr(byte) if 32 <= byte < 127 else "." for byte in chunk)
        address = (start + offset) & 0xFFFFFFFFFFFFFFFF
        lines.append(f"0x{address:012X}: {hex_text}  {ascii_text}")
    return lines


def render_hexdump(data: bytes, start: int = 0) -> None:
    if not data:
        print("<no data>")
        return
    for line in format_hexdump(data, start):
        print(line)


__all__ = [
    "emit_result",
    "emit_error",
    "process_rows",
    "map_rows",
    "render_process_table",
    "render_map_table",
    "format_hexdump",
    "render_hexdump",
]
