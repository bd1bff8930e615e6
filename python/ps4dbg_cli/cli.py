"""ps4dbg CLI entry point."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List

from python.ps4dbg.constants import DEFAULT_PORT

from .commands import CommandRegistry, build_registry
from .context import DebuggerContext
from .history import CommandHistory
from .parser import parse_int, split_command
from .repl import DebuggerREPL

LOG = logging.getLogger("ps4dbg_cli.cli")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="PS4 debug agent client")
    parser.add_argument("--host", default=os.environ.get("PS4DBG_HOST", "127.0.0.1"), help="Agent host")
    parser.add_argument("--port", type=parse_int, default=DEFAULT_PORT, help=f"Agent port (default {DEFAULT_PORT})")
    parser.add_argument("--timeout", type=float, default=30.0, help="Idle read timeout in seconds")
    parser.add_argument("--json", action="store_true", help="Emit JSON output")
    parser.add_argument("--log-level", default=os.environ.get("PS4DBG_LOG", "INFO"), help="Logging level (default INFO)")
    parser.add_argument(
        "-c",
        "--command",
        help="Execute a single command non-interactively (quote the command string)",
    )
    parser.add_argument(
        "--history",
        type=Path,
        default=Path.home() / ".ps4dbg-history",
        help="Path to command history file",
    )
    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    ctx = DebuggerContext(
        host=args.host,
        port=args.port,
        timeout=args.timeout,
        json_output=args.json,
    )
    registry = build_registry()
    if args.command:
        try:
            return _run_single_command(ctx, registry, args.command)
        finally:
            ctx.disconnect()
    repl = DebuggerREPL(ctx, registry, history=CommandHistory(str(args.history)))
    try:
        return repl.run()
    except KeyboardInterrupt:
        print()
        return 0
    finally:
        ctx.disconnect()


def _run_single_command(ctx: DebuggerContext, registry: CommandRegistry, command_line: str) -> int:
    argv = split_command(command_line)
    if not argv:
        return 0
    cmd_name, *cmd_args = argv
    if cmd_name.startswith("#parse-error"):
        print(f"Parse error: {cmd_name.split(':', 1)[-1]}")
        return 1
    command = registry.get(ctx.resolve_alias(cmd_name))
    if not command:
        print(f"Unknown command: {cmd_name}")
        return 1
    try:
        return command.run(ctx, cmd_args)
    except SystemExit as exc:
        return int(exc.code or 0)
    except Exception as exc:
        LOG.exception("command failed")
        print(f"Command '{cmd_name}' failed: {exc}")
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
