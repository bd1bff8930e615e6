"""Unit tests for the ps4dbg CLI commands."""

from __future__ import annotations

import json

import pytest

from prompt_toolkit.document import Document

from python.ps4dbg import ConnectionClosedError, PS4Debug
from python.ps4dbg.constants import Command
from python.ps4dbg_cli.cli import main
from python.ps4dbg_cli.commands import build_registry
from python.ps4dbg_cli.commands.connect import ConnectCommand
from python.ps4dbg_cli.commands.exit import ExitCommand
from python.ps4dbg_cli.commands.maps import MapsCommand
from python.ps4dbg_cli.commands.memory import MemoryCommand
from python.ps4dbg_cli.commands.notify import NotifyCommand
from python.ps4dbg_cli.commands.ps import PsCommand
from python.ps4dbg_cli.commands.rpc import RpcCommand
from python.ps4dbg_cli.commands.status import StatusCommand
from python.ps4dbg_cli.completion import DebuggerCompleter
from python.ps4dbg_cli.context import DebuggerContext
from python.ps4dbg_cli.repl import DebuggerREPL
from python.tests.agent_stubs import STATUS_ERROR, ScriptedStream


class StubContext(DebuggerContext):
    def __init__(self, stream, *, json_output: bool = False):
        super().__init__(host="127.0.0.1", port=744, json_output=json_output)
        self.stream = stream
        self.client_factory = lambda config: PS4Debug(config, stream_factory=lambda _cfg: self.stream)


def _json(capsys):
    return json.loads(capsys.readouterr().out)


def test_ps_lists_processes(agent, capsys):
    ctx = StubContext(agent)
    assert PsCommand().run(ctx, []) == 0
    out = capsys.readouterr().out
    assert "eboot.bin" in out
    assert "SceShellUI" in out
    assert ctx.connected


def test_ps_json_output(agent, capsys):
    ctx = StubContext(agent, json_output=True)
    assert PsCommand().run(ctx, []) == 0
    payload = _json(capsys)
    assert payload["status"] == "ok"
    assert payload["result"]["processes"] == [
        {"pid": 101, "name": "eboot.bin"},
        {"pid": 1, "name": "SceShellUI"},
    ]


def test_ps_find_by_name(agent, capsys):
    ctx = StubContext(agent)
    assert PsCommand().run(ctx, ["shell"]) == 0
    assert "1 SceShellUI" in capsys.readouterr().out
    assert PsCommand().run(ctx, ["shell", "--exact"]) == 1


def test_maps_table_and_filter(agent, capsys):
    ctx = StubContext(agent)
    assert MapsCommand().run(ctx, ["101"]) == 0
    out = capsys.readouterr().out
    assert "libc.prx" in out
    assert "r-x" in out
    ctx.json_output = True
    assert MapsCommand().run(ctx, ["101", "libc", "--contains"]) == 0
    entries = _json(capsys)["result"]["entries"]
    assert [entry["name"] for entry in entries] == ["libc.prx"]


def test_mem_read_hexdump(agent, capsys):
    agent.poke(101, 0x1000, b"\xde\xad\xbe\xef")
    ctx = StubContext(agent)
    assert MemoryCommand().run(ctx, ["read", "101", "0x1000", "--count", "4"]) == 0
    assert "0x000000001000: DE AD BE EF" in capsys.readouterr().out


def test_mem_write_and_string(agent):
    ctx = StubContext(agent)
    assert MemoryCommand().run(ctx, ["write", "101", "0x2000", "de", "ad"]) == 0
    assert agent.peek(101, 0x2000, 2) == b"\xde\xad"
    assert MemoryCommand().run(ctx, ["string", "101", "0x3000", "hello", "there"]) == 0
    assert agent.peek(101, 0x3000, 12) == b"hello there\0"


def test_mem_u64_and_value(agent, capsys):
    ctx = StubContext(agent, json_output=True)
    assert MemoryCommand().run(ctx, ["u64", "101", "0x4000", "0xFFFFFFFFFFFFFFFF"]) == 0
    capsys.readouterr()
    assert MemoryCommand().run(ctx, ["u64", "101", "0x4000"]) == 0
    assert _json(capsys)["result"]["value"] == 2**64 - 1
    assert MemoryCommand().run(ctx, ["value", "101", "0x4000", "--kind", "int32"]) == 0
    assert _json(capsys)["result"] == {"value": -1, "kind": "Int32"}


def test_mem_alloc_and_free(agent, capsys):
    ctx = StubContext(agent, json_output=True)
    assert MemoryCommand().run(ctx, ["alloc", "101", "0x100"]) == 0
    address = _json(capsys)["result"]["address"]
    assert MemoryCommand().run(ctx, ["free", "101", hex(address), "0x100"]) == 0
    assert agent.freed == [(101, address, 0x100)]


def test_mem_bad_hex_is_usage_error(agent, capsys):
    ctx = StubContext(agent)
    assert MemoryCommand().run(ctx, ["write", "101", "0x10", "zz"]) == 1
    assert "error:" in capsys.readouterr().out
    assert agent.headers == []


def test_mem_missing_args_is_usage_error(agent):
    assert MemoryCommand().run(StubContext(agent), ["read"]) == 1


def test_rpc_install_and_call(agent, capsys):
    agent.call_handler = lambda frame: frame.args[0] + frame.args[1]
    ctx = StubContext(agent, json_output=True)
    assert RpcCommand().run(ctx, ["install", "101"]) == 0
    stub = _json(capsys)["result"]["stub"]
    assert RpcCommand().run(ctx, ["call", "101", hex(stub), "0x5000", "40", "2"]) == 0
    result = _json(capsys)["result"]
    assert result["value"] == 42
    assert result["echo"] == 101


def test_rpc_call_too_many_args(agent, capsys):
    ctx = StubContext(agent)
    rc = RpcCommand().run(ctx, ["call", "101", "0x1000", "0x2000"] + [str(i) for i in range(7)])
    assert rc == 1
    assert "too many rpc arguments" in capsys.readouterr().out
    assert agent.headers == []


def test_notify_sends_text(agent):
    ctx = StubContext(agent)
    assert NotifyCommand().run(ctx, ["hello", "world"]) == 0
    assert NotifyCommand().run(ctx, ["--print", "logged"]) == 0
    assert agent.notifications == [(222, b"hello world\0")]
    assert agent.printed == ["logged"]


def test_protocol_error_exit_code(agent, capsys):
    agent.failures[Command.PROC_LIST] = STATUS_ERROR
    ctx = StubContext(agent, json_output=True)
    assert PsCommand().run(ctx, []) == 1
    payload = _json(capsys)
    assert payload["status"] == "error"
    assert payload["details"]["code"] == "0xF0000001"
    assert not ctx.connected


def test_transport_failure_exit_code(capsys):
    ctx = StubContext(ScriptedStream(b"\x00\x00"))
    assert PsCommand().run(ctx, []) == 2
    assert "ps failed" in capsys.readouterr().out


def test_connect_failure_exit_code(capsys):
    def refuse(config):
        raise ConnectionClosedError(f"connect to {config.host}:{config.port} failed")

    ctx = DebuggerContext(client_factory=lambda config: PS4Debug(config, stream_factory=refuse))
    assert ConnectCommand().run(ctx, ["10.1.1.1", "--port", "9999"]) == 2
    assert ctx.host == "10.1.1.1"
    assert ctx.port == 9999
    assert "connect failed" in capsys.readouterr().out


def test_status_reports_connection(agent, capsys):
    ctx = StubContext(agent)
    assert StatusCommand().run(ctx, []) == 0
    assert "Not connected" in capsys.readouterr().out
    ctx.ensure_client()
    assert StatusCommand().run(ctx, []) == 0
    assert "Connected to 127.0.0.1:744" in capsys.readouterr().out


def test_exit_disconnects(agent):
    ctx = StubContext(agent)
    ctx.ensure_client()
    with pytest.raises(SystemExit):
        ExitCommand().run(ctx, [])
    assert not ctx.connected
    assert agent.closed


def test_help_lists_commands(capsys):
    registry = build_registry()
    help_command = registry.get("help")
    assert help_command.run(DebuggerContext(), []) == 0
    out = capsys.readouterr().out
    for name in ("connect", "ps", "maps", "mem", "rpc", "notify", "exit"):
        assert name in out


def test_repl_dispatch(agent, capsys):
    ctx = StubContext(agent)
    repl = DebuggerREPL(ctx, build_registry())
    assert repl.dispatch("x read 101 0 --count 2") == 0
    assert repl.dispatch("nope") == 1
    assert "Unknown command: nope" in capsys.readouterr().out
    assert repl.dispatch("   ") is None


def test_single_command_mode(capsys):
    assert main(["--log-level", "WARNING", "-c", "status"]) == 0
    assert "Not connected" in capsys.readouterr().out
    assert main(["-c", "bogus"]) == 1
    assert main(["-c", 'ps "unterminated']) == 1
    assert "Parse error" in capsys.readouterr().out


def test_completer_suggests_commands_and_subcommands():
    completer = DebuggerCompleter(DebuggerContext(), build_registry())

    def complete(text):
        return {c.text for c in completer.get_completions(Document(text, cursor_position=len(text)), None)}

    assert {"maps", "mem", "memory"} <= complete("m")
    assert complete("mem r") == {"read"}
    assert complete("x ") >= {"read", "write", "alloc"}
    assert complete("mem value 1 2 --kind ui") == {"uint16", "uint32", "uint64"}


def test_rpc_call_out_of_range_keeps_connection(agent, capsys):
    ctx = StubContext(agent)
    ctx.ensure_client()
    assert RpcCommand().run(ctx, ["call", "0x80000000", "0x1000", "0x2000"]) == 1
    assert "rpc call:" in capsys.readouterr().out
    assert agent.headers == []
    assert ctx.connected
