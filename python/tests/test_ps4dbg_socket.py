"""End-to-end tests against a fake agent on a real localhost socket."""

import pytest

from python.ps4dbg import NotConnectedError, PS4Debug, ProtocolStatusError, TransportConfig
from python.ps4dbg.constants import Command
from python.tests.agent_stubs import STATUS_ERROR


def _client(port: int) -> PS4Debug:
    return PS4Debug(TransportConfig(host="127.0.0.1", port=port, connect_timeout=2.0, read_timeout=2.0))


def test_session_over_socket(agent_server, agent):
    dbg = _client(agent_server.port)
    dbg.connect()
    try:
        processes = dbg.get_process_list()
        assert [p.name for p in processes] == ["eboot.bin", "SceShellUI"]

        blob = bytes(index % 199 for index in range(8193))
        dbg.write_memory(101, 0x7000, blob)
        assert dbg.read_memory(101, 0x7000, len(blob)) == blob

        dbg.write_uint64(101, 0x9000, 2**64 - 1)
        assert dbg.read_uint64(101, 0x9000) == 2**64 - 1

        agent.call_handler = lambda frame: frame.args[0] * 2
        stub = dbg.install_rpc(101)
        assert dbg.call(101, stub, 0x1234, 21) == 42
    finally:
        dbg.disconnect()


def test_reconnect_after_status_error(agent_server, agent):
    dbg = _client(agent_server.port)
    dbg.connect()
    agent.failures[Command.PROC_MAPS] = STATUS_ERROR
    with pytest.raises(ProtocolStatusError):
        dbg.get_process_maps(101)
    with pytest.raises(NotConnectedError):
        dbg.get_process_list()

    del agent.failures[Command.PROC_MAPS]
    dbg.connect()
    try:
        assert len(dbg.get_process_maps(101)) == 2
    finally:
        dbg.disconnect()
