"""
Pytest configuration and fixtures for the ps4dbg tests.
"""
import pytest

from python.ps4dbg import MapEntry, PS4Debug, ProcessEntry
from python.tests.agent_stubs import AgentServer, FakeAgent


@pytest.fixture
def sample_processes():
    return [ProcessEntry("eboot.bin", 101), ProcessEntry("SceShellUI", 1)]


@pytest.fixture
def sample_maps():
    return {
        101: [
            MapEntry("executable", 0x400000, 0x800000, 0, 5),
            MapEntry("libc.prx", 0x8_0000_0000, 0x8_0004_0000, 0x1000, 3),
        ]
    }


@pytest.fixture
def agent(sample_processes, sample_maps):
    return FakeAgent(sample_processes, sample_maps)


@pytest.fixture
def client(agent):
    dbg = PS4Debug()
    dbg.attach(agent)
    yield dbg
    dbg.disconnect()


@pytest.fixture
def agent_server(agent):
    server = AgentServer(agent)
    yield server
    server.close()
