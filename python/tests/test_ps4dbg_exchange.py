from unittest.mock import MagicMock

import pytest

from python.ps4dbg.constants import COMMANDS, STATUS_SUCCESS, Command
from python.ps4dbg.errors import ConnectionClosedError, ExchangeStateError, ProtocolStatusError
from python.ps4dbg.exchange import CommandExchange, ExchangeState, check_status
from python.ps4dbg.packets import FixedInt32, FixedInt64
from python.ps4dbg.transport import ChunkedTransport
from python.tests.agent_stubs import ScriptedStream, status_bytes


def _exchange(response: bytes, command: Command = Command.PROC_READ, on_failure=None):
    stream = ScriptedStream(response)
    transport = ChunkedTransport(stream)
    return stream, transport, CommandExchange(transport, COMMANDS[command], on_failure=on_failure)


@pytest.mark.parametrize("code", [STATUS_SUCCESS])
def test_check_status_success(code):
    transport = ChunkedTransport(ScriptedStream(status_bytes(code)))
    assert check_status(transport) == STATUS_SUCCESS


@pytest.mark.parametrize("code", [0, 1, 0x7FFFFFFF, 0x80000001, 0xF0000001, 0xFFFFFFFF])
def test_check_status_failure_codes(code):
    transport = ChunkedTransport(ScriptedStream(status_bytes(code)))
    with pytest.raises(ProtocolStatusError) as excinfo:
        check_status(transport)
    assert excinfo.value.code == code
    assert f"0x{code:08X}" in str(excinfo.value)


def test_check_status_short_read():
    transport = ChunkedTransport(ScriptedStream(b"\x00\x00"))
    with pytest.raises(ConnectionClosedError):
        check_status(transport)


def test_read_exchange_walks_states():
    stream, _, exchange = _exchange(status_bytes() + b"data")
    with exchange:
        exchange.send_request([FixedInt32(5), FixedInt64(0x1000), FixedInt32(4)])
        exchange.check_status()
        assert exchange.receive(4) == b"data"
    assert exchange.trace == [
        ExchangeState.IDLE,
        ExchangeState.HEADER_SENT,
        ExchangeState.PAYLOAD_SENT,
        ExchangeState.STATUS_OK,
        ExchangeState.RESPONSE_RECEIVED,
    ]
    assert len(stream.written) == 12 + 16


def test_header_declares_table_size_by_default():
    stream, _, exchange = _exchange(status_bytes(), Command.PROC_FREE)
    with exchange:
        exchange.send_request([FixedInt32(1), FixedInt64(2), FixedInt32(3)])
        exchange.check_status()
    assert stream.writes[0][8:12] == (16).to_bytes(4, "little")


def test_zero_length_payload_sends_header_only():
    stream, _, exchange = _exchange(status_bytes(), Command.PROC_LIST)
    with exchange:
        exchange.send_request()
        exchange.check_status()
    assert len(stream.writes) == 1
    assert exchange.state is ExchangeState.STATUS_OK


def test_out_of_order_step_raises_before_io():
    stream, transport, exchange = _exchange(status_bytes())
    with pytest.raises(ExchangeStateError):
        exchange.check_status()
    assert stream.reads == []
    assert transport.usable


def test_receive_before_status_is_rejected():
    stream, transport, exchange = _exchange(status_bytes())
    with pytest.raises(ExchangeStateError):
        with exchange:
            exchange.send_request([1, 2, 3])
            exchange.receive(4)
    assert exchange.state is ExchangeState.FAILED
    assert not transport.usable


def test_status_error_invalidates_transport():
    hook = MagicMock()
    _, transport, exchange = _exchange(status_bytes(0xF0000001), on_failure=hook)
    with pytest.raises(ProtocolStatusError):
        with exchange:
            exchange.send_request([1, 2, 3])
            exchange.check_status()
    assert exchange.state is ExchangeState.FAILED
    assert not transport.usable
    hook.assert_called_once()
    assert isinstance(hook.call_args.args[0], ProtocolStatusError)


def test_abandoned_exchange_is_a_desync():
    hook = MagicMock()
    _, transport, exchange = _exchange(status_bytes(), on_failure=hook)
    with pytest.raises(ExchangeStateError, match="abandoned"):
        with exchange:
            exchange.send_request([1, 2, 3])
    assert not transport.usable
    hook.assert_called_once_with(None)


def test_error_before_any_io_keeps_transport():
    hook = MagicMock()
    _, transport, exchange = _exchange(b"", on_failure=hook)
    with pytest.raises(KeyError):
        with exchange:
            raise KeyError("local")
    assert transport.usable
    hook.assert_not_called()


def test_frame_length_must_match_header():
    _, _, exchange = _exchange(b"", Command.PROC_CALL)
    exchange.send_header()
    with pytest.raises(ExchangeStateError):
        exchange.send_frame(b"\x00" * 60)


def test_write_exchange_with_bulk_phase():
    stream, _, exchange = _exchange(status_bytes() + status_bytes(), Command.PROC_WRITE)
    with exchange:
        exchange.send_request([FixedInt32(1), FixedInt64(0x10), FixedInt32(3)])
        exchange.check_status()
        exchange.send_data(b"abc")
        exchange.check_status()
    assert stream.written.endswith(b"abc")
    assert ExchangeState.DATA_SENT in exchange.trace
    assert exchange.complete


def test_bad_field_is_rejected_before_header():
    stream, transport, exchange = _exchange(status_bytes())
    with pytest.raises(ValueError):
        with exchange:
            exchange.send_request([FixedInt32(5), FixedInt64(0x1000), FixedInt32(0x1_0000_0000)])
    assert stream.writes == []
    assert exchange.state is ExchangeState.IDLE
    assert transport.usable
