import pytest

from python.ps4dbg.constants import COMMANDS, Command, command_spec


def test_command_ids():
    assert Command.PROC_LIST == 0xBDAA0001
    assert Command.PROC_FREE == 0xBDAA000C
    assert Command.CONSOLE_REBOOT == 0xBDDD0001
    assert Command.CONSOLE_INFO == 0xBDDD0005


def test_table_covers_every_command():
    assert set(COMMANDS) == set(Command)
    assert all(spec.command is cmd for cmd, spec in COMMANDS.items())


@pytest.mark.parametrize(
    "command,size",
    [
        (Command.PROC_LIST, 0),
        (Command.PROC_READ, 16),
        (Command.PROC_WRITE, 16),
        (Command.PROC_MAPS, 4),
        (Command.PROC_INSTALL, 4),
        (Command.PROC_CALL, 68),
        (Command.PROC_ELF, 8),
        (Command.PROC_ALLOC, 8),
        (Command.PROC_FREE, 16),
        (Command.CONSOLE_PRINT, 4),
        (Command.CONSOLE_NOTIFY, 8),
    ],
)
def test_request_sizes(command, size):
    assert command_spec(command).request_size == size


def test_table_is_read_only():
    with pytest.raises(TypeError):
        COMMANDS[Command.PROC_READ] = None  # type: ignore[index]
    with pytest.raises(AttributeError):
        COMMANDS[Command.PROC_READ].request_size = 99  # type: ignore[misc]
