"""Persistence command boundary for boards.

The mutation dispatcher talks to persistence only through
``BoardCommandsProtocol``; ``get_board_commands()`` picks the backend.
"""

from cardloom.commands.factory import clear_commands_cache, get_board_commands
from cardloom.commands.memory import InMemoryBoardCommands
from cardloom.commands.protocol import BoardCommandsProtocol

__all__ = [
    "BoardCommandsProtocol",
    "InMemoryBoardCommands",
    "clear_commands_cache",
    "get_board_commands",
]
