"""Board command backend factory.

Provides a factory function to get the appropriate command backend
based on configuration (local database or in-memory for demos and tests).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cardloom.config import get_settings

if TYPE_CHECKING:
    from cardloom.commands.protocol import BoardCommandsProtocol


# Cached in-memory instance so boards survive across page loads
_memory_instance: BoardCommandsProtocol | None = None


def get_board_commands() -> BoardCommandsProtocol:
    """Get the command backend selected by configuration.

    If DEV__COMMANDS_MOCK=true, returns InMemoryBoardCommands (singleton to
    keep boards between requests). Otherwise, returns DbBoardCommands.
    """
    global _memory_instance  # noqa: PLW0603

    if get_settings().dev.commands_mock:
        if _memory_instance is None:
            from cardloom.commands.memory import InMemoryBoardCommands

            _memory_instance = InMemoryBoardCommands()
        return _memory_instance

    from cardloom.commands.local import DbBoardCommands

    return DbBoardCommands()


def clear_commands_cache() -> None:
    """Clear the configuration and in-memory backend caches.

    Useful for testing when you need to reload configuration
    or start from an empty in-memory backend.
    """
    global _memory_instance  # noqa: PLW0603
    get_settings.cache_clear()
    _memory_instance = None
