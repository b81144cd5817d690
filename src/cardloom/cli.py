"""Command-line utilities for Cardloom.

``seed-data`` creates the demo board; ``manage-boards`` lists, inspects,
creates, deletes and checks boards from the terminal.
"""

from __future__ import annotations

import asyncio
import sys
from datetime import datetime
from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel

if TYPE_CHECKING:
    import argparse

    from cardloom.commands.protocol import BoardCommandsProtocol

console = Console()


def _format_timestamp(dt: datetime | None) -> str:
    if dt is None:
        return "-"
    return dt.strftime("%Y-%m-%d %H:%M")


def _build_board_parser() -> argparse.ArgumentParser:
    """Build argparse parser for manage-boards subcommands."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="manage-boards",
        description="List, inspect, create, delete and check boards.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List all boards")

    show_p = sub.add_parser("show", help="Show a board's columns and cards")
    show_p.add_argument("board_id", help="Board id")

    create_p = sub.add_parser("create", help="Create a board")
    create_p.add_argument("title", help="Board title")
    create_p.add_argument("--description", default=None, help="Board description")
    create_p.add_argument("--icon", default="", help="Board icon name")
    create_p.add_argument(
        "--no-columns",
        action="store_true",
        help="Do not create the default columns",
    )

    delete_p = sub.add_parser("delete", help="Delete a board and everything on it")
    delete_p.add_argument("board_id", help="Board id")
    delete_p.add_argument("--yes", action="store_true", help="Skip confirmation")

    check_p = sub.add_parser("check", help="Verify position density on every board")
    check_p.add_argument(
        "board_id", nargs="?", default=None, help="Only check this board"
    )

    return parser


async def _cmd_list(
    commands: BoardCommandsProtocol, *, console: Console | None = None
) -> None:
    """List boards as a Rich table."""
    from rich.table import Table

    con = console or globals()["console"]
    boards = await commands.load_boards()
    if not boards:
        con.print("[yellow]No boards found.[/]")
        return

    table = Table(title="Boards")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Icon")
    table.add_column("Updated")
    for board in boards:
        table.add_row(
            board.id,
            f"{board.emoji} {board.title}" if board.emoji else board.title,
            board.icon,
            _format_timestamp(board.updated_at),
        )
    con.print(table)


async def _cmd_show(
    commands: BoardCommandsProtocol,
    board_id: str,
    *,
    console: Console | None = None,
) -> None:
    """Show one board's columns and their cards in order."""
    from rich.table import Table

    from cardloom.board.errors import NotFoundError

    con = console or globals()["console"]
    try:
        board = await commands.load_board(board_id)
    except NotFoundError:
        con.print(f"[red]Error:[/] no board found with id '{board_id}'")
        sys.exit(1)

    columns = await commands.load_columns(board_id)
    cards = await commands.load_cards(board_id)
    tags = {tag.id: tag.label for tag in await commands.load_tags(board_id)}

    con.print(f"\n[bold]{board.title}[/] ([dim]{board.id}[/])")
    if board.description:
        con.print(f"  {board.description}")
    if not columns:
        con.print("\n  [dim]No columns.[/]")
        return

    for column in columns:
        siblings = sorted(
            (c for c in cards if c.column_id == column.id), key=lambda c: c.position
        )
        limit = f" / {column.wip_limit}" if column.wip_limit else ""
        hidden = " [dim](hidden)[/]" if not column.is_enabled else ""
        table = Table(
            title=f"{column.position}. {column.title} ({len(siblings)}{limit}){hidden}"
        )
        table.add_column("#", justify="right")
        table.add_column("Title")
        table.add_column("Priority")
        table.add_column("Due")
        table.add_column("Tags")
        for card in siblings:
            table.add_row(
                str(card.position),
                card.title,
                card.priority.value,
                card.due_date.isoformat() if card.due_date else "",
                ", ".join(tags.get(t, t) for t in card.tag_ids),
            )
        con.print(table)


async def _cmd_create(
    commands: BoardCommandsProtocol,
    title: str,
    *,
    description: str | None = None,
    icon: str = "",
    with_columns: bool = True,
    console: Console | None = None,
) -> None:
    """Create a board, with the default columns unless told otherwise."""
    from cardloom.board import BoardStore, MutationDispatcher
    from cardloom.board.catalog import create_board
    from cardloom.board.errors import BoardValidationError
    from cardloom.models.snapshot import BoardSnapshot

    con = console or globals()["console"]
    try:
        board = await create_board(
            commands, title, description=description, icon=icon
        )
    except BoardValidationError as exc:
        con.print(f"[red]Error:[/] {exc}")
        sys.exit(1)
    con.print(f"[green]Created[/] board '{board.title}' (id={board.id})")

    if with_columns:
        dispatcher = MutationDispatcher(BoardStore(BoardSnapshot(board.id)), commands)
        await dispatcher.load()
        columns = await dispatcher.seed_default_columns()
        for column in columns:
            con.print(f"  [green]Column:[/] {column.title}")


async def _cmd_delete(
    commands: BoardCommandsProtocol,
    board_id: str,
    *,
    assume_yes: bool = False,
    console: Console | None = None,
) -> None:
    from rich.prompt import Confirm

    from cardloom.board.catalog import delete_board
    from cardloom.board.errors import NotFoundError

    con = console or globals()["console"]
    try:
        board = await commands.load_board(board_id)
    except NotFoundError:
        con.print(f"[red]Error:[/] no board found with id '{board_id}'")
        sys.exit(1)

    if not assume_yes and not Confirm.ask(
        f"Delete '{board.title}' with all of its columns and cards?",
        console=con,
    ):
        con.print("[yellow]Aborted.[/]")
        return
    await delete_board(commands, board_id)
    con.print(f"[green]Deleted[/] board '{board.title}'")


async def _cmd_check(
    commands: BoardCommandsProtocol,
    board_id: str | None = None,
    *,
    console: Console | None = None,
) -> int:
    """Check position density; returns the number of offending boards."""
    from cardloom.board.catalog import check_board

    con = console or globals()["console"]
    if board_id is not None:
        board_ids = [board_id]
    else:
        board_ids = [board.id for board in await commands.load_boards()]

    failures = 0
    for current in board_ids:
        problems = await check_board(commands, current)
        if not problems:
            con.print(f"[green]OK[/] {current}")
            continue
        failures += 1
        con.print(f"[red]FAIL[/] {current}")
        for problem in problems:
            con.print(f"  {problem}")
    return failures


def _board_commands() -> BoardCommandsProtocol:
    from cardloom.commands.factory import get_board_commands

    return get_board_commands()


async def _prepare_database() -> None:
    from cardloom.config import get_settings
    from cardloom.db import create_schema, get_engine, init_db

    if get_settings().dev.commands_mock:
        return
    await init_db()
    await create_schema(get_engine())


def manage_boards() -> None:
    """Manage boards from the command line.

    Usage:
        uv run manage-boards <command> [options]

    Commands:
        list                 List all boards
        show <board_id>      Show columns and cards
        create <title>       Create a board (--no-columns to skip defaults)
        delete <board_id>    Delete a board (--yes to skip confirmation)
        check [board_id]     Verify position density
    """
    parser = _build_board_parser()
    args = parser.parse_args(sys.argv[1:])

    async def _run() -> int:
        from cardloom.db import close_db

        await _prepare_database()
        commands = _board_commands()
        try:
            match args.command:
                case "list":
                    await _cmd_list(commands)
                case "show":
                    await _cmd_show(commands, args.board_id)
                case "create":
                    await _cmd_create(
                        commands,
                        args.title,
                        description=args.description,
                        icon=args.icon,
                        with_columns=not args.no_columns,
                    )
                case "delete":
                    await _cmd_delete(commands, args.board_id, assume_yes=args.yes)
                case "check":
                    return 1 if await _cmd_check(commands, args.board_id) else 0
        finally:
            await close_db()
        return 0

    sys.exit(asyncio.run(_run()))


def seed_data() -> None:
    """Seed the database with a demo board for development.

    Idempotent: safe to run multiple times. An existing demo board is reused.

    Usage:
        uv run seed-data
    """
    from cardloom.config import get_settings

    async def _seed() -> str:
        from cardloom.db import close_db
        from cardloom.demo import seed_demo_board

        await _prepare_database()
        try:
            return await seed_demo_board(_board_commands())
        finally:
            await close_db()

    board_id = asyncio.run(_seed())
    port = get_settings().app.port
    console.print()
    console.print(
        Panel(
            f"[bold]Board:[/] http://localhost:{port}/board/{board_id}",
            title="Seed Data Ready",
        )
    )
