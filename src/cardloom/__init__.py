"""Cardloom - kanban boards with optimistic drag-and-drop reordering.

Boards hold ordered columns, columns hold ordered cards. Moves show up
immediately and are reconciled with the database in the background.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

__version__ = "0.1.0"


def _setup_logging() -> None:
    """Configure logging to both console and rotating file."""
    from cardloom.config import get_settings

    log_dir = get_settings().app.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"cardloom.{os.getpid()}.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # File handler - detailed logging with rotation (10MB, keep 5 backups)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    logging.info("Logging configured. Log file: %s", log_file.absolute())


def main() -> None:
    """Entry point for the Cardloom application."""
    from nicegui import app, ui

    from cardloom.config import get_settings

    _setup_logging()

    # Serve static JS assets (board-drag.js)
    app.add_static_files("/static", str(Path(__file__).parent / "static"))

    import cardloom.pages  # noqa: F401 - registers routes

    settings = get_settings()

    # The in-memory backend needs no database.
    if not settings.dev.commands_mock:
        from cardloom.db import (
            close_db,
            create_schema,
            get_engine,
            init_db,
            verify_schema,
        )

        @app.on_startup
        async def startup() -> None:
            await init_db()
            await create_schema(get_engine())
            await verify_schema(get_engine())
            print("Database connected")

        @app.on_shutdown
        async def shutdown() -> None:
            await close_db()

    if settings.dev.seed_demo:
        from cardloom.commands import get_board_commands
        from cardloom.demo import seed_demo_board

        @app.on_startup
        async def seed() -> None:
            board_id = await seed_demo_board(get_board_commands())
            print(f"Demo board ready at /board/{board_id}")

    port = settings.app.port
    storage_secret = settings.app.storage_secret.get_secret_value()

    print(f"Cardloom v{__version__}")
    print(f"Starting application on http://0.0.0.0:{port}")

    reload = os.environ.get("CARDLOOM_RELOAD", "1") != "0"
    ui.run(
        host="0.0.0.0",  # nosec B104
        port=port,
        title=settings.app.title,
        reload=reload,
        storage_secret=storage_secret,
    )


if __name__ in {"__main__", "__mp_main__"}:
    main()
