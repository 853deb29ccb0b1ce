"""Rich logging for the macro_planner package."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console

LOG_LEVELS = ("debug", "info", "warning", "error")

stderr_console = Console(stderr=True)


def setup_logging(level: str = "info", log_file: Path | None = None) -> logging.Logger:
    """Route macro_planner records to stderr through Rich, and optionally to a file.

    The file always receives DEBUG records, including engine node counts and
    CP-SAT search progress, whatever the console level is.
    """
    from rich.logging import RichHandler

    console_level = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger("macro_planner")
    logger.handlers.clear()
    logger.setLevel(logging.DEBUG if log_file is not None else console_level)

    rich_handler = RichHandler(
        console=stderr_console,
        level=console_level,
        show_path=console_level <= logging.DEBUG,
        markup=False,
        rich_tracebacks=True,
    )
    logger.addHandler(rich_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def wants_solver_log(logger: logging.Logger) -> bool:
    """True when CP-SAT search progress would reach some handler."""
    return logger.isEnabledFor(logging.DEBUG)
