"""Logging setup for a generation run.

Modules log through ``logging.getLogger(__name__)``; this module decides
where those records go. Every run writes a DEBUG-level ``generation.log``
into the output directory. With ``--verbose`` the same records are also
rendered on stderr through Rich.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_FILENAME = "generation.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(filename)s:%(lineno)d: %(message)s"

_ROOT_LOGGER = "sdkraft"
_installed: list[logging.Handler] = []


def configure_logging(log_dir: Optional[Path] = None, verbose: bool = False) -> Optional[Path]:
    """Attach the run's handlers to the ``sdkraft`` logger.

    Calling it again replaces the handlers installed by the previous call,
    so repeated runs in one process never log twice.

    Args:
        log_dir: Directory for ``generation.log``; ``None`` disables the
            file handler.
        verbose: Also log to stderr at DEBUG level.

    Returns:
        Path of the log file, or ``None`` when no file handler was added.
    """
    shutdown_logging()
    logger = logging.getLogger(_ROOT_LOGGER)
    logger.setLevel(logging.DEBUG)

    log_path: Optional[Path] = None
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / LOG_FILENAME
        file_handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)
        _installed.append(file_handler)

    if verbose:
        console_handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        console_handler.setLevel(logging.DEBUG)
        logger.addHandler(console_handler)
        _installed.append(console_handler)

    return log_path


def shutdown_logging() -> None:
    """Detach and close every handler installed by :func:`configure_logging`."""
    logger = logging.getLogger(_ROOT_LOGGER)
    while _installed:
        handler = _installed.pop()
        logger.removeHandler(handler)
        handler.close()
