"""Logging configuration for repo-pulse."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """Route log records to stderr through rich.

    WARNING by default, DEBUG with ``verbose``, ERROR with ``quiet``.
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        show_path=verbose,
    )
    logging.basicConfig(
        level=level, format="%(message)s", datefmt="[%X]", handlers=[handler], force=True
    )

    logger = logging.getLogger("repo_pulse")
    logger.setLevel(level)
    return logger
