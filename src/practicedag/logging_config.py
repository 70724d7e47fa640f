"""Logging setup for the command line.

Library modules only create loggers (logging.getLogger(__name__)); handlers
are installed here, once, by the CLI.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "practicedag"


def setup_logging(level: str = "WARNING", *, verbose: bool = False) -> logging.Logger:
    """Send practicedag log records to stderr through Rich.

    Calling it again replaces the previous handler instead of adding one.

    Args:
        level: Logging level name, e.g. "INFO".
        verbose: Force DEBUG regardless of level.

    Returns:
        The package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else level.upper())
    logger.propagate = False
    return logger
