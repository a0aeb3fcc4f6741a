"""Logging setup shared by the CLI and library modules.

Library modules log through ``logging.getLogger(__name__)``; this module
routes the ``regkit`` logger tree to a rich console.
"""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "regkit"

console = Console(stderr=True)


def is_debug_env() -> bool:
    """True when the DEBUG environment variable is set to a non-empty, non-zero value."""
    value = os.environ.get("DEBUG", "")
    return value not in ("", "0", "false")


def configure_logging(
    silent: bool = False,
    debug: bool = False,
    target: Console | None = None,
) -> logging.Logger:
    """Attach a single RichHandler to the ``regkit`` logger.

    Calling this again replaces the previous handler, so repeated CLI
    invocations in one process do not duplicate output.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = RichHandler(
        console=target or console,
        show_time=False,
        show_path=debug,
        show_level=debug,
        markup=False,
        rich_tracebacks=debug,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)

    if silent:
        logger.setLevel(logging.ERROR)
    elif debug:
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)
    logger.propagate = False
    return logger
