"""
Logging setup for the command-line entry points.

Library modules only call `logging.getLogger(__name__)`; handlers are
installed here, once, by whoever runs the pipeline.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


PACKAGE_LOGGER = "ai_usage_ledger"


def setup_logging(verbose: bool = False, console: Optional[Console] = None) -> logging.Logger:
    """Attach a rich handler to the package logger.

    Calling it again only adjusts the level.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=False,
        )
        handler.setFormatter(logging.Formatter("%(name)s - %(message)s"))
        logger.addHandler(handler)
        logger.propagate = False

    for handler in logger.handlers:
        handler.setLevel(level)
    return logger
