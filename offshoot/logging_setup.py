"""Console logging for the offshoot CLI.

The library itself only creates module loggers; installing handlers is
left to the application. The CLI calls ``configure_logging`` once.
"""

from __future__ import annotations

import logging

from rich.logging import RichHandler


def configure_logging(level: str | int = "INFO") -> None:
    """Route ``offshoot.*`` loggers to a Rich console handler."""
    logger = logging.getLogger("offshoot")
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        logger.addHandler(RichHandler(show_path=False, markup=False))
