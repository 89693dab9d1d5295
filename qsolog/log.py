"""Console logging for the `qsolog` package.

Library modules only call `logging.getLogger(__name__)`; the CLI calls
`configure_logging` once to route those records through rich on stderr.
"""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import load_settings

PACKAGE_LOGGER = "qsolog"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a RichHandler to the package logger (once) and set its level."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    name = (level or load_settings()["log_level"]).upper()
    logger.setLevel(getattr(logging, name, logging.WARNING))
    if not logger.handlers:
        logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
        logger.propagate = False
    return logger
