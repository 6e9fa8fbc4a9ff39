"""
Shared `rich` console and library logging helpers.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

console = Console()
"""Console used by all `print()` methods of the library."""

LOGGER_ROOT = "librc"

def getLogger(name: str = None) -> logging.Logger:
    """Return the library logger `librc.<name>` (or the root library logger)."""
    if name is None:
        return logging.getLogger(LOGGER_ROOT)
    return logging.getLogger(f"{LOGGER_ROOT}.{name}")

def enableConsoleLogging(level=logging.INFO) -> logging.Handler:
    """
    Attach a `rich.logging.RichHandler` writing to the shared console to the 
    library root logger. Calling it again only updates the level.
    """
    logger = getLogger()
    for h in logger.handlers:
        if isinstance(h, RichHandler):
            h.setLevel(level)
            logger.setLevel(level)
            return h

    handler = RichHandler(console=console, show_path=False)
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.setLevel(level)
    return handler

# library default: silent unless the application configures logging
getLogger().addHandler(logging.NullHandler())
