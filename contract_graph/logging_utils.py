"""Rich-backed logging for the contract-graph CLI."""
from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

# Diagrams may be written to stdout, so log records go to stderr.
console = Console(stderr=True)

PACKAGE_LOGGER = "contract_graph"


def setup_logging(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """
    Attach a RichHandler to the package logger.

    Args:
        verbose: Log at DEBUG and show source locations
        quiet: Only log warnings and errors (ignored when ``verbose`` is set)
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(console=console, rich_tracebacks=True, show_path=verbose)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
