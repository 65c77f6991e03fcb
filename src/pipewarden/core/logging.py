"""Logging setup for pipewarden.

All modules obtain loggers via ``get_logger(__name__)`` so that output is
routed through the single ``pipewarden`` root logger configured by the CLI.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

ROOT_LOGGER_NAME = "pipewarden"

_DEFAULT_FORMAT = "%(levelname)s %(name)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the pipewarden namespace.

    Args:
        name: Module name, usually ``__name__``.

    Returns:
        Logger instance.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    use_rich: Optional[bool] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Configure the pipewarden root logger.

    Level precedence: debug > verbose > quiet > default (WARNING).

    Args:
        debug: Enable DEBUG level.
        verbose: Enable INFO level.
        quiet: Only show errors.
        use_rich: Force Rich handler on/off. Defaults to Rich when the
            stream is a terminal.
        stream: Output stream (default: stderr).

    Returns:
        The configured root logger.
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    output = stream or sys.stderr
    if use_rich is None:
        use_rich = hasattr(output, "isatty") and output.isatty()

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    # Replace handlers so repeated configuration (tests, nested runs) doesn't duplicate output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler: logging.Handler
    if use_rich:
        from rich.console import Console
        from rich.logging import RichHandler

        handler = RichHandler(
            console=Console(file=output),
            show_time=False,
            show_path=debug,
            rich_tracebacks=debug,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(output)
        handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))

    handler.setLevel(level)
    logger.addHandler(handler)
    logger.propagate = False
    return logger
