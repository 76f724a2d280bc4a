"""Logging helpers for artifact-stream.

All modules obtain their logger through :func:`get_logger` so that every
record lives under the ``artifact_stream`` namespace. Library code never
installs handlers; the CLI calls :func:`configure_logging` once at startup.

Example:
    ```python
    from artifact_stream.logging import get_logger

    logger = get_logger("engine.coordinator")
    logger.info("Session started")
    ```
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rich.logging import RichHandler

if TYPE_CHECKING:
    from rich.console import Console

__all__ = [
    "ROOT_LOGGER_NAME",
    "configure_logging",
    "get_logger",
]

ROOT_LOGGER_NAME = "artifact_stream"


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger under the package namespace.

    Args:
        name: Dotted sub-name (e.g. "engine.store"). None returns the
            package root logger.

    Returns:
        Standard library logger.
    """
    if not name:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(
    level: int | str = logging.WARNING,
    *,
    console: Console | None = None,
) -> logging.Logger:
    """Install a Rich handler on the package logger.

    Calling this more than once replaces the previously installed handler
    instead of stacking duplicates.

    Args:
        level: Log level name or number.
        console: Optional Rich console to log to (defaults to stderr).

    Returns:
        The configured package root logger.
    """
    root = get_logger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)

    handler = RichHandler(
        console=console,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    root.propagate = False
    return root
