"""
Console logging for builds.

Build messages go through the ``assetforge`` logger tree. Third-party
loggers stay at WARNING so ``-v`` only makes the build itself chattier.
"""

from __future__ import annotations

import logging
import os

from rich.logging import RichHandler

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
LOG_LEVEL_ENV = "ASSETFORGE_LOG_LEVEL"


def resolve_level(level: str | None = None, verbose: int = 0) -> int:
    """
    Pick the level for assetforge loggers.

    Precedence: explicit ``level``, then ``verbose`` (each step lowers the
    level by one from INFO), then ``ASSETFORGE_LOG_LEVEL``, then INFO. An
    unknown name in the environment falls back to INFO.

    Args:
        level: Level name such as ``"debug"``.
        verbose: Number of ``-v`` flags.

    Returns:
        Numeric logging level.

    Raises:
        ValueError: If ``level`` is not a known level name.
    """
    if level is not None:
        name = level.upper().strip()
        if name not in LOG_LEVELS:
            raise ValueError(f"Unknown log level {level!r}; expected one of {', '.join(LOG_LEVELS)}")
        return getattr(logging, name)

    if verbose > 0:
        return max(logging.DEBUG, logging.INFO - 10 * verbose)

    name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper().strip()
    return getattr(logging, name) if name in LOG_LEVELS else logging.INFO


def setup_logging(level: str | None = None, verbose: int = 0) -> int:
    """
    Send build logs to the console through rich.

    Replaces any handlers installed by an earlier call, so the CLI can be
    invoked repeatedly in one process.

    Returns:
        The level applied to the ``assetforge`` logger.
    """
    resolved = resolve_level(level, verbose)

    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)

    root.addHandler(
        RichHandler(
            show_path=False,
            show_time=resolved <= logging.DEBUG,
            markup=False,
            rich_tracebacks=resolved <= logging.DEBUG,
        )
    )
    root.setLevel(logging.WARNING)
    logging.getLogger("assetforge").setLevel(resolved)
    return resolved
