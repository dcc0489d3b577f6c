"""Logging setup for the reelarr package."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
VALID_LEVELS = ("debug", "info", "warning", "error", "critical")


def parse_level(level: str | int) -> int:
    """Convert a level name (any case) or number to a logging level.

    Raises:
        ValueError: If the name is not a known level
    """
    if isinstance(level, int):
        return level
    name = level.strip().lower()
    if name not in VALID_LEVELS:
        raise ValueError(
            f"Invalid log level {level!r}. Choose from: {', '.join(VALID_LEVELS)}"
        )
    return int(getattr(logging, name.upper()))


def configure_logging(level: str | int = "info") -> None:
    """Send reelarr logs to stderr at the given level.

    Calling it again replaces the handler instead of adding a second one.

    Args:
        level: Level name such as "debug" or a logging constant

    Raises:
        ValueError: If the level name is unknown
    """
    numeric = parse_level(level)
    logger = logging.getLogger("reelarr")
    for handler in list(logger.handlers):
        if getattr(handler, "_reelarr_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._reelarr_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(numeric)
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(max(numeric, logging.WARNING))
