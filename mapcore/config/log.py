"""Process-wide logging setup."""

from __future__ import annotations

import logging

from config.runtime import LOG_FORMAT, LOG_LEVEL


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging for the ingestion/rendering driver.

    Handlers are installed only if the root logger has none yet; the level
    is applied either way.

    Args:
        level: Level name overriding MAPCORE_LOG_LEVEL (e.g. "DEBUG").
    """
    numeric_level = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
    logging.getLogger().setLevel(numeric_level)
