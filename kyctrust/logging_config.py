"""
Centralized logging configuration.

Noisy subsystems are quieted by giving their loggers a higher severity
through ``LOG_LEVELS`` (for example ``"httpx=WARNING,hpack=ERROR"``) rather
than by filtering on message text.
"""

import logging
import sys

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_HANDLER_NAME = "kyctrust"


def parse_log_levels(spec: str | None) -> dict[str, int]:
    """Parse ``"name=LEVEL,other=LEVEL"`` into a logger-to-level mapping.

    Entries with an unknown level name or no logger name are skipped.
    """
    levels: dict[str, int] = {}
    for entry in (spec or "").split(","):
        name, sep, level_name = entry.partition("=")
        name = name.strip()
        if not sep or not name:
            continue
        level = logging.getLevelName(level_name.strip().upper())
        if isinstance(level, int):
            levels[name] = level
    return levels


def configure_logging(app) -> None:
    """Configure the root logger and per-logger severities for ``app``."""
    level_name = str(app.config.get("LOG_LEVEL") or "INFO").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    if not any(getattr(h, "name", None) == _HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
        root.addHandler(handler)

    app.logger.setLevel(level)
    for name, logger_level in parse_log_levels(app.config.get("LOG_LEVELS")).items():
        logging.getLogger(name).setLevel(logger_level)
