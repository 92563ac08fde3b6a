from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from rulebook.core.utils.io import ensure_directory

_HANDLERS: list = []

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _level_from_name(name: str) -> int:
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.WARNING


def configure_logging(level: str = "WARNING", *, log_path: Optional[Path] = None, json_mode: bool = False) -> None:
    """Route the ``rulebook`` logger to stderr and/or a file.

    JSON mode keeps stderr free of log lines; a log file still receives them.
    Calling again replaces the handlers installed by the previous call.
    """
    logger = logging.getLogger("rulebook")
    for handler in _HANDLERS:
        logger.removeHandler(handler)
        handler.close()
    _HANDLERS.clear()

    logger.setLevel(_level_from_name(level))
    formatter = logging.Formatter(LOG_FORMAT)
    if not json_mode:
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(formatter)
        _HANDLERS.append(stream)
    if log_path is not None:
        ensure_directory(Path(log_path).parent)
        file_handler = logging.FileHandler(str(log_path), encoding="utf-8")
        file_handler.setFormatter(formatter)
        _HANDLERS.append(file_handler)
    if not _HANDLERS:
        _HANDLERS.append(logging.NullHandler())
    for handler in _HANDLERS:
        logger.addHandler(handler)
    logger.propagate = False


__all__ = ["configure_logging", "LOG_FORMAT"]
