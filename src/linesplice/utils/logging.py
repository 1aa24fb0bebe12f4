"""Logging configuration for the ``linesplice`` command line."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["LOG_FILE_NAME", "resolve_level", "resolve_log_dir", "setup_logging"]

LOG_FILE_NAME = "linesplice.log"
_DEFAULT_LOG_DIR = Path.home() / ".linesplice" / "logs"
_QUIET_LOGGERS: tuple[str, ...] = ("asyncio", "httpx", "httpcore")
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_LOGGER = logging.getLogger(__name__)
_active_log_path: Path | None = None


def resolve_level(debug: bool = False) -> int:
    """``DEBUG`` when ``debug`` is set or ``LINESPLICE_DEBUG`` is truthy, else ``INFO``."""

    flag = os.environ.get("LINESPLICE_DEBUG", "").strip().lower()
    return logging.DEBUG if debug or flag in _TRUE_VALUES else logging.INFO


def resolve_log_dir(log_dir: Path | str | None = None) -> Path:
    """Pick the log directory: explicit setting, ``LINESPLICE_LOG_DIR``, then the default."""

    return Path(log_dir or os.environ.get("LINESPLICE_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()


def setup_logging(
    debug: bool = False,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    force: bool = False,
) -> Path:
    """Route root logging to a rotating ``linesplice.log`` and, optionally, stderr.

    Repeated calls are no-ops returning the active log path unless ``force``
    is set. Returns the path of the log file.
    """

    global _active_log_path
    if _active_log_path is not None and not force:
        return _active_log_path

    level = resolve_level(debug)
    directory = resolve_log_dir(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / LOG_FILE_NAME

    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(log_path, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
    ]
    if console:
        handlers.append(logging.StreamHandler())
    formatter = logging.Formatter(fmt=_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    quiet_level = max(level, logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    _active_log_path = log_path
    _LOGGER.debug("Logging to %s at %s", log_path, logging.getLevelName(level))
    return log_path
