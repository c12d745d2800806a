"""Application logging helpers."""

from __future__ import annotations

import logging as py_logging
import sys
from pathlib import Path
from typing import TextIO

from zeroide.security import sanitize_log_text

LOGGER_NAME = "zeroide"
LOG_LEVELS = {
    "DEBUG": py_logging.DEBUG,
    "INFO": py_logging.INFO,
    "WARN": py_logging.WARNING,
    "WARNING": py_logging.WARNING,
    "ERROR": py_logging.ERROR,
}
DEFAULT_LOG_PATH = Path("~/.config/zeroide/logs/zeroide.log")
_FALLBACK_LOG_PATH = Path(".zeroide/logs/zeroide.log")
_FORMAT = "%(asctime)s %(levelname)s %(name)s:%(lineno)d %(message)s"
_MAX_RECORD_LENGTH = 4000


class MaskingFormatter(py_logging.Formatter):
    """Formatter that masks tokens and URL credentials in the rendered line."""

    def format(self, record: py_logging.LogRecord) -> str:
        return sanitize_log_text(super().format(record), limit=_MAX_RECORD_LENGTH)


def _absolute(path: Path, fallback: Path) -> Path:
    try:
        resolved = path.expanduser()
    except RuntimeError:
        return (Path.cwd() / fallback).resolve()
    if not resolved.is_absolute():
        resolved = resolved.resolve()
    return resolved


def default_log_path() -> Path:
    return _absolute(DEFAULT_LOG_PATH, _FALLBACK_LOG_PATH)


def resolve_level(level: str) -> int:
    normalized = level.upper()
    if normalized == "WARNING":
        normalized = "WARN"
    return LOG_LEVELS.get(normalized, py_logging.INFO)


def configure_logging(
    level: str = "INFO",
    stream: TextIO | None = None,
    *,
    log_file: str | Path | None = None,
) -> py_logging.Logger:
    resolved = resolve_level(level)

    logger = py_logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolved)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    formatter = MaskingFormatter(_FORMAT)

    console = py_logging.StreamHandler(stream or sys.stderr)
    console.setLevel(resolved)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        log_path = _absolute(Path(log_file), Path(log_file))
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = py_logging.FileHandler(log_path, encoding="utf-8")
        except OSError:
            logger.warning("Log file unavailable path=%s", log_path)
        else:
            # File output keeps debug detail regardless of the console level.
            logger.setLevel(py_logging.DEBUG)
            file_handler.setLevel(py_logging.DEBUG)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    logger.propagate = False
    return logger
