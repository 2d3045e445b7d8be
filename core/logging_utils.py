from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Optional, TextIO

__all__ = [
    "LEVEL_NAMES",
    "ROOT_LOGGER_NAME",
    "STEP",
    "SUCCESS",
    "ConsoleFormatter",
    "configure_logging",
    "log_step",
    "log_success",
]

ROOT_LOGGER_NAME = "dotsnapshot"

STEP = 22
SUCCESS = 25
logging.addLevelName(STEP, "STEP")
logging.addLevelName(SUCCESS, "SUCCESS")

LEVEL_NAMES = ("DEBUG", "INFO", "STEP", "SUCCESS", "WARNING", "ERROR")

_LINE_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_COLORS = {
    "DEBUG": "\033[0;37m",
    "INFO": "\033[0;34m",
    "STEP": "\033[0;35m",
    "SUCCESS": "\033[0;32m",
    "WARNING": "\033[1;33m",
    "ERROR": "\033[0;31m",
    "CRITICAL": "\033[0;31m",
}
_RESET = "\033[0m"


class ConsoleFormatter(logging.Formatter):
    """Colour the ``[timestamp] [LEVEL]`` prefix when writing to a terminal."""

    def __init__(self, *, color: bool) -> None:
        super().__init__(_LINE_FORMAT, datefmt=_DATE_FORMAT)
        self._color = color

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        if not self._color:
            return line
        code = _COLORS.get(record.levelname)
        if not code:
            return line
        prefix_end = line.find("]", line.find("[", 1)) + 1
        return f"{code}{line[:prefix_end]}{_RESET}{line[prefix_end:]}"


def _stream_supports_color(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(isatty and isatty())
    except ValueError:
        return False


def configure_logging(
    log_dir: Optional[Path] = None,
    log_name: Optional[str] = None,
    *,
    level: str = "INFO",
    color: bool = True,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Attach console and per-run file handlers to the ``dotsnapshot`` logger.

    Calling this again replaces the console handler and adds the file handler
    only when a handler for the same log file is not attached yet.
    """

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level.upper())
    console_stream = stream or sys.stdout
    for handler in list(logger.handlers):
        if getattr(handler, "_dotsnapshot_console", False):
            logger.removeHandler(handler)
    console = logging.StreamHandler(console_stream)
    console.setFormatter(ConsoleFormatter(color=color and _stream_supports_color(console_stream)))
    console._dotsnapshot_console = True  # type: ignore[attr-defined]
    logger.addHandler(console)

    if log_dir is not None and log_name:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / log_name
        for handler in logger.handlers:
            if isinstance(handler, logging.FileHandler) and getattr(handler, "baseFilename", None) == str(log_path):
                break
        else:
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setFormatter(logging.Formatter(_LINE_FORMAT, datefmt=_DATE_FORMAT))
            logger.addHandler(file_handler)
    logger.propagate = False
    return logger


def log_step(logger: logging.Logger, message: str, *args: Any) -> None:
    logger.log(STEP, message, *args)


def log_success(logger: logging.Logger, message: str, *args: Any) -> None:
    logger.log(SUCCESS, message, *args)
