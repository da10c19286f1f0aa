"""
Logging setup for the collabsync CLI and embedding hosts.

Console output is colored by level when the stream is a terminal. An
optional log file always receives DEBUG records in plain text.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TextIO

_RESET = "\033[0m"

_LEVEL_COLORS = {
    logging.DEBUG: "\033[2m",  # dim
    logging.INFO: "\033[36m",  # cyan
    logging.WARNING: "\033[33m",  # yellow
    logging.ERROR: "\033[91m",  # bright red
    logging.CRITICAL: "\033[1;41m",  # bold on red
}

# Transport libraries log every request and frame
QUIET_LOGGERS = ("httpx", "httpcore", "websockets")

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class LevelColorFormatter(logging.Formatter):
    """Wraps the formatted line in the color of its level."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = _LEVEL_COLORS.get(record.levelno)
        return f"{color}{line}{_RESET}" if color else line


def setup_logging(
    level: int | str = logging.INFO,
    log_file: str | Path | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    Configure the root logger, replacing any earlier configuration.

    Args:
        level: Console level, as a number or a level name
        log_file: Optional log file path; parent directories are created
        stream: Console stream (defaults to stderr so command output stays clean)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    stream = stream or sys.stderr
    console = logging.StreamHandler(stream)
    console.setLevel(level)
    formatter_class = LevelColorFormatter if _is_terminal(stream) else logging.Formatter
    console.setFormatter(formatter_class(LOG_FORMAT, datefmt="%H:%M:%S"))
    handlers: list[logging.Handler] = [console]

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured (console %s, file %s)",
        logging.getLevelName(level),
        log_file or "none",
    )


def _is_terminal(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())
