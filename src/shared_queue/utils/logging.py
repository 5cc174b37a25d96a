"""Console logging formatter for the queue service."""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Any


class ColoredFormatter(logging.Formatter):
    """Colours the level name with ANSI codes and dims the logger name.

    Colour is off when ``NO_COLOR`` is set or the target stream is not a TTY,
    so log files and piped output stay plain. ``stream`` is the stream the
    handler writes to (defaults to stderr, where ``StreamHandler`` writes).
    """

    LEVEL_COLORS: dict[int, str] = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    NAME_COLOR = "\033[2m"
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: Any = "%",
        *,
        stream: IO[str] | None = None,
    ) -> None:
        super().__init__(fmt, datefmt, style)
        self.stream = stream

    def use_color(self) -> bool:
        if os.environ.get("NO_COLOR") is not None:
            return False
        stream = self.stream or sys.stderr
        isatty = getattr(stream, "isatty", None)
        return bool(isatty and isatty())

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_color():
            return super().format(record)

        # Colour a copy; other handlers share the original record.
        colored = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno, "")
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        colored.name = f"{self.NAME_COLOR}{record.name}{self.RESET}"
        return super().format(colored)
