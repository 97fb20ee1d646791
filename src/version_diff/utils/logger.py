"""Leveled, category-aware logging for Version Diff.

Messages conventionally start with a bracketed category, e.g.
``log.debug("[SESSION] Dropping stale left content")``. The category is pulled
out into its own column and can be used to narrow output while debugging:

    VDIFF_DEBUG=1                  debug level, mirrored to a temp file
    LOG_LEVEL=WARN                 minimum level
    VDIFF_LOG_FILE=/tmp/vd.log     explicit mirror file
    VDIFF_LOG_CATEGORIES=SESSION,GIT
"""

from __future__ import annotations

import os
import re
import sys
import tempfile
import traceback
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import Any, TextIO


class LogLevel(IntEnum):
    DEBUG = 10
    INFO = 20
    WARN = 30
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


DEBUG_LOG_NAME = "version_diff_debug.log"

_CATEGORY_RE = re.compile(r"^\[([A-Z_]+)\]\s*")

_COLORS = {
    LogLevel.DEBUG: "\033[90m",
    LogLevel.INFO: "\033[0m",
    LogLevel.WARN: "\033[93m",
    LogLevel.ERROR: "\033[91m",
    LogLevel.CRITICAL: "\033[95m",
}
_RESET = "\033[0m"


def split_category(message: str) -> tuple[str, str]:
    """Return (category, rest) for a ``[CATEGORY] rest`` message."""
    match = _CATEGORY_RE.match(message)
    if not match:
        return "", message
    return match.group(1), message[match.end():]


class Logger:
    """Writes to stderr when no Textual app owns the terminal, and to an optional file."""

    def __init__(self):
        self._level = LogLevel.INFO
        self._categories: frozenset[str] = frozenset()
        self._file: TextIO | None = None
        self.file_path: Path | None = None
        self._configure_from_env()

    def _configure_from_env(self) -> None:
        if os.environ.get("VDIFF_DEBUG") == "1":
            self._level = LogLevel.DEBUG
            self.set_file_output(Path(tempfile.gettempdir()) / DEBUG_LOG_NAME)

        explicit_file = os.environ.get("VDIFF_LOG_FILE")
        if explicit_file:
            self.set_file_output(Path(explicit_file))

        level_name = os.environ.get("LOG_LEVEL", "").upper()
        if level_name in LogLevel.__members__:
            self._level = LogLevel[level_name]

        categories = os.environ.get("VDIFF_LOG_CATEGORIES", "")
        self.set_categories(c for c in categories.split(",") if c.strip())

    @property
    def level(self) -> LogLevel:
        return self._level

    def set_level(self, level: LogLevel) -> None:
        self._level = LogLevel(level)

    def set_categories(self, categories) -> None:
        """Only emit messages in ``categories`` (empty means everything)."""
        self._categories = frozenset(c.strip().upper() for c in categories)

    def set_file_output(self, path: Path, append: bool = True) -> None:
        """Mirror every emitted line to ``path``."""
        self.close()
        try:
            self._file = open(path, "a" if append else "w", encoding="utf-8")
            self.file_path = Path(path)
        except OSError:
            self._file = None
            self.file_path = None

    def close(self) -> None:
        if self._file is not None:
            try:
                self._file.close()
            except OSError:
                pass
        self._file = None
        self.file_path = None

    def _terminal_free(self) -> bool:
        """False while a Textual app is running; its screen owns stdout and stderr."""
        try:
            from textual._context import active_app
        except ImportError:
            return True
        try:
            return active_app.get(None) is None
        except LookupError:
            return True

    def enabled_for(self, level: LogLevel, category: str = "") -> bool:
        if level < self._level:
            return False
        # Errors are never filtered out by category
        if self._categories and level < LogLevel.ERROR:
            return category in self._categories
        return True

    def format(self, level: LogLevel, category: str, message: str, extra: dict | None = None, exc_info=None) -> str:
        stamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        line = f"{stamp} {LogLevel(level).name:<8} {category or '-':<9} {message}"
        if extra:
            line += " | " + ", ".join(f"{k}={v!r}" for k, v in extra.items())
        if exc_info and exc_info[0] is not None:
            line += "\n" + "".join(traceback.format_exception(*exc_info)).rstrip()
        return line

    def _write(self, level: LogLevel, *args: Any, sep: str = " ", extra: dict | None = None, exc_info=None) -> None:
        category, message = split_category(sep.join(str(a) for a in args))
        if not self.enabled_for(level, category):
            return
        line = self.format(level, category, message, extra, exc_info)

        if self._file is not None:
            try:
                self._file.write(line + "\n")
                self._file.flush()
            except OSError:
                pass

        if not self._terminal_free():
            return
        try:
            if sys.stderr.isatty():
                line = f"{_COLORS.get(level, _RESET)}{line}{_RESET}"
            sys.stderr.write(line + "\n")
            sys.stderr.flush()
        except (OSError, ValueError):
            pass

    def debug(self, *args: Any, **kwargs) -> None:
        self._write(LogLevel.DEBUG, *args, **kwargs)

    def info(self, *args: Any, **kwargs) -> None:
        self._write(LogLevel.INFO, *args, **kwargs)

    def warning(self, *args: Any, **kwargs) -> None:
        self._write(LogLevel.WARN, *args, **kwargs)

    warn = warning

    def error(self, *args: Any, **kwargs) -> None:
        self._write(LogLevel.ERROR, *args, **kwargs)

    def critical(self, *args: Any, **kwargs) -> None:
        self._write(LogLevel.CRITICAL, *args, **kwargs)

    def __call__(self, *args: Any, sep: str = " ") -> None:
        """``log(...)`` is shorthand for ``log.info(...)``."""
        self.info(*args, sep=sep)


log = Logger()
