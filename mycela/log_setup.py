"""Application logging: console output plus optional daily log files."""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

__all__ = [
    "TRACE",
    "DEFAULT_FILTER",
    "FILTER_ENV",
    "LocalTimeFormatter",
    "init_logging",
]

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

DEFAULT_FILTER = "info,mycela=trace"
FILTER_ENV = "MYCELA_LOG"

_LEVELS = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "off": logging.CRITICAL + 10,
}

_FORMAT = "%(asctime)s %(levelname)5s %(name)s: %(message)s"

_installed: list[logging.Handler] = []
_configured_loggers: list[str] = []


class LocalTimeFormatter(logging.Formatter):
    """Formatter stamping records with local time and UTC offset."""

    def formatTime(self, record, datefmt=None):
        stamp = datetime.fromtimestamp(record.created).astimezone()
        if datefmt:
            return stamp.strftime(datefmt)
        return stamp.isoformat(timespec="microseconds")


def _today() -> str:
    return datetime.now().strftime("%Y-%m-%d")


class _DailyFileHandler(logging.FileHandler):
    """Writes to ``<prefix>.<YYYY-MM-DD>``, switching file when the date changes."""

    def __init__(self, directory: Path, prefix: str):
        self._directory = directory
        self._prefix = prefix
        self._date = _today()
        super().__init__(self._path_for(self._date), encoding="utf-8", delay=True)

    def _path_for(self, date: str) -> str:
        return str((self._directory / f"{self._prefix}.{date}").absolute())

    def emit(self, record):
        today = _today()
        if today != self._date:
            self._date = today
            if self.stream is not None:
                self.stream.close()
                self.stream = None
            self.baseFilename = self._path_for(today)
        super().emit(record)


def _parse_filter(spec: str) -> tuple[int, dict[str, int]]:
    default = logging.ERROR
    targets: dict[str, int] = {}
    for directive in (part.strip() for part in spec.split(",")):
        if not directive:
            continue
        target, sep, level_name = directive.partition("=")
        if not sep:
            target, level_name = "", directive
        try:
            level = _LEVELS[level_name.strip().lower()]
        except KeyError:
            raise ValueError(f"unknown log level in directive {directive!r}") from None
        target = target.strip().replace("::", ".")
        if target:
            targets[target] = level
        else:
            default = level
    return default, targets


def _apply_filter(spec: str | None) -> None:
    try:
        if spec is None:
            raise ValueError("no filter given")
        default, targets = _parse_filter(spec)
    except ValueError:
        default, targets = _parse_filter(DEFAULT_FILTER)
    for name in _configured_loggers:
        logging.getLogger(name).setLevel(logging.NOTSET)
    _configured_loggers.clear()
    logging.getLogger().setLevel(default)
    for name, level in targets.items():
        logging.getLogger(name).setLevel(level)
        _configured_loggers.append(name)


def _app_name() -> str:
    program = sys.argv[0] if sys.argv else ""
    return Path(program).stem or "app"


def init_logging(log_dir=None) -> list[logging.Handler]:
    """Configure logging and return the handlers installed on the root logger.

    Console output carries DEBUG and above. With ``log_dir`` two daily files
    are written there: ``<app>.log.<date>`` (INFO and above) and
    ``<app>.debug.<date>`` (TRACE and DEBUG only). Levels come from the
    ``MYCELA_LOG`` variable, e.g. ``info,mycela=trace``; calling again
    replaces the handlers installed before.
    """
    root = logging.getLogger()
    for handler in _installed:
        root.removeHandler(handler)
        handler.close()
    _installed.clear()

    _apply_filter(os.environ.get(FILTER_ENV))
    formatter = LocalTimeFormatter(_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG)
    console.setFormatter(formatter)
    handlers: list[logging.Handler] = [console]

    if log_dir is not None:
        directory = Path(log_dir)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError:
            pass
        name = _app_name()

        info_handler = _DailyFileHandler(directory, f"{name}.log")
        info_handler.setLevel(logging.INFO)
        info_handler.setFormatter(formatter)

        debug_handler = _DailyFileHandler(directory, f"{name}.debug")
        debug_handler.setLevel(TRACE)
        debug_handler.addFilter(lambda record: record.levelno <= logging.DEBUG)
        debug_handler.setFormatter(formatter)

        handlers.extend([info_handler, debug_handler])

    for handler in handlers:
        root.addHandler(handler)
    _installed.extend(handlers)
    return handlers