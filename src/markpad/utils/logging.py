"""Logging setup for the markpad command line tools.

markpad installs its own handlers on the root logger and leaves any
handlers a host application configured alone. Console output goes to
stderr because stdout carries document text.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import TextIO

__all__ = ["setup_logging", "get_log_path", "remove_handlers"]

_DEFAULT_LOG_DIR = Path.home() / ".markpad" / "logs"
_LOG_FILE_NAME = "markpad.log"
_HANDLER_ATTR = "_markpad_handler"
_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_CONSOLE_FORMAT = "markpad: %(levelname)s %(name)s: %(message)s"
# httpx logs every request at INFO, including the search query in the URL
_HTTP_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")
LOGGER = logging.getLogger(__name__)
_LOG_PATH: Path | None = None


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = False,
    stream: TextIO | None = None,
    max_bytes: int = 512_000,
    backup_count: int = 2,
    force: bool = False,
) -> Path | None:
    """Attach markpad's file (and optional stderr) handlers to the root logger.

    Calling again is a no-op unless ``force`` is set, in which case the
    previously installed markpad handlers are replaced. When the log
    directory cannot be created the file handler is skipped and ``None``
    is returned; logging then goes to the console only.
    """

    global _LOG_PATH
    root = logging.getLogger()
    if not force and _installed(root):
        return _LOG_PATH
    remove_handlers()

    handlers: list[logging.Handler] = []
    file_error: OSError | None = None
    log_path: Path | None = _resolve_log_dir(log_dir) / _LOG_FILE_NAME
    try:
        handlers.append(_file_handler(log_path, max_bytes, backup_count))
    except OSError as exc:
        file_error = exc
        log_path = None
    if console or log_path is None:
        console_handler = logging.StreamHandler(stream or sys.stderr)
        console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        handlers.append(console_handler)

    for handler in handlers:
        handler.setLevel(level)
        setattr(handler, _HANDLER_ATTR, True)
        root.addHandler(handler)
    root.setLevel(min(root.level or level, level))
    http_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)

    if file_error is not None:
        LOGGER.warning("File logging disabled: %s", file_error)
    _LOG_PATH = log_path
    return log_path


def get_log_path() -> Path | None:
    """Return the log file written by the current configuration, if any."""

    return _LOG_PATH


def remove_handlers() -> None:
    """Detach and close every handler installed by :func:`setup_logging`."""

    global _LOG_PATH
    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, _HANDLER_ATTR, False)]:
        root.removeHandler(handler)
        handler.close()
    _LOG_PATH = None


def _installed(root: logging.Logger) -> bool:
    return any(getattr(handler, _HANDLER_ATTR, False) for handler in root.handlers)


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    return Path(log_dir or os.environ.get("MARKPAD_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()


def _file_handler(log_path: Path, max_bytes: int, backup_count: int) -> logging.Handler:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler
