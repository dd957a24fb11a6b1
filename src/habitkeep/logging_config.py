"""Logging setup: readable console output, rotating JSON file, and a per-session buffer."""

from __future__ import annotations

import atexit
import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path

from .config import BaseConfig

LOGGER_NAME = "habitkeep"
LOG_FILENAME = "habitkeep.log"

_SESSION_LINES: list[str] = []
_SESSION_STARTED = datetime.now()
_session_path: Path | None = None
_flush_registered = False


class SessionBufferHandler(logging.Handler):
    """Keep every formatted line of the running session in memory.

    The buffer is written to ``logs/session_<timestamp>.log`` when the interpreter exits,
    so a crash report can include the whole session rather than the rotated tail.
    """

    def __init__(self, formatter: logging.Formatter):
        super().__init__()
        self.setFormatter(formatter)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            _SESSION_LINES.append(self.format(record))
        except Exception:  # pragma: no cover
            self.handleError(record)


class JSONFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    _RESERVED = frozenset(
        vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
    ) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value) if exc_value else None,
                "traceback": self.formatException(record.exc_info),
            }

        # Values passed through ``extra=`` (habit_key, storage_key, ...)
        extra = {k: v for k, v in record.__dict__.items() if k not in self._RESERVED}
        if extra:
            payload["extra"] = extra

        return json.dumps(payload, default=str)


def _console_formatter(dev_mode: bool) -> logging.Formatter:
    if dev_mode:
        return logging.Formatter(
            fmt="[%(asctime)s] %(levelname)-8s [%(name)s.%(funcName)s:%(lineno)d] %(message)s",
            datefmt="%H:%M:%S",
        )
    return logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _flush_session() -> None:  # pragma: no cover - runs at interpreter exit
    if not _SESSION_LINES or _session_path is None:
        return
    try:
        _session_path.parent.mkdir(parents=True, exist_ok=True)
        with _session_path.open("w", encoding="utf-8") as fh:
            fh.write("# HabitKeep session log\n")
            fh.write(f"# Started: {_SESSION_STARTED.isoformat()}\n")
            fh.write(f"# Entries: {len(_SESSION_LINES)}\n\n")
            fh.writelines(line + "\n" for line in _SESSION_LINES)
    except OSError as exc:
        sys.stderr.write(f"Failed to flush session log: {exc}\n")


def setup_logging(config: BaseConfig) -> logging.Logger:
    """Configure the ``habitkeep`` logger tree.

    Args:
        config: Application configuration providing ``DATA_DIR`` and ``DEV_MODE``

    Returns:
        The configured package logger
    """
    global _session_path, _flush_registered  # noqa: PLW0603

    logs_dir = Path(config.DATA_DIR) / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if config.DEV_MODE else logging.INFO)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_formatter = _console_formatter(config.DEV_MODE)

    console = logging.StreamHandler()
    console.setLevel(logging.INFO if config.DEV_MODE else logging.WARNING)
    console.setFormatter(console_formatter)
    logger.addHandler(console)

    log_file = logs_dir / LOG_FILENAME
    file_handler = logging.handlers.RotatingFileHandler(
        filename=log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(JSONFormatter())
    logger.addHandler(file_handler)

    session = SessionBufferHandler(console_formatter)
    session.setLevel(logging.DEBUG)
    logger.addHandler(session)

    _session_path = logs_dir / _SESSION_STARTED.strftime("session_%Y%m%d_%H%M%S.log")
    if not _flush_registered:
        atexit.register(_flush_session)
        _flush_registered = True

    logger.info(
        "Logging initialized",
        extra={"dev_mode": config.DEV_MODE, "log_file": str(log_file)},
    )
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under ``habitkeep``."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def session_log_path() -> Path | None:
    """Return where the in-memory session log will be written on exit."""
    return _session_path
