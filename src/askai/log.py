"""Process logger: JSON lines in the vault, rotated by size.

The logger is built once by the CLI entry point and handed to the components
that need it. Structured fields travel as ``extra={"data": {...}}``::

    logger.info("stored qa pair", extra={"data": {"point_id": pid}})
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGGER_NAME = "askai"
LOG_FILE_NAME = "askai.log"

_MAX_BYTES = 5 * 1024 * 1024
_BACKUP_COUNT = 3


class JsonLineFormatter(logging.Formatter):
    """Format each record as one JSON object: timestamp, level, logger, message, data."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        data = getattr(record, "data", None)
        payload = dict(data) if isinstance(data, dict) else ({"value": data} if data is not None else {})
        if record.exc_info and record.exc_info[1] is not None:
            payload.setdefault("error", str(record.exc_info[1]))
            payload.setdefault("error_type", type(record.exc_info[1]).__name__)
        if payload:
            entry["data"] = payload

        return json.dumps(entry, default=str, ensure_ascii=False)


def build_logger(log_path: Path, level: int = logging.INFO) -> logging.Logger:
    """Create (or re-create) the ``askai`` logger writing to *log_path*.

    Calling this again replaces the previous handlers, so a second call never
    duplicates output.

    Args:
        log_path: Target log file; parent directories are created if missing.
        level: Minimum level to record.

    Returns:
        The configured ``logging.Logger``.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        close_logger(logger)

    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_path,
        maxBytes=_MAX_BYTES,
        backupCount=_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(JsonLineFormatter())

    logger.setLevel(level)
    logger.addHandler(handler)
    # Terminal output belongs to rich; keep records off the root logger.
    logger.propagate = False
    return logger


def close_logger(logger: logging.Logger) -> None:
    """Detach and close every handler on *logger*."""
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
