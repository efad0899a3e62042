from __future__ import annotations
import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional
from datetime import datetime, timezone

from hookrunner.domain import Event
from hookrunner.ports import EventBus, PathProvider

LOG_FILE = "hookrunner.log"


class JsonFormatter(logging.Formatter):
    """One JSON object per line; structured fields come from ``extra={"extra": {...}}``."""

    def format(self, record: logging.LogRecord) -> str:
        base = {
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            base.update(extra)
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False, default=str)


def setup_logging(paths: PathProvider, level: str = "INFO") -> logging.Logger:
    """
    Configure the ``hookrunner`` logger:
      - console (stderr)
      - {logs_dir}/hookrunner.log, rotated at 5 MB with 3 backups
    """
    logs_dir = Path(paths.logs_dir())
    logs_dir.mkdir(parents=True, exist_ok=True)
    logfile = logs_dir / LOG_FILE

    logger = logging.getLogger("hookrunner")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()

    stream_h = logging.StreamHandler()
    stream_h.setFormatter(JsonFormatter())
    stream_h.setLevel(logger.level)

    file_h = RotatingFileHandler(logfile, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
    file_h.setFormatter(JsonFormatter())
    file_h.setLevel(logger.level)

    logger.addHandler(stream_h)
    logger.addHandler(file_h)
    logger.propagate = False
    logger.info("logging.initialized", extra={"extra": {"logfile": str(logfile)}})
    return logger


def attach_event_logger(bus: EventBus, logger: Optional[logging.Logger] = None) -> None:
    """Log every bus event at DEBUG."""
    base_logger = logger or logging.getLogger("hookrunner.events")

    def _handler(ev: Event) -> None:
        iso_time = datetime.fromtimestamp(ev.ts, tz=timezone.utc).isoformat() if ev.ts else None
        base_logger.debug(
            "event",
            extra={
                "extra": {
                    "time": iso_time,
                    "type": ev.type,
                    "source": ev.source,
                    "payload": dict(ev.payload),
                }
            },
        )

    bus.subscribe("", _handler)
