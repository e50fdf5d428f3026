"""JSON logger setup."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}
_LEVEL_NAMES = {value: key for key, value in _LEVELS.items()} | {logging.CRITICAL: "fatal"}
_RESERVED = set(logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__) | {
    "message",
    "asctime",
    "taskName",
}


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object with its extra fields."""

    def __init__(self, include_caller: bool = True) -> None:
        super().__init__()
        self.include_caller = include_caller

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).astimezone()
        payload = {
            "level": _LEVEL_NAMES.get(record.levelno, record.levelname.lower()),
            "time": stamp.strftime(f"%Y-%m-%dT%H:%M:%S.{stamp.microsecond // 1000:03d}%z"),
        }
        if self.include_caller:
            payload["caller"] = f"{os.path.basename(record.pathname)}:{record.lineno}"
        payload["msg"] = record.getMessage()
        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RESERVED and not key.startswith("_")
        )
        if record.exc_info and record.exc_info[1] is not None:
            payload["error"] = str(record.exc_info[1])
        return json.dumps(payload, default=str)


def new_logger(level: str, debug: bool) -> logging.Logger:
    """Return the service logger at ``level`` (info when unknown); debug forces debug."""
    resolved = logging.DEBUG if debug else _LEVELS.get(level.lower(), logging.INFO)
    logger = logging.getLogger("tektonrelay")
    for old in list(logger.handlers):
        logger.removeHandler(old)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter(include_caller=True))
    logger.addHandler(handler)
    logger.setLevel(resolved)
    logger.propagate = False
    return logger