"""Logging configuration. Everything goes to stderr; stdout carries the stdio tool transport."""

import json
import logging
import sys
from typing import Any, ClassVar

from rich.console import Console
from rich.logging import RichHandler


class JsonFormatter(logging.Formatter):
    """One JSON object per record, including any ``extra=`` keys."""

    RESERVED_KEYS: ClassVar[set[str]] = set(vars(logging.makeLogRecord({}))) | {"message", "taskName"}

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key not in self.RESERVED_KEYS and not key.startswith("_"):
                data[key] = value
        return json.dumps(data, default=str)


def _resolve_log_level(level_name: str | None) -> int:
    if level_name:
        numeric = logging.getLevelName(level_name.upper())
        if isinstance(numeric, int):
            return numeric
    return logging.INFO


def configure_logging(level_name: str | None, json_enabled: bool = False) -> None:
    level = _resolve_log_level(level_name)
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(level)

    handler: logging.Handler
    if json_enabled:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JsonFormatter())
    else:
        handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    root.addHandler(handler)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
