"""
Log formatters for console and log-aggregator output.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

# LogRecord attributes that are not user-supplied ``extra`` fields
_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
        "tracking_id",
    }
)


class SimpleCloudWatchFormatter(logging.Formatter):
    """
    Plain text, one line per record.
    Example: INFO:     2026-01-11 14:03:25 - automation_engine.core.engine - [engine.py:123] [Trace:exec-1] - 🚀 Starting run
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        location = f"{record.filename}:{record.lineno}"

        trace = ""
        tracking_id = getattr(record, "tracking_id", None)
        if tracking_id and tracking_id != "unknown":
            trace = f" [Trace:{tracking_id}]"

        formatted = (
            f"{record.levelname}:     {timestamp} - {record.name} - [{location}]{trace} - "
            f"{record.getMessage()}"
        )
        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"
        return formatted


class StructuredCloudWatchFormatter(logging.Formatter):
    """
    JSON formatter; ``extra={...}`` fields end up under ``"extra"``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "file": f"{record.filename}:{record.lineno}",
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "tracking_id"):
            log_obj["tracking_id"] = record.tracking_id

        if record.exc_info:
            log_obj["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else "Unknown",
                "message": str(record.exc_info[1]) if record.exc_info[1] else "",
                "traceback": self.formatException(record.exc_info),
            }

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if extra_fields:
            log_obj["extra"] = extra_fields

        return json.dumps(log_obj, ensure_ascii=False, default=str)
