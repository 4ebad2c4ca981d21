import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from ranttrack.config import LOG_LEVEL

_LOGGER_NAME = "ranttrack"

class _JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, event, then the event's own fields."""

    def format(self, record: logging.LogRecord) -> str:
        line = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "event": getattr(record, "event", None) or "log",
        }
        fields = getattr(record, "fields", None)
        if isinstance(fields, dict):
            line.update({k: v for k, v in fields.items() if v is not None})
        if record.exc_info and record.exc_info[0] is not None:
            # the type only; exception text can quote the journal entry
            line["exc_type"] = record.exc_info[0].__name__
        return json.dumps(line, ensure_ascii=False, default=str)

def get_logger() -> logging.Logger:
    logger = logging.getLogger(_LOGGER_NAME)
    if not logger.handlers:
        logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
        h = logging.StreamHandler()
        h.setFormatter(_JsonFormatter())
        logger.addHandler(h)
        logger.propagate = False
    return logger

def log_event(event: str, level: int = logging.INFO, **fields: Dict[str, Any]) -> None:
    """
    Emit `event` with structured fields. Fields set to None are left out.
    Journal text never goes in here: lengths, counts, versions and canonical ids only.
    """
    get_logger().log(level, event, extra={"event": event, "fields": fields})
