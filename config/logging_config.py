"""
Central logging configuration for the backend.

- JSON logs when LOG_JSON=1 (or RAILWAY_ENVIRONMENT is set), plain text otherwise.
- LOG_LEVEL from env (default INFO).
- Never log broker credentials or tokens. Messages use key=value pairs
  (`provider_failed provider=iol error=...`) so they stay greppable.
"""
import json
import logging
import sys
from typing import Any, Optional

from config.settings import Settings, get_settings

NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "yahooquery", "urllib3")


def _json_serial(obj: Any):
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    return str(obj)


class JsonFormatter(logging.Formatter):
    """Single-line JSON records for log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S") + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0]:
            payload["exception"] = self.formatException(record.exc_info)
        # logger.info(..., extra={"extra": {"request_id": ...}})
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            for k, v in extra.items():
                if k not in payload and v is not None:
                    payload[k] = v
        return json.dumps(payload, default=_json_serial)


def configure_logging(settings: Optional[Settings] = None) -> None:
    s = settings or get_settings()
    level = getattr(logging, s.log_level, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    # Avoid duplicate handlers when reloading
    for h in root.handlers[:]:
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if s.log_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
