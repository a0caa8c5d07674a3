"""Logging configuration for MicroClaw.

Human-readable lines always go to stderr. With ``JSON_LOG_ENABLED`` set, the
``microclaw`` logger also appends one JSON object per record to a file. Call
sites attach structured fields through ``extra=``; the ones listed in
``EVENT_FIELDS`` are copied into the JSON record when present.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("microclaw")

_TRUTHY = {"1", "true", "yes", "on"}

# Transport loggers stay at WARNING unless MICROCLAW_VERBOSE_HTTP is set.
if os.getenv("MICROCLAW_VERBOSE_HTTP", "").strip().lower() not in _TRUTHY:
    for _name in ("httpx", "httpcore", "openai._base_client", "anthropic._base_client"):
        logging.getLogger(_name).setLevel(logging.WARNING)

# event: user_message | assistant_message | system_prompt | history_window |
#        reply_split | html_truncated
EVENT_FIELDS = ("event", "session", "bytes", "capacity", "status", "parts")

DEFAULT_JSON_LOG_PATH = "logs/microclaw.jsonl"


class JsonLinesFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in EVENT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def json_log_path(runtime_root: str | Path | None = None) -> Path | None:
    """Where JSON logs go, or None when JSON logging is disabled."""
    if os.getenv("JSON_LOG_ENABLED", "").strip().lower() not in _TRUTHY:
        return None
    path = Path(os.getenv("JSON_LOG_PATH", "").strip() or DEFAULT_JSON_LOG_PATH).expanduser()
    if not path.is_absolute():
        path = Path(runtime_root or Path.cwd()).expanduser() / path
    return path.resolve()


def configure_optional_json_logging(runtime_root: str | Path | None = None) -> Path | None:
    """Attach the JSONL file handler once; returns its path when enabled."""
    path = json_log_path(runtime_root)
    if path is None:
        return None

    if any(
        isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == path
        for handler in log.handlers
    ):
        return path

    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(logging.INFO)
    handler.setFormatter(JsonLinesFormatter())
    log.addHandler(handler)
    log.info(f"Structured JSON logging enabled: {path.as_posix()}")
    return path
