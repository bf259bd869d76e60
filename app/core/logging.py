"""Centralized logging configuration.

Logs are JSON lines on stdout. Health data flows through this service, so:
- Only metadata is logged (request id, route template, variant, outcome, topic id).
- Message bodies, prompts, LLM replies and credentials are never logged.
- Extra fields are optional; the formatter must never raise due to missing keys.
"""

from __future__ import annotations

import json
import logging
import logging.config
import os
from datetime import UTC, datetime
from typing import Any

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# `extra` keys copied into the payload when present on a record.
_METADATA_FIELDS = (
    "request_id",
    "status_code",
    "duration_ms",
    "variant",
    "outcome",
    "topic_id",
    "transaction_id",
    "sequence_number",
)


class JsonFormatter(logging.Formatter):
    """Emit one JSON object per record, tolerating records without our extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "method": getattr(record, "http_method", None),
            "path": getattr(record, "request_path", None),
        }
        for field in _METADATA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str | None = None, *, stream: str = "ext://sys.stdout") -> None:
    """Configure root logging (JSON lines). The CLI passes stderr to keep stdout for results."""

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": "app.core.logging.JsonFormatter",
                }
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                    "stream": stream,
                }
            },
            "root": {
                "level": (level or LOG_LEVEL).upper(),
                "handlers": ["default"],
            },
            # httpx logs full request URLs at INFO; topic ids are fine but keep noise down.
            "loggers": {
                "httpx": {"level": "WARNING"},
            },
        }
    )
