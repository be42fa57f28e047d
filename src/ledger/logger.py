"""Logging for ledger scenarios.

Two outputs share one stdlib logging tree:
1. Console trace lines, timestamped like "[2026-01-15 12:00:00,000] message"
2. An optional append-only JSONL event log. Only records logged through
   log_event() land there, one JSON object per line with a monotonic
   sequence number, so a run can be replayed from receipts and received
   messages without parsing free text.

Usage:
    from src.ledger.logger import configure_logging, log_event

    configure_logging(get_validated_config().logging)
    log_event(logger, "transfer_submitted", token_id="0.0.5", status="SUCCESS")
"""

from __future__ import annotations

import itertools
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..config_schema import LoggingConfig

EVENT_ATTR = "ledger_event"
DATA_ATTR = "ledger_data"

# Handlers installed by configure_logging, so a second call replaces them
_installed: list[logging.Handler] = []


class JsonLinesFormatter(logging.Formatter):
    """Render event records as single JSON lines."""

    def __init__(self) -> None:
        super().__init__()
        self._sequence = itertools.count(1)

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "sequence": next(self._sequence),
            "event_type": getattr(record, EVENT_ATTR),
            "logger": record.name,
            **getattr(record, DATA_ATTR, {}),
        }
        return json.dumps(event, default=str)


class EventRecordFilter(logging.Filter):
    """Pass only records emitted by log_event()."""

    def filter(self, record: logging.LogRecord) -> bool:
        return hasattr(record, EVENT_ATTR)


def configure_logging(config: LoggingConfig) -> Path | None:
    """Install console and (optionally) JSONL handlers on the root logger.

    Returns the event log path when one is configured. Calling this twice
    replaces the handlers from the first call instead of stacking them.
    """
    root = logging.getLogger()
    for handler in _installed:
        root.removeHandler(handler)
        handler.close()
    _installed.clear()

    root.setLevel(config.level)

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(config.format))
    root.addHandler(console)
    _installed.append(console)

    if config.output_file is None:
        return None

    output_path = Path(config.output_file)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    events = logging.FileHandler(output_path, mode="a", encoding="utf-8")
    events.setFormatter(JsonLinesFormatter())
    events.addFilter(EventRecordFilter())
    root.addHandler(events)
    _installed.append(events)
    return output_path


def log_event(logger: logging.Logger, event_type: str, **data: Any) -> None:
    """Log a structured event at INFO.

    The console sees "event_type key=value ..."; the JSONL log sees the
    fields as a JSON object.
    """
    rendered = " ".join(f"{key}={value}" for key, value in data.items())
    logger.info(
        "%s %s",
        event_type,
        rendered,
        extra={EVENT_ATTR: event_type, DATA_ATTR: data},
    )
