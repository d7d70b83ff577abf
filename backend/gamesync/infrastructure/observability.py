"""Structured Logging — one JSON object per line, carrying sync context fields.

Invariants:
    - Every line has timestamp, level, logger and message
    - job_id, account_id, provider_id, external_game_id, error_code, attempt and
      path are lifted from `extra=` when present; UUIDs are rendered as strings
    - setup_logging is idempotent: calling it twice does not duplicate output

Design Decisions:
    - The timestamp is the record's creation time, not format time, so lines
      emitted by background enrichment keep their real ordering
    - httpx logs every request at INFO; it is raised to WARNING so provider
      polling does not drown the sync lifecycle lines
"""

import json
import logging
from datetime import datetime, timezone

_CONTEXT_FIELDS = (
    "job_id", "account_id", "provider_id", "external_game_id",
    "error_code", "attempt", "path",
)
_QUIET_LOGGERS = ("httpx", "httpcore")
_HANDLER_NAME = "gamesync"


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is None:
                continue
            entry[key] = value if isinstance(value, (int, float, bool)) else str(value)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    root = logging.getLogger()
    for handler in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        JSONFormatter() if fmt == "json"
        else logging.Formatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s"),
    )
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
