"""Structured Logging — JSON records for the ownership service, with code scrubbing.

Invariants:
    - Every record carries timestamp, level, logger and message
    - Ownership context (artwork_id, operation, error_code, attempt, path) is
      copied from `extra` when present
    - No transfer code reaches a handler: services log redact_code() prefixes and
      TransferCodeScrubber masks anything code-shaped that slips into a message
    - setup_logging is idempotent: calling it again replaces its own handler

Design Decisions:
    - JSONFormatter over third-party libs: zero dependencies, full control
    - Scrubbing as a handler filter: third-party loggers (uvicorn access log,
      SQLAlchemy echo) go through it too
"""

import json
import logging
import re
from datetime import datetime, timezone

from artledger.core.transfer_codes import redact_code

CONTEXT_FIELDS = ("artwork_id", "operation", "error_code", "attempt", "path")

# 16+ bytes of hex: the shortest code generate_code() will produce
_CODE_SHAPED = re.compile(r"\b[0-9a-f]{16,}\b")
_HANDLER_NAME = "artledger"


class TransferCodeScrubber(logging.Filter):
    """Mask code-shaped tokens in the rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        scrubbed = _CODE_SHAPED.sub(lambda m: redact_code(m.group(0)), message)
        if scrubbed != message:
            record.msg, record.args = scrubbed, None
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update({
            key: getattr(record, key) for key in CONTEXT_FIELDS
            if getattr(record, key, None) is not None
        })
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Install the service handler on the root logger."""
    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.addFilter(TransferCodeScrubber())
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s [%(operation)s] %(message)s",
            defaults={"operation": "-"},
        ))

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
