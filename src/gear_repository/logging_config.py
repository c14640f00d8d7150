"""JSON log records carrying the gear a message was emitted for."""

import json
import logging
import sys
from typing import IO, Any, MutableMapping, Optional, Tuple

from .protocols import Gear

CONTEXT_FIELDS = ("gear_uuid", "application", "operation", "exit_status", "duration_ms")


class GearLogAdapter(logging.LoggerAdapter):
    """Stamps every record with the gear's uuid and application name.

    Per-call ``extra`` (``operation``, ``duration_ms``...) is merged on top.
    """

    def __init__(self, logger: logging.Logger, gear: Gear):
        super().__init__(
            logger,
            {"gear_uuid": gear.uuid, "application": gear.application_name},
        )

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


class StructuredLogFormatter(logging.Formatter):
    """One JSON object per record; context fields only when set."""

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record, ensure_ascii=False)


def configure_logging(log_level: str = "INFO", stream: Optional[IO[str]] = None) -> None:
    """Route all records to ``stream`` (stderr by default) as JSON lines.

    Calling it again replaces the previous handler. GitPython's own logger
    stays at WARNING so ``head`` does not flood the agent log.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredLogFormatter())
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())
    logging.getLogger("git").setLevel("WARNING")
