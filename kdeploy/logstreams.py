"""Emit log records as JSON lines.

Callers pass structured context as a single dict argument, eg

    logit.info("deployment complete", {"resources": 5})

and the formatter merges the dict into the JSON output.

"""

import logging
import sys
from typing import Any

import structlog


class ContextFormatter(structlog.stdlib.ProcessorFormatter):
    """Render stdlib records with structlog and keep their context dict."""

    def format(self, record: logging.LogRecord) -> str:
        # Stash the dict so that structlog does not %-format the message with it.
        if isinstance(record.args, dict):
            record = logging.makeLogRecord(record.__dict__)
            record.context, record.args = record.args, ()
        return super().format(record)


def lift_context(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Merge the context dict of the log call into the event."""
    record = event_dict.get("_record")
    context = getattr(record, "context", None) or {}
    for key, value in context.items():
        event_dict.setdefault(key, value)
    return event_dict


def make_formatter() -> ContextFormatter:
    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
    return ContextFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            timestamper,
            lift_context,
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )


def setup(level: str) -> None:
    """Log everything at `level` or above as JSON to stdout."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(make_formatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())

    # HttpX logs every request at INFO level.
    logging.getLogger("httpx").setLevel(logging.WARNING)
