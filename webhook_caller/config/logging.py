"""
Logging setup for the webhook caller service.

Every record leaves the process as one JSON object (or one text line with
``LOG_FORMAT=text``) tagged with the service name and environment, followed
by whatever request context the call site attached: event type, request id,
caller and destination host. Records go through a queue to a listener
thread so request handlers never write to the stream themselves.

Destination URLs and caller payloads are never written, even when a call
site passes them as extras.
"""

import json
import logging
import queue
from datetime import datetime, timezone
from logging.handlers import QueueHandler, QueueListener
from typing import Any, Dict

SERVICE_NAME = "webhook-caller"

# Emitted first and in this order when a record carries them
CONTEXT_FIELDS = (
    "event_type",
    "request_id",
    "caller_kind",
    "caller_id",
    "destination_host",
)

SUPPRESSED_FIELDS = frozenset(("webhook_url", "payload"))

# Attributes every LogRecord has; anything else arrived through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Extra fields of record, context fields first, unset values dropped."""
    extras = {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS
        and key not in SUPPRESSED_FIELDS
        and not key.startswith("_")
        and value is not None
    }
    context = {key: extras.pop(key) for key in CONTEXT_FIELDS if key in extras}
    context.update(extras)
    return context


class JsonFormatter(logging.Formatter):
    """One JSON object per record"""

    def __init__(self, service: str = SERVICE_NAME, environment: str = "development"):
        super().__init__()
        self.service = service
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "service": self.service,
            "environment": self.environment,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(record_context(record))

        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """Plain lines for local development, request context appended as key=value"""

    def __init__(self, service: str = SERVICE_NAME):
        super().__init__("%(asctime)s %(levelname)s %(name)s %(message)s")
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        head, sep, traceback = super().format(record).partition("\n")
        context = " ".join(
            f"{key}={value}"
            for key, value in record_context(record).items()
            if key in CONTEXT_FIELDS
        )
        head = f"{head} [{self.service}]"
        if context:
            head = f"{head} {context}"
        return head + sep + traceback


def build_logger(
    name: str = "webhook_caller",
    level: str = "INFO",
    fmt: str = "json",
    environment: str = "development",
) -> logging.Logger:
    """
    Configure the named logger once and return it

    Args:
        name: Logger name
        level: Level name, e.g. ``INFO``
        fmt: ``json`` or ``text``
        environment: Deployment environment stamped on JSON records

    Returns:
        Configured logger instance
    """
    log = logging.getLogger(name)

    if getattr(log, "_configured", False):
        return log

    level = level.upper()
    log.setLevel(level)

    log_queue = queue.Queue(-1)
    log.addHandler(QueueHandler(log_queue))

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    if fmt == "text":
        stream_handler.setFormatter(TextFormatter())
    else:
        stream_handler.setFormatter(JsonFormatter(environment=environment))

    listener = QueueListener(log_queue, stream_handler, respect_handler_level=True)
    listener.start()

    log._listener = listener
    log._configured = True
    return log
