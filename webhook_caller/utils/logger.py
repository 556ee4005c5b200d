"""
Logger utility for the webhook caller service
Provides correlation IDs, header redaction, and structured logging helpers
"""

import logging
import uuid
from typing import Dict, Any, Optional
from ..config.logging import build_logger
from ..config.settings import get_settings

# Headers that should be redacted in logs
REDACT_HEADERS = {
    "authorization",
    "proxy-authorization",
    "cookie",
    "set-cookie",
    "apikey",
    "x-api-key",
    "x-auth-token",
}

REDACT_VALUE = "[REDACTED]"

# Global logger instance, configured from LOG_LEVEL / LOG_FORMAT
_settings = get_settings()
log = build_logger(
    "webhook_caller",
    level=_settings.log_level,
    fmt=_settings.log_format,
    environment=_settings.environment,
)


def get_logger(name: str = "webhook_caller") -> logging.Logger:
    """
    Get a logger instance with the given name.

    Module loggers (``__name__`` inside the package) are children of the
    configured package logger and propagate to its handlers.

    Args:
        name: Logger name (defaults to "webhook_caller")

    Returns:
        Logger instance
    """
    if name == "webhook_caller":
        return log
    if not name.startswith("webhook_caller."):
        name = f"webhook_caller.{name}"
    return logging.getLogger(name)


def new_request_id(value: Optional[str] = None) -> str:
    """
    Generate or validate a request/correlation ID

    Args:
        value: Optional existing request ID to validate

    Returns:
        Valid UUID string for request correlation
    """
    if value:
        try:
            return str(uuid.UUID(value))
        except (ValueError, TypeError):
            pass

    return str(uuid.uuid4())


def redact_headers(headers: Dict[str, Any]) -> Dict[str, Any]:
    """
    Redact sensitive headers for logging

    Args:
        headers: Dictionary of HTTP headers

    Returns:
        Dictionary with sensitive values redacted
    """
    redacted = {}
    for key, value in headers.items():
        key_lower = key.lower()
        if key_lower in REDACT_HEADERS:
            redacted[key] = REDACT_VALUE
        elif any(
            sensitive in key_lower for sensitive in ["token", "secret", "key", "auth"]
        ):
            redacted[key] = REDACT_VALUE
        else:
            redacted[key] = value
    return redacted


def log_error(
    event_type: str, message: str, exception: Optional[Exception] = None, **kwargs
):
    """
    Log an error event with standardized fields

    Args:
        event_type: Type of error event
        message: Human-readable error message
        exception: Exception instance (optional)
        **kwargs: Additional context fields
    """
    extra = {"event_type": event_type, **kwargs}

    if exception:
        log.error(message, extra=extra, exc_info=exception)
    else:
        log.error(message, extra=extra)
