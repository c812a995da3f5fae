"""
Logging configuration for CableCast.

Service, wiring and web layers log structured events through structlog;
runtime modules use stdlib ``logging`` with %-style messages. Both end up
as JSON lines on stderr once configure_logging() has run, which keeps
stdout free for CLI output.
"""

import logging
import re
import sys
from typing import Any

import structlog

from .settings import settings

_SECRET_KEY_PARTS = ("token", "password", "secret", "api_key", "apikey")

# Credentials embedded in library or media-server URLs.
_SECRET_QUERY = re.compile(r"\b(api_key|apikey|token|password)=[^&\s]+", re.IGNORECASE)


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        return _SECRET_QUERY.sub(lambda m: f"{m.group(1)}=***", value)
    if isinstance(value, dict):
        return {k: _scrub(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_scrub(v) for v in value]
    return value


def redact_secrets(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Mask secret-looking keys and credentials in query strings."""
    for key, value in event_dict.items():
        if any(part in key.lower() for part in _SECRET_KEY_PARTS):
            event_dict[key] = "***REDACTED***"
        else:
            event_dict[key] = _scrub(value)
    return event_dict


def configure_logging(level: str | None = None) -> None:
    """Route stdlib and structlog records to stderr as JSON."""
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            redact_secrets,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Logger carrying service and env on every event."""
    # Resolved on first use, after configure_logging().
    return structlog.get_logger(name, service="cablecast", env=settings.env)
