import logging
import sys

import structlog
from structlog.typing import EventDict, WrappedLogger

from .config import settings

# Event keys that may hold key material or decrypted content
SECRET_KEYS = frozenset(
    {"enc_key", "key", "derived_key", "intermediate", "plaintext", "enc_payload"}
)


def redact_secrets(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Replaces secret values so they never reach a renderer."""
    for name in SECRET_KEYS.intersection(event_dict):
        event_dict[name] = "[redacted]"
    return event_dict


def configure_logging():
    """
    Configures structlog to output JSON in production
    and pretty-printed text in development/testing.
    """

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        redact_secrets,
        structlog.processors.TimeStamper(
            fmt="iso" if settings.is_production else "%H:%M:%S"
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=shared_processors + [renderer],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Host applications that already configured logging keep their handlers
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=settings.log_level,
    )
