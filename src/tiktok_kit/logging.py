"""Structured logging configuration.

Every module logs through ``get_logger(__name__)`` with snake_case event names
and keyword context. Tokens and pre-signed upload URLs never reach the output:
``redact_secrets`` masks them before rendering.
"""

import logging
import sys
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from typing import Any
from urllib.parse import urlsplit

import structlog

from tiktok_kit.config import settings

SECRET_KEYS = frozenset(
    {"access_token", "refresh_token", "client_secret", "token", "authorization"}
)
MASK = "***"


def _mask(value: Any) -> str:
    text = str(value)
    if len(text) <= 8:
        return MASK
    return f"{text[:4]}{MASK}"


def redact_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask credential values and strip query strings from upload URLs."""
    for key in list(event_dict):
        value = event_dict[key]
        if value in (None, ""):
            continue
        if key.lower() in SECRET_KEYS:
            event_dict[key] = _mask(value)
        elif key == "upload_url" or (key == "url" and "upload_token=" in str(value)):
            parts = urlsplit(str(value))
            event_dict[key] = f"{parts.scheme}://{parts.netloc}{parts.path}"
    return event_dict


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Overrides ``LOG_LEVEL``.
        log_format: ``json`` or ``console``; overrides ``LOG_FORMAT``.
    """
    log_format = log_format or settings.log_format
    if log_format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    # stdout is reserved for command output
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel((level or settings.log_level).upper())

    # httpx logs every request at INFO, including full upload URLs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@contextmanager
def publish_context(**context: Any) -> Iterator[None]:
    """Bind publish identifiers (``publish_id``, ``open_id``) to every log line inside."""
    with structlog.contextvars.bound_contextvars(**context):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance for a module."""
    return structlog.get_logger(name)
