"""Structured logging for Dripper.

Features:
- JSON or text format output
- Request ID propagation across a drip request
- Redaction of mnemonics, captcha tokens and other secrets
- Configurable log level
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any

import structlog

# Context variable for request ID
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Exact field names whose values are never logged
REDACTED_FIELDS = frozenset(
    {
        "mnemonic",
        "backup_mnemonic",
        "secret",
        "password",
        "recaptcha",
        "recaptcha_secret",
        "captcha_token",
        "bot_token",
        "app_token",
        "signing_secret",
    }
)

# Any field ending with one of these is redacted as well
REDACTED_SUFFIXES = ("_mnemonic", "_secret", "_token")


def _add_request_id(
    _logger: logging.Logger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Add request ID to log event if available."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return lowered in REDACTED_FIELDS or lowered.endswith(REDACTED_SUFFIXES)


def _redact_sensitive(
    _logger: logging.Logger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Redact sensitive fields from log events."""
    for key in event_dict:
        if _is_sensitive(key):
            event_dict[key] = "[REDACTED]"
    return event_dict


def configure_logging(
    level: str = "INFO",
    log_format: str = "json",
) -> None:
    """Configure structured logging for the application.

    Parameters
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR).
    log_format : str
        Output format (json or text).
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(
            f"Invalid log level: {level!r}. "
            "Valid levels are: DEBUG, INFO, WARNING, ERROR, CRITICAL."
        )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )
    # basicConfig is a no-op once handlers exist
    logging.getLogger().setLevel(log_level)

    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        _add_request_id,
        _redact_sensitive,
    ]

    if log_format.lower() == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Parameters
    ----------
    request_id : str | None
        The request ID to set. A random one is generated when None.

    Returns
    -------
    str
        The request ID now in effect.
    """
    request_id = request_id or uuid.uuid4().hex
    request_id_var.set(request_id)
    return request_id


def clear_request_id() -> None:
    """Clear the request ID for the current context."""
    request_id_var.set(None)
