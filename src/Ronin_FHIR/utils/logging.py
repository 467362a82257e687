"""Logging configuration helpers with Structlog integration.

Key Responsibilities:
    - Configure standard library logging with JSON formatting and field scrubbing
    - Configure Structlog so library modules can emit structured events
    - Expose helpers for binding the tenant being transformed

Collaborators:
    - Upstream: Callers embedding the transformation core configure logging once
    - Downstream: Relies on ``logging`` and ``structlog``

Side Effects:
    - Configures global logging handlers
    - Binds tenant mnemonics via context variables

Thread Safety:
    - Logging configuration should be invoked once during process startup
    - Tenant helpers rely on ``contextvars`` and are safe across threads
"""

# ==============================================================================
# IMPORTS
# ==============================================================================

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterable
from contextvars import ContextVar, Token
from typing import Any, Callable

import structlog

from Ronin_FHIR.config.settings import LoggingSettings

# ==============================================================================
# CONTEXT VARIABLES
# ==============================================================================

_tenant: ContextVar[str | None] = ContextVar("tenant", default=None)

# Attributes every LogRecord carries; anything else was passed through ``extra``.
_RECORD_ATTRIBUTES = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime"}

_REDACTED = "***"

# ==============================================================================
# FORMATTERS
# ==============================================================================


class JsonFormatter(logging.Formatter):
    """Render records as one JSON object per line.

    Values passed through ``extra`` whose key is in ``scrub_fields`` are
    redacted. Event fields emitted by the transformation core are flat, so
    only top-level keys are inspected.
    """

    def __init__(self, *, scrub_fields: Iterable[str] | None = None) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")
        self._scrub_fields = frozenset(field.lower() for field in scrub_fields or ())

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "time": self.formatTime(record, self.datefmt),
        }
        tenant = _tenant.get()
        if tenant:
            payload["tenant"] = tenant
        payload.update(
            (key, _REDACTED if key.lower() in self._scrub_fields else value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, sort_keys=True, default=str)


# ==============================================================================
# STRUCTLOG PROCESSORS
# ==============================================================================


def _structlog_scrubber(
    scrub_fields: Iterable[str] | None,
) -> Callable[[Any, str, dict[str, Any]], dict[str, Any]]:
    """Create a Structlog processor that scrubs sensitive fields.

    The processor also injects the bound tenant when the event does not carry
    one already.
    """
    lower_fields = {field.lower() for field in scrub_fields or ()}

    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        tenant = _tenant.get()
        if tenant:
            event_dict.setdefault("tenant", tenant)
        for key in list(event_dict.keys()):
            if key.lower() in lower_fields:
                event_dict[key] = _REDACTED
        return event_dict

    return processor


def configure_logging(
    level: int | str | None = None,
    *,
    settings: LoggingSettings | None = None,
) -> None:
    """Configure global logging for the application.

    Args:
        level: Optional logging level or level name. When ``settings`` is
            provided this argument is ignored.
        settings: Optional logging settings object providing level and scrub
            configuration.
    """
    scrub_fields: Iterable[str] | None = None
    if settings is not None:
        level = settings.level
        scrub_fields = settings.scrub_fields

    if isinstance(level, str):
        level_value = getattr(logging, level.upper(), logging.INFO)
    elif isinstance(level, int):
        level_value = level
    else:
        level_value = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter(scrub_fields=scrub_fields))

    root_logger = logging.getLogger()
    preserved_handlers: list[logging.Handler] = []
    for existing in root_logger.handlers:
        module_attr = getattr(existing.__class__, "__module__", "")
        module: str = module_attr if isinstance(module_attr, str) else ""
        if module.startswith("_pytest."):
            existing.setFormatter(JsonFormatter(scrub_fields=scrub_fields))
            preserved_handlers.append(existing)

    logging.basicConfig(
        level=level_value,
        handlers=[*preserved_handlers, handler],
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _structlog_scrubber(scrub_fields),
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )


# ==============================================================================
# TENANT HELPERS
# ==============================================================================


def bind_tenant(mnemonic: str) -> Token[str | None]:
    """Bind a tenant mnemonic to the current execution context.

    Returns:
        Context variable token that can be used to restore the previous value.
    """
    token = _tenant.set(mnemonic)
    structlog.contextvars.bind_contextvars(tenant=mnemonic)
    return token


def reset_tenant(token: Token[str | None] | None) -> None:
    """Restore the tenant context captured by :func:`bind_tenant`."""
    if token is not None:
        _tenant.reset(token)
    previous = _tenant.get()
    if previous:
        structlog.contextvars.bind_contextvars(tenant=previous)
    else:
        structlog.contextvars.unbind_contextvars("tenant")


def get_tenant() -> str | None:
    """Return the currently bound tenant mnemonic, if any."""
    return _tenant.get()


def get_logger(name: str) -> logging.Logger:
    """Return a configured logger with the given name."""
    return logging.getLogger(name)


__all__ = [
    "JsonFormatter",
    "bind_tenant",
    "configure_logging",
    "get_logger",
    "get_tenant",
    "reset_tenant",
]
