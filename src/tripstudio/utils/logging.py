"""structlog setup for editing sessions.

Library modules log through ``logging.getLogger(__name__)``; the CLI and
hosts call :func:`configure_logging` once so those records, and any
structlog events, share one renderer. Every event emitted while a session
handles a command carries that session's id, the active tool and the
command counter, taken from context variables set by
``EditSession.dispatch``.
"""

import logging
import sys
from collections.abc import MutableMapping
from contextvars import ContextVar
from typing import Any, cast

import structlog
from structlog.types import Processor

from tripstudio.config import settings

_session_id: ContextVar[str | None] = ContextVar("session_id", default=None)
_tool: ContextVar[str | None] = ContextVar("tool", default=None)
_step: ContextVar[int | None] = ContextVar("step", default=None)

# Event key -> context variable, in output order
_CORRELATION_FIELDS: dict[str, ContextVar[Any]] = {
    "session_id": _session_id,
    "tool": _tool,
    "step": _step,
}


def set_correlation_context(
    session_id: str | None = None,
    tool: str | None = None,
    step: int | None = None,
) -> None:
    """Tag subsequent log events with session details.

    Only the arguments given are updated, so a tool switch can be recorded
    without repeating the session id.

    Args:
        session_id: Id of the EditSession handling commands.
        tool: Value of the active Tool, e.g. ``"crop-rect"``.
        step: Number of commands the session has dispatched.
    """
    values = {"session_id": session_id, "tool": tool, "step": step}
    for key, value in values.items():
        if value is not None:
            _CORRELATION_FIELDS[key].set(value)


def clear_correlation_context() -> None:
    """Drop all session tags."""
    for var in _CORRELATION_FIELDS.values():
        var.set(None)


def _add_correlation_ids(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Copy the session tags that are set into the event."""
    _ = logger, method_name  # Required by structlog processor signature
    for key, var in _CORRELATION_FIELDS.items():
        value = var.get()
        if value is not None:
            event_dict[key] = value
    return event_dict


def _render_processors(log_format: str) -> list[Processor]:
    if log_format == "json":
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=True)]


def configure_logging(
    level: str | None = None,
    log_format: str | None = None,
) -> None:
    """Install the structlog pipeline and the stdlib root level.

    Args:
        level: Log level name. Defaults to settings.LOG_LEVEL.
        log_format: ``"json"`` for machine-readable lines, anything else
            for the coloured console renderer. Defaults to
            settings.LOG_FORMAT.
    """
    level = level or settings.LOG_LEVEL
    log_format = log_format or settings.LOG_FORMAT

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            _add_correlation_ids,
            *_render_processors(log_format),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to name."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
