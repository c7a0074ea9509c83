"""Structured logging for the leverage engine (structlog, contextvars-bound).

Every position lifecycle binds its market and direction into the structlog
contextvars so that all events emitted by the executor, leg opener and loop
carry them without threading a logger through each call.
"""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

_RENDERERS = {
    "json": structlog.processors.JSONRenderer,
    "console": structlog.dev.ConsoleRenderer,
}


def setup_logging(log_level: str = "INFO", log_format: str | None = None) -> None:
    """Route engine events through the stdlib root logger.

    Args:
        log_level: Root level name; unknown names fall back to INFO.
        log_format: "json" or "console". Defaults to $LOG_FORMAT, then console.
    """
    fmt = (log_format or os.environ.get("LOG_FORMAT", "console")).lower()
    renderer = _RENDERERS.get(fmt, structlog.dev.ConsoleRenderer)()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)


@contextmanager
def position_context(condition_id: str, long_yes: bool, mode: str) -> Iterator[None]:
    """Bind market/direction/mode to every log event inside the block."""
    with structlog.contextvars.bound_contextvars(
        condition_id=condition_id,
        side="yes" if long_yes else "no",
        mode=mode,
    ):
        yield
