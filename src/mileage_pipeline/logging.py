"""Structured logging setup with per-run context binding.

A generation run binds its run id once through structlog contextvars; the id
is merged into every event logged until the run clears it.
"""

import logging
import sys

import structlog


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
) -> structlog.stdlib.BoundLogger:
    """Configure structlog on top of the standard library logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        json_format: Emit JSON lines instead of the colored console format.

    Returns:
        Configured root logger.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )
    # SQL echo goes through sqlalchemy's own logger; keep it below our level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger()


def bind_run_context(**values: object) -> None:
    """Attach key/value pairs to every log line emitted during a run."""
    structlog.contextvars.bind_contextvars(**values)


def clear_run_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a logger instance.

    Args:
        name: Logger name. Defaults to root logger.
    """
    return structlog.get_logger(name)
