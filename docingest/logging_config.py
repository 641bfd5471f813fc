"""
Structured logging configuration using structlog.

Usage:
    from docingest.logging_config import get_logger

    log = get_logger(__name__)
    log.info("task_created", task_id=task_id, status="pending")
"""
import logging
import logging.handlers
import sys
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog


def configure_logging(
    log_level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure structlog on top of stdlib logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: If True, output JSON. If False, use colored console output.
        log_file: Optional path to a JSON log file, rotated at midnight.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]

    if json_format:
        console_renderer = structlog.processors.JSONRenderer()
    else:
        console_renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(_formatter(shared_processors, console_renderer))
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.handlers.TimedRotatingFileHandler(
            log_file,
            when="midnight",
            interval=1,
            backupCount=7
        )
        file_handler.setFormatter(
            _formatter(shared_processors, structlog.processors.JSONRenderer())
        )
        root_logger.addHandler(file_handler)

    # SQLAlchemy echoes every statement at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def configure_from_settings(log_file: Optional[str] = None) -> None:
    """Configure logging from the application settings."""
    from docingest.config import get_settings

    settings = get_settings()
    configure_logging(
        log_level=settings.log_level,
        json_format=settings.json_logs,
        log_file=log_file,
    )


def _formatter(shared_processors, renderer) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        A bound structlog logger
    """
    return structlog.get_logger(name)


@contextmanager
def log_context(**kwargs) -> Iterator[None]:
    """Bind context for the duration of one flow, restoring the previous values afterwards."""
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
