"""
Structured Logging with Structlog.

Provides JSON-formatted logs with context variables. purchasekit never
configures logging on import; integrators call setup_logging() once.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from purchasekit.config import Settings, settings


def add_app_context(config: Settings) -> Processor:
    """Build a processor adding service and version from config to all log entries."""

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict["service"] = config.service_name
        event_dict["version"] = config.version
        return event_dict

    return processor


def build_processors(config: Settings) -> list[Processor]:
    """Build the structlog processor chain for the given settings."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_app_context(config),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    # Add exception info
    if config.log_level.upper() == "DEBUG":
        processors.append(structlog.processors.ExceptionRenderer())
    else:
        processors.append(structlog.processors.format_exc_info)

    # Choose renderer based on format
    if config.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    return processors


def setup_logging(config: Settings | None = None) -> None:
    """
    Configure structured logging with structlog.

    Logs are formatted as JSON for machine parsing with the following structure:
    {
        "event": "receipt_validation_completed",
        "level": "info",
        "timestamp": "2025-01-08T12:00:00.123456Z",
        "logger": "purchasekit.services.receipt_validator",
        "service": "purchasekit",
        "version": "0.1.0",
        ...additional context
    }
    """
    config = config or settings

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, config.log_level.upper()),
    )

    structlog.configure(
        processors=build_processors(config),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("product_marked_owned", product_id=product_id)
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]


# Context manager for adding transaction context
class log_context:
    """
    Context manager for adding structured logging context.

    Usage:
        with log_context(transaction_id="1000000123", product_id="pro_upgrade"):
            logger.info("transaction_processing")
            # All logs within this context will include both keys
    """

    def __init__(self, **kwargs: Any) -> None:
        self.context = kwargs

    def __enter__(self) -> None:
        """Enter context - bind context variables."""
        structlog.contextvars.bind_contextvars(**self.context)

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit context - clear context variables."""
        structlog.contextvars.unbind_contextvars(*self.context.keys())
