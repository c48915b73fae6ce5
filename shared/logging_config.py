"""
Structured Logging Setup

Configures structlog for every service process. Renders JSON lines in deployed
environments and coloured console output locally.
"""

import logging
import sys

import structlog

from shared.config import Settings, settings


def configure_logging(config: Settings = settings) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        config: Settings carrying log_level and log_format
    """
    level = getattr(logging, config.log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    renderer = (
        structlog.processors.JSONRenderer()
        if config.log_format == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
