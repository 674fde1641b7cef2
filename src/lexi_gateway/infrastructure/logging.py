"""Логирование (JSON через structlog)."""

import logging
import sys

import structlog

from lexi_gateway.settings import get_settings


def configure_logging(level_name: str | None = None) -> None:
    """Настраивает stdlib logging + structlog."""
    settings = get_settings()
    level = getattr(logging, (level_name or settings.log_level).upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=level,
    )

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
