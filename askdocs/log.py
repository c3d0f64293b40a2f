"""Structured logging setup."""
import logging

import structlog


def configure_logging(level: str = "INFO") -> None:
    """Route structlog through the stdlib logging module as JSON lines."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format="%(message)s")

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
