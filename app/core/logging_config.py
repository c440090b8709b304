# app/core/logging_config.py
import logging
import sys

import structlog

from app.config import get_settings


def setup_logging(level: str | None = None) -> None:
    """
    Configure structlog on top of stdlib logging.
    Logs are rendered as JSON on stdout.
    """
    log_level = (level or get_settings().log_level).upper()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level, logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# Global logger, import it anywhere
logger = structlog.get_logger("printshop")
