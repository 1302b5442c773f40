"""
Logging configuration for sitekb.

Every record carries a correlation id (rid): the X-Request-ID of an API
request, or the job id while a queue worker runs an ingestion job.

Usage:
    from sitekb.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Message")
"""
import logging
import sys

from sitekb.logging_utils import request_id_ctx

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | rid=%(request_id)s | %(message)s"

# Third-party loggers that log every HTTP call at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "qdrant_client", "firecrawl")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get("-")
        return True


def setup_logging(level: str = "INFO") -> None:
    """
    Configure root logging: one stdout handler with correlation ids.

    Safe to call more than once (API startup and the CLI both call it).

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Replace handlers so repeated calls don't duplicate output
    root.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(RequestIdFilter())
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance.
    """
    return logging.getLogger(name)
