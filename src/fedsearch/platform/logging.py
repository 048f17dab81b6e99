"""
fedsearch Structured Logging

Configures structured JSON logging using structlog.
"""

import logging
import sys

import structlog

from fedsearch.platform.config import settings

# Chatty per-request loggers of the HTTP stack; a reindex sends thousands
_NOISY_LOGGERS = ("httpx", "httpcore")


def _renderer():
    if settings.APP_ENV == "production":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(verbose: bool = False) -> None:
    """
    Configure structlog and the stdlib root logger for the process.

    ``verbose`` lowers the threshold to INFO at most, so that reindex
    progress is shown even when LOG_LEVEL says warning.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    if verbose:
        log_level = min(log_level, logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    return structlog.get_logger(name)
