import logging
import os
import sys
from contextvars import ContextVar
from typing import Optional


_request_id: ContextVar[str] = ContextVar('request_id', default='-')

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class RequestIdFilter(logging.Filter):
    """Stamp every log record with the id of the request being handled."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, 'request_id'):
            record.request_id = _request_id.get()
        return True


def set_request_id(request_id: str):
    """
    Bind a request id to the current context.

    Args:
        request_id: Identifier echoed in every log line of this request

    Returns:
        Token that can be passed to reset_request_id()
    """
    return _request_id.set(request_id)


def reset_request_id(token) -> None:
    """Restore the request id that was active before set_request_id()."""
    _request_id.reset(token)


def get_request_id() -> str:
    """Return the request id bound to the current context, or '-'."""
    return _request_id.get()


def setup_logging(
    component_name: str,
    log_level: Optional[str] = None,
) -> logging.Logger:
    """
    Set up logging configuration for a component.

    Module loggers created with logging.getLogger(__name__) inside the
    component package propagate to this logger and share its handler.

    Args:
        component_name: Name of the component (e.g., 'assembler', 'cli')
        log_level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL env var or INFO

    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO')

    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(component_name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(RequestIdFilter())

    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
