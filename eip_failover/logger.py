"""Logging configuration for EIP failover"""

import logging
import sys
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Chatty at INFO; every EC2 and Consul call would show up
LIBRARY_LOGGERS = ("boto3", "botocore", "urllib3")


def _attach(logger: logging.Logger, handler: logging.Handler, level: int):
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)


def setup_logger(
    name: str,
    log_level: str = "INFO",
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure the failover logger and quiet the AWS/HTTP libraries

    The libraries are only let through at DEBUG, where request-level
    detail is what is being asked for.

    Args:
        name: Logger name
        log_level: Logging level name, case-insensitive
        log_file: Optional log file path, in addition to stdout

    Returns:
        Configured logger instance
    """
    level = logging.getLevelName(log_level.upper())
    logger = logging.getLogger(name)
    logger.setLevel(level)

    library_level = logging.DEBUG if level == logging.DEBUG else logging.WARNING
    for library in LIBRARY_LOGGERS:
        logging.getLogger(library).setLevel(library_level)

    if logger.handlers:
        return logger

    _attach(logger, logging.StreamHandler(sys.stdout), level)

    if log_file:
        try:
            _attach(logger, logging.FileHandler(log_file), level)
        except OSError as e:
            logger.warning(f"Failed to setup file logging to {log_file}: {e}")

    return logger
