"""
Storage Kit logging configuration.

This module provides unified logging configuration for the storage layer,
the request handler and the HTTP service. Detailed provider errors are
logged here while clients only see the normalized StorageError payload.
"""
import logging
import sys

LOGGER_NAME = "storage_kit"


def setup_logging(level: int | str | None = None) -> logging.Logger:
    """
    Configure and return the Storage Kit logger.

    The logger outputs to stdout with a structured format including:
    - Timestamp
    - Logger name
    - Log level
    - Message

    Calling this repeatedly is safe: the handler is only attached once.

    Args:
        level: Optional log level (name or number); INFO when omitted on
            first configuration, unchanged afterwards

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)

    # Prevent duplicate handlers if called multiple times
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)
        logger.setLevel(logging.INFO)

    if level is not None:
        logger.setLevel(level.upper() if isinstance(level, str) else level)

    return logger
