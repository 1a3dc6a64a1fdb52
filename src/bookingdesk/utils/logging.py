"""Logging setup shared by the server and the CLI."""

import logging

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"


def setup_logging(level: str | int = logging.INFO, log_file: str | None = None) -> logging.Logger:
    """Configure the ``bookingdesk`` logger hierarchy.

    Args:
        level: Log level name or number
        log_file: Optional path of a file to also write logs to

    Returns:
        The package root logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    formatter = logging.Formatter(LOG_FORMAT)
    logger = logging.getLogger("bookingdesk")
    logger.setLevel(level)

    if not logger.handlers:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
