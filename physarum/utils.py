"""Logging setup for the Physarum simulation."""

import logging
import logging.handlers

from .config import LoggingConfig


def setup_logging(config: LoggingConfig, quiet: bool = False) -> None:
    """
    Configure the root logger from a LoggingConfig.

    Logs go to the console and, when a log file is configured, to a
    rotating file. Quiet mode raises the console threshold to WARNING.
    """
    logger = logging.getLogger()
    logger.setLevel(config.level)

    # Clear existing handlers to avoid duplication
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(config.format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    if quiet:
        console_handler.setLevel(logging.WARNING)
    logger.addHandler(console_handler)

    if config.log_file is not None:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        # Rotates at 1MB, keeps 5 backups
        file_handler = logging.handlers.RotatingFileHandler(
            config.log_file, maxBytes=1024 * 1024, backupCount=5
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logging.debug("Log level set to %s.", config.level)
