"""Logging setup for applications embedding pagebridge."""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

from .models.config import RegistryConfig

LOGGER_NAME = "pagebridge"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    format_string: Optional[str] = None,
    force: bool = False,
) -> logging.Logger:
    """
    Attach handlers to the ``pagebridge`` logger.

    The library itself never calls this; converters only emit records.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Also write records to this file
        format_string: Custom record format
        force: Replace handlers that are already attached

    Returns:
        The configured ``pagebridge`` logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)

    if force or not logger.handlers:
        logger.handlers.clear()
        handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
        if log_file:
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

        formatter = logging.Formatter(format_string or DEFAULT_FORMAT)
        for handler in handlers:
            handler.setLevel(numeric_level)
            handler.setFormatter(formatter)
            logger.addHandler(handler)

    # Records stop here so host applications do not print them twice
    logger.propagate = False
    return logger


def setup_logging_from_config(
    config: RegistryConfig, log_file: Optional[Union[str, Path]] = None
) -> logging.Logger:
    """Configure logging at the level named by ``config.log_level``."""
    return setup_logging(level=config.log_level, log_file=log_file, force=True)
