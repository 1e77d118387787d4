# src/utils/logger.py
import logging
import os
import sys
from typing import List, Optional

# Shared by every logger from setup_logger once attach_file_handler is called
_file_handler: Optional[logging.Handler] = None
_named_loggers: List[logging.Logger] = []


def _default_level() -> int:
    # Read straight from the environment so the logger never imports settings
    return getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)


def setup_logger(
    name: str,
    level: Optional[int] = None,
    format_string: Optional[str] = None,
    datefmt: Optional[str] = None,
) -> logging.Logger:
    """
    Set up a named logger with the service-wide format.

    Args:
        name: Logger name, an upper-case component tag such as "LIFECYCLE"
        level: Logging level (default: LOG_LEVEL env var, else INFO)
        format_string: Custom format string for log messages
        datefmt: Custom date format string

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    if level is None:
        level = _default_level()
    logger.setLevel(level)

    if format_string is None:
        format_string = "[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s"

    if datefmt is None:
        datefmt = "%Y-%m-%d %H:%M:%S"

    formatter = logging.Formatter(format_string, datefmt=datefmt)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if _file_handler is not None:
        logger.addHandler(_file_handler)
    _named_loggers.append(logger)

    # Prevent propagation to root logger to avoid duplicate messages
    logger.propagate = False

    return logger


def attach_file_handler(
    path: str = "app.log", level: int = logging.INFO
) -> logging.Handler:
    """
    Write complete logs to a file.

    Named loggers do not propagate, so the handler goes on each of them
    (existing and future) as well as on the root logger.
    """
    global _file_handler
    if _file_handler is not None:
        return _file_handler

    handler = logging.FileHandler(path)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] [%(name)s] %(message)s")
    )
    for logger in _named_loggers:
        logger.addHandler(handler)
    logging.getLogger().addHandler(handler)
    _file_handler = handler
    return handler


def detach_file_handler():
    global _file_handler
    if _file_handler is None:
        return
    for logger in _named_loggers:
        logger.removeHandler(_file_handler)
    logging.getLogger().removeHandler(_file_handler)
    _file_handler.close()
    _file_handler = None
