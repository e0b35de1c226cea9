"""
Logging configuration for the funding commands.

Provides:
- Console output on stdout
- Daily rotated log file
- Separate size-rotated error log

Modules log through ``logging.getLogger(__name__)``; configuring the
``neox_funding`` logger once at startup routes all of them.
"""

import logging
import os
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from typing import Optional


ROOT_LOGGER_NAME = "neox_funding"

DEFAULT_LOG_DIR = Path("logs")

# Log formats
DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
SIMPLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_log_dir(log_dir: Optional[Path] = None) -> Path:
    if log_dir is not None:
        return Path(log_dir)
    env_dir = os.getenv("LOG_DIR")
    return Path(env_dir) if env_dir else DEFAULT_LOG_DIR


def resolve_level(level: Optional[str] = None) -> int:
    name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    value = logging.getLevelName(name)
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {name}")
    return value


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    console: bool = True,
    detailed: bool = False,
    log_dir: Optional[Path] = None,
    file_logging: bool = True,
) -> logging.Logger:
    """
    Setup a logger with console and file handlers.

    Args:
        name: Logger name (``neox_funding`` covers every module in the package)
        level: Logging level
        log_file: Optional log file name (defaults to name.log)
        console: Whether to log to console
        detailed: Whether to use detailed format (includes file/line)
        log_dir: Directory for log files (defaults to LOG_DIR env or ./logs)
        file_logging: Disable to keep everything on the console

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    log_format = DETAILED_FORMAT if detailed else SIMPLE_FORMAT
    formatter = logging.Formatter(log_format, datefmt=DATE_FORMAT)

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if not file_logging:
        return logger

    directory = resolve_log_dir(log_dir)
    directory.mkdir(parents=True, exist_ok=True)

    if log_file is None:
        log_file = f"{name}.log"

    file_handler = TimedRotatingFileHandler(
        directory / log_file,
        when="midnight",
        interval=1,
        backupCount=30,  # Keep 30 days of logs
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    error_handler = RotatingFileHandler(
        directory / f"{name}_errors.log",
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8",
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(error_handler)

    return logger


def get_command_logger(
    command: str,
    debug: bool = False,
    log_dir: Optional[Path] = None,
    file_logging: bool = True,
) -> logging.Logger:
    """Configure package logging for a CLI command and return its logger."""
    level = logging.DEBUG if debug else resolve_level()
    setup_logger(
        ROOT_LOGGER_NAME,
        level=level,
        log_file=f"{command}.log",
        detailed=debug,
        log_dir=log_dir,
        file_logging=file_logging,
    )
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{command}")
