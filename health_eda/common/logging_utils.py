"""
Logging utilities for the write-ups.
Provides consistent logging across all stages with console and optional file handlers.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import colorlog


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(
    name: str,
    log_file: Optional[str] = None,
    level: str = "INFO",
    colorize: bool = True
) -> logging.Logger:
    """
    Set up a logger with a console handler and an optional file handler.

    Args:
        name: Logger name (typically __name__ of the calling module)
        log_file: Path to log file (optional)
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        colorize: Whether to colorize console output

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logger("health_eda", log_file="logs/medicaid.log")
        >>> logger.info("Loaded 996 rows")
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    file_formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if colorize:
        console_formatter = colorlog.ColoredFormatter(
            '%(log_color)s' + LOG_FORMAT,
            datefmt=DATE_FORMAT,
            log_colors={
                'DEBUG': 'cyan',
                'INFO': 'green',
                'WARNING': 'yellow',
                'ERROR': 'red',
                'CRITICAL': 'red,bg_white',
            }
        )
    else:
        console_formatter = file_formatter

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a module logger.

    Module loggers under the `health_eda` namespace propagate to the package
    logger configured by `configure_from_config`; anything else gets default
    console settings on first use.
    """
    logger = logging.getLogger(name)

    if name == "health_eda" or name.startswith("health_eda."):
        return logger

    if not logger.handlers:
        logger = setup_logger(name)

    return logger


def configure_from_config(config: dict) -> logging.Logger:
    """Configure the package logger from the `logging` config section."""
    log_cfg = config.get('logging', {}) or {}
    return setup_logger(
        "health_eda",
        log_file=log_cfg.get('log_file'),
        level=log_cfg.get('level', 'INFO'),
        colorize=log_cfg.get('colorize', True),
    )
