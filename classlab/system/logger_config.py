"""
Logging configuration for classlab

Colored console output for development, plain text for files.
"""

import logging
import re
import sys
from typing import Optional


class ColoredFormatter(logging.Formatter):
    """Formatter that adds colors to console output"""

    COLORS = {
        'DEBUG': '\033[32m',      # Green text
        'INFO': '\033[36m',       # Cyan text
        'WARNING': '\033[33m',    # Yellow text
        'ERROR': '\033[31m',      # Red text
        'CRITICAL': '\033[41m\033[97m', # Red background + white text
        'RESET': '\033[0m'
    }

    ANSI_ESCAPE = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')

    def format(self, record):
        original_levelname = record.levelname
        color = self.COLORS.get(record.levelname, '')
        reset = self.COLORS['RESET']

        # Only the level name is colored so tracebacks stay readable
        record.levelname = f"{color}{original_levelname}{reset}"
        try:
            return super().format(record)
        finally:
            record.levelname = original_levelname


class NoColorFormatter(logging.Formatter):
    """Formatter without colors, used for file output"""

    def format(self, record):
        return ColoredFormatter.ANSI_ESCAPE.sub('', super().format(record))


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    enable_colors: bool = True
) -> None:
    """
    Setup logging configuration

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        enable_colors: Whether to enable colored output for console
    """
    # Remove existing handlers to avoid duplicates
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)

    base_format = '%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))

    if enable_colors and sys.stdout.isatty():
        console_formatter = ColoredFormatter(base_format, datefmt=date_format)
    else:
        console_formatter = NoColorFormatter(base_format, datefmt=date_format)

    console_handler.setFormatter(console_formatter)
    logging.root.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)  # File records all log levels
        file_handler.setFormatter(NoColorFormatter(base_format, datefmt=date_format))
        logging.root.addHandler(file_handler)

    logging.root.setLevel(logging.DEBUG)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
