"""
===================================================
Centralized logging configuration for test runs.
===================================================

Provides consistent logging setup for the resource managers with:
- Console and optional file output
- Log level taken from configuration (LOG_LEVEL)
- Colored console output
- Module-specific loggers

Example:
    >>> from core.logger import get_logger, setup_logging
    >>>
    >>> setup_logging(log_level='DEBUG', log_file='spanner_it.log')
    >>> logger = get_logger(__name__)
    >>> logger.info("Creating instance")
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from core.config import config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name with ANSI codes.

    Attributes:
        COLORS: Dict mapping log levels to ANSI color codes
    """

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record):
        """Format the record, coloring a copy so other handlers stay plain."""
        color = self.COLORS.get(record.levelname)
        if color is None:
            return super().format(record)
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Get a logger instance for the specified module.

    Args:
        name: Logger name (typically __name__ of calling module)
        level: Optional logging level override

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)

    if level:
        logger.setLevel(getattr(logging, level.upper()))

    return logger


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    log_dir: Optional[str] = None,
    console_output: bool = True,
    use_colors: bool = True
) -> None:
    """Configure the root logger with console and/or file handlers.

    Arguments left as None fall back to core.config settings.

    Args:
        log_level: Logging level (DEBUG/INFO/WARNING/ERROR/CRITICAL)
        log_file: Optional log file name
        log_dir: Directory for log_file
        console_output: If True, log to stdout
        use_colors: If True, color console level names

    Example:
        >>> setup_logging(log_level='DEBUG', log_file='spanner_it.log', log_dir='logs')
    """
    level = getattr(logging, (log_level or config.logging.level).upper())
    log_file = log_file or config.logging.log_file
    log_dir = log_dir or config.logging.log_dir

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        formatter_cls = ColoredFormatter if use_colors else logging.Formatter
        console_handler.setFormatter(formatter_cls(LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path / log_file, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)


def _init_default_logging():
    """Configure logging from core.config unless the host already did."""
    if not logging.getLogger().handlers:
        setup_logging()


# Auto-initialize on import
_init_default_logging()
