"""
Logging utilities for the audio preloading engine.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
import colorama
from colorama import Fore, Style
import time


colorama.init(autoreset=True)


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colored output for console logging."""

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors.

        Args:
            record: Log record to format

        Returns:
            Formatted log message
        """
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{Style.RESET_ALL}"

        message = super().format(record)

        # Reset levelname for other handlers
        record.levelname = levelname

        return message


class ProgressLogger:
    """Logger for tracking progress of a batch of loads."""

    def __init__(self, logger: logging.Logger, total: Optional[int] = None,
                 level: int = logging.DEBUG):
        """Initialize progress logger.

        Args:
            logger: Base logger instance
            total: Total number of items to process
            level: Level progress lines are logged at
        """
        self.logger = logger
        self.total = total
        self.level = level
        self.current = 0
        self.start_time = time.time()

    @property
    def percentage(self) -> float:
        if not self.total:
            return 100.0
        return min(100.0, (self.current / self.total) * 100)

    def update(self, increment: int = 1, message: Optional[str] = None) -> float:
        """Update progress.

        Args:
            increment: Number of items completed
            message: Optional progress message

        Returns:
            Completion percentage
        """
        self.current += increment
        elapsed = time.time() - self.start_time

        if self.total:
            progress_msg = (
                f"Progress: {self.current}/{self.total} "
                f"({self.percentage:.1f}%) - "
                f"Elapsed: {elapsed:.1f}s"
            )
        else:
            progress_msg = f"Progress: {self.current} items - Elapsed: {elapsed:.1f}s"

        if message:
            progress_msg += f" - {message}"

        self.logger.log(self.level, progress_msg)
        return self.percentage

    def complete(self, message: Optional[str] = None) -> None:
        """Mark operation as complete.

        Args:
            message: Optional completion message
        """
        elapsed = time.time() - self.start_time
        complete_msg = f"Completed {self.current} items in {elapsed:.1f}s"

        if message:
            complete_msg += f" - {message}"

        self.logger.log(self.level, complete_msg)


def setup_logger(
    name: str,
    level: str = "INFO",
    log_file: Optional[Path] = None,
    log_to_console: bool = True,
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    use_colors: bool = True
) -> logging.Logger:
    """Set up a logger with specified configuration.

    Args:
        name: Logger name
        level: Logging level
        log_file: Optional log file path
        log_to_console: Whether to log to console
        log_format: Log message format
        date_format: Date format for log messages
        use_colors: Whether to use colored console output

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers
    logger.handlers.clear()

    if log_format is None:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    if date_format is None:
        date_format = "%Y-%m-%d %H:%M:%S"

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, level.upper()))

        if use_colors:
            console_formatter = ColoredFormatter(log_format, datefmt=date_format)
        else:
            console_formatter = logging.Formatter(log_format, datefmt=date_format)

        console_handler.setFormatter(console_formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(getattr(logging, level.upper()))
        file_formatter = logging.Formatter(log_format, datefmt=date_format)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get or create a logger with the given name.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def enable_debug_logging() -> None:
    """Turn on verbose logging for the whole package."""
    get_logger("phomshah").setLevel(logging.DEBUG)


def log_exception(logger: logging.Logger, exception: Exception, context: Optional[str] = None) -> None:
    """Log an exception with context.

    Args:
        logger: Logger instance
        exception: Exception to log
        context: Optional context information
    """
    error_msg = f"Exception occurred: {type(exception).__name__}: {str(exception)}"

    if context:
        error_msg = f"{context} - {error_msg}"

    logger.error(error_msg, exc_info=True)
