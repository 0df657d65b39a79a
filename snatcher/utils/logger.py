"""
Logging configuration and utilities for snatcher
Provides colored console output and file logging with separation between user and technical messages
"""

import logging
import logging.handlers
import re
import sys
import time
from pathlib import Path
from typing import Optional
import colorama
from colorama import Fore, Back, Style

from ..config.settings import get_settings


# Initialize colorama for Windows compatibility
colorama.init()

FILE_FORMAT = '%(asctime)s | %(name)-30s | %(levelname)-8s | %(funcName)-20s | %(message)s'

# Third-party loggers that would otherwise flood the file log
EXTERNAL_LIBS = [
    'urllib3', 'requests', 'botocore', 'boto3', 's3transfer', 'yt_dlp',
    'textual', 'asyncio', 'urllib3.connectionpool',
]


class ConsoleMessageFilter(logging.Filter):
    """Filter to allow only user-facing messages to console"""

    def filter(self, record):
        # Allow all WARNING+ messages
        if record.levelno >= logging.WARNING:
            return True

        # Allow messages explicitly marked for console
        if getattr(record, 'console_output', False):
            return True

        # Block everything else (DEBUG/INFO technical messages)
        return False


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colored output for console"""

    # Color mapping for log levels
    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Back.WHITE + Style.BRIGHT,
    }

    def __init__(self, fmt: Optional[str] = None, use_colors: bool = True):
        """
        Initialize colored formatter

        Args:
            fmt: Log format string
            use_colors: Whether to use colored output
        """
        super().__init__()
        self.use_colors = use_colors
        self.fmt = fmt or '%(message)s'

    def format(self, record: logging.LogRecord) -> str:
        """Format log record, coloring warnings and errors"""
        formatter = logging.Formatter(self.fmt)
        message = formatter.format(record)
        if self.use_colors and record.levelno >= logging.WARNING and record.levelname in self.COLORS:
            return f"{self.COLORS[record.levelname]}{message}{Style.RESET_ALL}"
        return message


class ProgressHandler(logging.Handler):
    """Handler that clears the current terminal line before writing, so it
    does not garble a status line or progress bar"""

    def __init__(self, stream=None):
        super().__init__()
        self.stream = stream or sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            self.stream.write(f'\r\033[K{msg}\n')
            self.stream.flush()
        except Exception:
            self.handleError(record)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    console_output: bool = True,
    colored_output: bool = True,
    max_size: str = "10MB",
    backup_count: int = 3
) -> None:
    """
    Setup application logging configuration with separated console/file output

    Args:
        level: Logging level for the file log (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (None to disable file logging)
        console_output: Enable console logging
        colored_output: Enable colored console output
        max_size: Maximum log file size before rotation
        backup_count: Number of backup log files to keep
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture everything, filter at handler level

    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    # Console handler - only user-facing messages (WARNING+ or explicitly marked)
    if console_output:
        console_handler = ProgressHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG)
        console_handler.addFilter(ConsoleMessageFilter())
        console_handler.setFormatter(ColoredFormatter(fmt='%(message)s', use_colors=colored_output))
        root_logger.addHandler(console_handler)

    # File handler with full detail logging
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=parse_size(max_size),
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        root_logger.addHandler(file_handler)

    if not root_logger.handlers:
        root_logger.addHandler(logging.NullHandler())

    for lib in EXTERNAL_LIBS:
        lib_logger = logging.getLogger(lib)
        lib_logger.setLevel(logging.CRITICAL)
        lib_logger.propagate = False

    # Log startup message (to file only)
    logging.getLogger('snatcher').info(
        f"Logging initialized - Level: {level}, Console: {console_output}, File: {log_file}"
    )


def get_current_log_file() -> Optional[Path]:
    """
    Get the current log file path from active file handlers

    Returns:
        Path to current log file or None if no file logging
    """
    for handler in logging.getLogger().handlers:
        if isinstance(handler, logging.handlers.RotatingFileHandler):
            return Path(handler.baseFilename)
    return None


def parse_size(size_str: str) -> int:
    """
    Parse size string to bytes

    Args:
        size_str: Size string like "10MB", "1GB", "500KB"

    Returns:
        Size in bytes

    Raises:
        ValueError: If the string is not a recognised size
    """
    size_str = size_str.upper().strip()

    multipliers = {
        'B': 1,
        'KB': 1024,
        'MB': 1024 ** 2,
        'GB': 1024 ** 3,
        'TB': 1024 ** 4,
    }

    match = re.match(r'^(\d+(?:\.\d+)?)\s*([KMGT]?B)$', size_str)
    if not match:
        raise ValueError(f"Invalid size format: {size_str}")

    number, unit = match.groups()
    return int(float(number) * multipliers[unit])


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance for a module

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance with a ``console_info`` method attached
    """
    logger = logging.getLogger(name)

    def console_info(message: str):
        """Log message that should appear on console for user"""
        logger.info(message, extra={'console_output': True})

    logger.console_info = console_info
    return logger


def configure_from_settings(console_output: Optional[bool] = None) -> None:
    """
    Configure logging from application settings

    Args:
        console_output: Override the configured console flag; the TUI passes
            False so log lines never land on top of the screen
    """
    settings = get_settings()

    setup_logging(
        level=settings.logging.level,
        log_file=settings.logging.file or None,
        console_output=settings.logging.console_output if console_output is None else console_output,
        colored_output=settings.logging.colored_output,
        max_size=settings.logging.max_size,
        backup_count=settings.logging.backup_count
    )


class OperationLogger:
    """Logger for tracking long-running transfers with a byte progress bar"""

    def __init__(self, logger: logging.Logger, operation_name: str, total: Optional[int] = None):
        """
        Initialize operation logger

        Args:
            logger: Base logger instance
            operation_name: Name of the operation, used as the bar label
            total: Expected number of bytes, if known
        """
        self.logger = logger
        self.operation_name = operation_name
        self.total = total
        self.start_time = None
        self.progress_bar = None

    def start(self, message: Optional[str] = None) -> None:
        """Start tracking operation - show to user"""
        self.start_time = time.time()
        self.logger.console_info(message or f"Starting {self.operation_name}")
        self.logger.info(f"Operation started: {self.operation_name}")

    def progress(self, transferred: int, total: Optional[int] = None) -> None:
        """Update the progress bar with the cumulative byte count"""
        from tqdm import tqdm

        if self.progress_bar is None:
            self.progress_bar = tqdm(
                total=total or self.total,
                desc=self.operation_name,
                unit='B',
                unit_scale=True,
                unit_divisor=1024,
                ncols=90,
                leave=False,
            )
        self.progress_bar.n = transferred
        self.progress_bar.refresh()

    def complete(self, message: Optional[str] = None) -> None:
        """Mark operation as complete - close progress bar"""
        self._close_bar()
        duration = time.time() - self.start_time if self.start_time else 0.0
        self.logger.console_info(message or f"{self.operation_name} completed")
        self.logger.info(f"Operation completed: {self.operation_name} in {duration:.2f}s")

    def error(self, message: str, exception: Optional[Exception] = None) -> None:
        """Log operation error - close progress bar first"""
        self._close_bar()
        if exception:
            self.logger.error(f"{self.operation_name} failed: {message}", exc_info=exception)
        else:
            self.logger.error(f"{self.operation_name} failed: {message}")

    def _close_bar(self) -> None:
        if self.progress_bar:
            self.progress_bar.close()
            self.progress_bar = None


def create_operation_logger(name: str, operation: str, total: Optional[int] = None) -> OperationLogger:
    """
    Create operation logger for tracking long-running transfers

    Args:
        name: Logger name
        operation: Operation description
        total: Expected number of bytes, if known

    Returns:
        OperationLogger instance
    """
    return OperationLogger(get_logger(name), operation, total)
