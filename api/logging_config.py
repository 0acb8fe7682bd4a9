"""
Logging configuration for the Submission Worker.
Provides structured logging with proper formatting.
"""

import os
import sys
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Log directory
LOG_DIR = Path(os.getenv("LOG_DIR", Path(__file__).parent.parent / "logs"))

# Log level from environment
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for console output."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        color = self.COLORS.get(record.levelname, self.RESET)
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logging(name: str = "linklaunch", log_dir: Path = LOG_DIR) -> logging.Logger:
    """
    Setup and return a configured logger.

    Module loggers (logging.getLogger(__name__)) under the packages of this
    project propagate to the root handlers installed here.

    Args:
        name: Logger name (default: linklaunch)
        log_dir: Directory for rotating log files

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

    # Console handler with colors
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_format = ColoredFormatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(console_format)
    logger.addHandler(console_handler)

    try:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError:
        # Read-only filesystems (some PaaS workers): console only
        return logger

    # File handler with rotation
    file_handler = RotatingFileHandler(
        log_dir / f"{name}.log",
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5
    )
    file_handler.setLevel(logging.DEBUG)
    file_format = logging.Formatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(funcName)s:%(lineno)d | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    file_handler.setFormatter(file_format)
    logger.addHandler(file_handler)

    # Error file handler (errors and above)
    error_handler = RotatingFileHandler(
        log_dir / f"{name}_errors.log",
        maxBytes=10 * 1024 * 1024,
        backupCount=5
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(file_format)
    logger.addHandler(error_handler)

    return logger


def attach_package_loggers(logger: logging.Logger, packages=("api", "adapters", "browser", "ai", "core")):
    """Route the per-module loggers of our packages to the handlers of `logger`."""
    for package in packages:
        pkg_logger = logging.getLogger(package)
        pkg_logger.setLevel(logger.level)
        for handler in logger.handlers:
            if handler not in pkg_logger.handlers:
                pkg_logger.addHandler(handler)


# Create default logger
logger = setup_logging()


def log_submission(submission_id: str, directory: str, status: str, error: str = None, category: str = None):
    """Log a submission outcome."""
    if error:
        logger.error(f"Submission {submission_id} [{directory}] -> {status} ({category}): {error}")
    else:
        logger.info(f"Submission {submission_id} [{directory}] -> {status}")
