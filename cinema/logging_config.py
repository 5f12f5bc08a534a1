"""
Logging Configuration

Namespaced stdlib logging for the storyboard core.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
VERBOSE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(funcName)s | %(message)s"

ROOT_LOGGER = "cinema"

_loggers: dict = {}
_initialized: bool = False


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    verbose: bool = False,
    console_output: bool = True,
) -> None:
    """
    Set up logging for the whole package.

    Args:
        level: Minimum level name ("DEBUG", "INFO", ...)
        log_file: Optional path to a log file
        verbose: If True, include line numbers and function names
        console_output: If True, log to stdout
    """
    global _initialized

    root_logger = logging.getLogger(ROOT_LOGGER)
    numeric_level = getattr(logging, str(level).upper(), logging.INFO)
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(VERBOSE_FORMAT if verbose else DEFAULT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    _initialized = True
    root_logger.debug(f"Logging initialized - Level: {logging.getLevelName(numeric_level)}")


def get_logger(name: str) -> logging.Logger:
    """Return the `cinema.<name>` logger, initialising logging on first use."""
    if not _initialized:
        setup_logging()

    full_name = name if name.startswith(ROOT_LOGGER) else f"{ROOT_LOGGER}.{name}"
    if full_name not in _loggers:
        _loggers[full_name] = logging.getLogger(full_name)
    return _loggers[full_name]
