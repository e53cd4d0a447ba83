"""
Logging configuration for the ``hollow`` package.

Console output is colored with colorama. Records emitted while an invocation
is running carry the hollow function's name (``%(hollow_function)s``) so
interleaved concurrent invocations stay readable.
"""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional

import colorama
from colorama import Fore, Style

colorama.init(autoreset=True)

ROOT_LOGGER_NAME = "hollow"
DEFAULT_LOG_FILE = "logs/hollow.log"

_current_function: ContextVar[str] = ContextVar("hollow_function", default="-")


class LogLevel(str, Enum):
    """Log level enumeration."""

    MINIMAL = "minimal"  # Warnings and failed invocations only
    NORMAL = "normal"  # INFO and above
    DETAILED = "detailed"  # Adds dispatch, cache and coalescing debug lines
    FULL = "full"  # DEBUG, plus third-party HTTP/asyncio loggers


_LEVELS = {
    LogLevel.MINIMAL: logging.WARNING,
    LogLevel.NORMAL: logging.INFO,
    LogLevel.DETAILED: logging.DEBUG,
    LogLevel.FULL: logging.DEBUG,
}

# Chatty dependencies, silenced below FULL
_THIRD_PARTY_LOGGERS = ("aiohttp", "asyncio")


@contextmanager
def invocation_context(function_name: str) -> Iterator[None]:
    """Tag log records emitted inside the block with *function_name*."""
    token = _current_function.set(function_name)
    try:
        yield
    finally:
        _current_function.reset(token)


def current_function() -> str:
    return _current_function.get()


class InvocationContextFilter(logging.Filter):
    """Adds ``hollow_function`` to every record passing through a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "hollow_function"):
            record.hollow_function = _current_function.get()
        return True


class ColoredFormatter(logging.Formatter):
    """Colored log formatter."""

    COLORS = {
        "DEBUG": Fore.CYAN,
        "INFO": Fore.GREEN,
        "WARNING": Fore.YELLOW,
        "ERROR": Fore.RED,
        "CRITICAL": Fore.RED + Style.BRIGHT,
    }

    def format(self, record):
        """Color the level name for this handler only; other handlers see the plain record."""
        original = record.levelname
        record.levelname = f"{self.COLORS.get(original, '')}{original}{Style.RESET_ALL}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def _resolve_level(level: LogLevel, verbose: bool, debug: bool) -> int:
    if debug or verbose:
        return logging.DEBUG
    return _LEVELS.get(LogLevel(level), logging.INFO)


def setup_logging(
    level: LogLevel = LogLevel.NORMAL,
    log_to_file: bool = False,
    log_file: Optional[str] = None,
    verbose: bool = False,
    debug: bool = False,
) -> logging.Logger:
    """
    Configure the ``hollow`` logger hierarchy.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Log level
        log_to_file: Also write every record (DEBUG and up) to a file
        log_file: Log file path, defaults to logs/hollow.log
        verbose: Verbose mode flag
        debug: Debug mode flag

    Returns:
        The package root logger
    """
    log_level = _resolve_level(level, verbose, debug)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_to_file else log_level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    context_filter = InvocationContextFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    if debug or verbose:
        console_format = ColoredFormatter(
            "%(asctime)s | %(levelname)-8s | %(hollow_function)s | %(name)s | %(message)s",
            datefmt="%H:%M:%S",
        )
    else:
        console_format = ColoredFormatter("%(levelname)-8s | %(hollow_function)s | %(message)s")
    console_handler.setFormatter(console_format)
    console_handler.addFilter(context_filter)
    logger.addHandler(console_handler)

    if log_to_file:
        log_path = Path(log_file or DEFAULT_LOG_FILE)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(hollow_function)s | %(name)s:%(lineno)d | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        file_handler.addFilter(context_filter)
        logger.addHandler(file_handler)

    third_party_level = logging.DEBUG if level == LogLevel.FULL else logging.WARNING
    for name in _THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get logger for a module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance under the ``hollow`` hierarchy
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
