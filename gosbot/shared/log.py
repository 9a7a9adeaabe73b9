"""
gosbot Logging Configuration

Centralized logging setup for consistent formatting across the project.
Console output is colored in development; a log file is only written
when GOSBOT_LOG_FILE points somewhere.

Usage:
    from gosbot.shared.log import get_logger

    logger = get_logger(__name__)
    logger.info("Connecting...")
    logger.warning("Dropped frame", extra={"session_id": sid, "frame_code": 42})
"""

from __future__ import annotations
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional


# ========================================
#           LOGGING FORMATTERS
# ========================================

class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output"""

    # ANSI Color codes
    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'       # Reset
    }

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class SessionContextFormatter(logging.Formatter):
    """Prefixes the message with session context found in ``extra``."""

    def format(self, record: logging.LogRecord) -> str:
        context = []

        if getattr(record, 'session_id', None):
            context.append(f"session={record.session_id[:8]}...")
        if getattr(record, 'frame_code', None) is not None:
            context.append(f"code={record.frame_code}")
        if getattr(record, 'correlation_id', None):
            context.append(f"uuid={record.correlation_id[:8]}...")

        if not context:
            return super().format(record)

        original = record.msg
        record.msg = f"[{' '.join(context)}] {original}"
        try:
            return super().format(record)
        finally:
            record.msg = original


class ColoredSessionFormatter(SessionContextFormatter, ColoredFormatter):
    pass


# ========================================
#           LOGGING CONFIGURATION
# ========================================

_loggers_configured = set()

def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger for the given module.

    Args:
        name: Usually __name__ from the calling module
        level: Override log level ("DEBUG", "INFO", "WARNING", "ERROR")

    Returns:
        Configured logger instance

    Examples:
        logger = get_logger(__name__)
        logger.info("Session opened")

        # With context
        logger.debug("Resolved request", extra={
            "session_id": "0b6f...",
            "correlation_id": "9d1c...",
            "frame_code": 42,
        })
    """
    logger = logging.getLogger(name)

    # Only configure each logger once
    if name not in _loggers_configured:
        _configure_logger(logger, level)
        _loggers_configured.add(name)

    return logger


def _configure_logger(logger: logging.Logger, level: Optional[str] = None) -> None:
    """Configure a logger with appropriate handlers and formatters"""

    logger.setLevel(_get_log_level(level))

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    _add_console_handler(logger, colored=_is_development())

    log_file = os.getenv('GOSBOT_LOG_FILE')
    if log_file:
        _add_file_handler(logger, Path(log_file))

    # Prevent duplicate messages from parent loggers
    logger.propagate = False


def _get_log_level(level: Optional[str] = None) -> int:
    """Determine appropriate log level"""

    level = level or os.getenv('GOSBOT_LOG_LEVEL')
    if level:
        return getattr(logging, level.upper(), logging.INFO)

    # Default based on environment
    return logging.DEBUG if _is_development() else logging.INFO


def _is_development() -> bool:
    """Detect if we're in development mode"""
    return (
        os.getenv('PYTHON_ENV', '').lower() in ['dev', 'development'] or
        'pytest' in sys.modules
    )


def _add_console_handler(logger: logging.Logger, colored: bool = True) -> None:
    """Add console handler with appropriate formatter"""

    fmt = '[%(levelname)-8s][%(asctime)s][%(name)-5s]: %(message)s'
    handler = logging.StreamHandler(sys.stderr)

    if colored and _supports_color():
        formatter = ColoredSessionFormatter(fmt=fmt, datefmt='%H:%M:%S')
    else:
        formatter = SessionContextFormatter(fmt=fmt, datefmt='%Y-%m-%d %H:%M:%S')

    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _add_file_handler(logger: logging.Logger, log_file: Path) -> None:
    """Add file handler writing to ``log_file``"""

    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file)

    formatter = SessionContextFormatter(
        fmt='%(asctime)s | %(name)-30s | %(levelname)-8s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _supports_color() -> bool:
    """Check if terminal supports color output"""

    # stderr must be a terminal
    if not (hasattr(sys.stderr, "isatty") and sys.stderr.isatty()):
        return False

    # TERM should not be dumb
    if os.getenv("TERM", "") == "dumb":
        return False

    if sys.platform == "win32":
        # On modern Windows terminals, ANSI colors are supported
        return (
            os.getenv("ANSICON") is not None
            or os.getenv("WT_SESSION") is not None
            or os.getenv("TERM_PROGRAM") == "vscode"
        )

    return True

# ========================================
#           CONVENIENCE FUNCTIONS
# ========================================

def configure_root_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for the entire application.
    Call this once at application startup; the `gosbot` CLI does so from
    its `--log-level` option.

    Args:
        level: Root log level ("DEBUG", "INFO", "WARNING", "ERROR");
            GOSBOT_LOG_LEVEL or the environment default when omitted
    """
    root_logger = logging.getLogger()
    _configure_logger(root_logger, level)

    # Module loggers are configured at import time and do not propagate
    for name in _loggers_configured:
        logging.getLogger(name).setLevel(root_logger.level)


def log_frame(logger: logging.Logger, level: str, message: str,
              frame: Any = None,
              **context: Any) -> None:
    """
    Log a protocol frame with structured context.

    Args:
        logger: Logger instance
        level: Log level ("debug", "info", "warning", "error")
        message: Log message
        frame: Decoded ``Frame`` for automatic context extraction
        **context: Additional context fields (session_id, correlation_id, ...)

    Example:
        log_frame(logger, "debug", "Inbound frame", frame=frame,
                  session_id=self.session_id)
    """

    extra_context = {}

    if frame is not None:
        extra_context['frame_code'] = frame.code
        correlation_id = frame.correlation_id
        if correlation_id:
            extra_context['correlation_id'] = correlation_id

    extra_context.update(context)

    log_func = getattr(logger, level.lower())
    log_func(message, extra=extra_context)
