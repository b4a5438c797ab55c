"""
Logging utilities for the SpecGen job orchestrator

Provides structured logging configuration and per-component log context for
the orchestration core.
"""

import logging
import sys
import json
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from pathlib import Path

PACKAGE_LOGGER = "specgen_orchestrator"

_RESERVED_ATTRIBUTES = frozenset({
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'message', 'exc_info', 'exc_text',
    'stack_info', 'taskName'
})


class StructuredFormatter(logging.Formatter):
    """
    Custom formatter for structured JSON logging.

    Formats log records as JSON with the record's context fields (job id,
    task name, component) under ``extra``.
    """

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info)
            }

        if self.include_extra:
            extra_fields = {
                key: value for key, value in record.__dict__.items()
                if key not in _RESERVED_ATTRIBUTES
            }
            if extra_fields:
                log_entry["extra"] = extra_fields

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class JobContextFilter(logging.Filter):
    """
    Filter to add job context to log records.

    Stamps every record passing through with the context set on it
    (component, job_id, task_name, ...).
    """

    def __init__(self):
        super().__init__()
        self.context = {}

    def set_context(self, **kwargs):
        """Set context variables for logging."""
        self.context.update(kwargs)

    def clear_context(self):
        """Clear all context variables."""
        self.context.clear()

    def filter(self, record: logging.LogRecord) -> bool:
        """Add context to log record."""
        for key, value in self.context.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def _build_formatter(structured: bool) -> logging.Formatter:
    if structured:
        return StructuredFormatter()
    return logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')


def setup_logger(
    name: str,
    level: str = "INFO",
    structured: bool = True,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up a logger with appropriate configuration.

    Args:
        name: Logger name
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        structured: Whether to use structured JSON logging
        log_file: Optional log file path

    Returns:
        Configured logger instance
    """
    logger = get_logger(name)
    log_level = getattr(logging, level.upper())
    logger.setLevel(log_level)

    # Replace handlers so reconfiguration (e.g. --log-level) takes effect
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(_build_formatter(structured))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(_build_formatter(structured))
        logger.addHandler(file_handler)

    return logger


def configure_logging(logging_config) -> logging.Logger:
    """
    Configure the package logger from a LoggingConfig.

    Args:
        logging_config: LoggingConfig with level, structured and log_file

    Returns:
        The package logger
    """
    return setup_logger(
        PACKAGE_LOGGER,
        level=logging_config.level,
        structured=logging_config.structured,
        log_file=logging_config.log_file
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with a context filter attached.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    if not hasattr(logger, 'context_filter'):
        context_filter = JobContextFilter()
        logger.addFilter(context_filter)
        logger.context_filter = context_filter
    return logger


def set_log_context(logger: logging.Logger, **kwargs):
    """
    Set context variables for a logger.

    Args:
        logger: Logger instance
        **kwargs: Context variables to set
    """
    if hasattr(logger, 'context_filter'):
        logger.context_filter.set_context(**kwargs)


def clear_log_context(logger: logging.Logger):
    """
    Clear context variables for a logger.

    Args:
        logger: Logger instance
    """
    if hasattr(logger, 'context_filter'):
        logger.context_filter.clear_context()


class LoggerContext:
    """
    Context manager for temporary log context.

    Automatically sets and restores log context variables.
    """

    def __init__(self, logger: logging.Logger, **kwargs):
        self.logger = logger
        self.context = kwargs
        self.old_context = {}

    def __enter__(self):
        """Set temporary context."""
        if hasattr(self.logger, 'context_filter'):
            self.old_context = self.logger.context_filter.context.copy()
            self.logger.context_filter.set_context(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Restore old context."""
        if hasattr(self.logger, 'context_filter'):
            self.logger.context_filter.context = self.old_context
