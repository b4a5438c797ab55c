"""
Utilities package for the SpecGen job orchestrator

Contains logging configuration and context helpers.
"""

from .logger import setup_logger, configure_logging, get_logger, set_log_context, LoggerContext

__all__ = [
    "setup_logger",
    "configure_logging",
    "get_logger",
    "set_log_context",
    "LoggerContext"
]
