"""
CLI package for the SpecGen job orchestrator

Provides the command-line interface for submitting jobs and extracting
structured documents.
"""

from .main import main, cli

__all__ = ["main", "cli"]
