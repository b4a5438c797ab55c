"""
Core package for the SpecGen job orchestrator

Contains the job state machine and the error taxonomy.
"""

from .orchestrator import JobOrchestrator
from .exceptions import (
    JobOrchestratorError,
    JobNotFoundError,
    JobSubmissionError,
    ValidationError,
    ExternalServiceError,
    PartialResultError,
    PersistenceError,
    InvalidTransitionError,
    ConfigurationError,
    error_registry
)

__all__ = [
    "JobOrchestrator",
    "JobOrchestratorError",
    "JobNotFoundError",
    "JobSubmissionError",
    "ValidationError",
    "ExternalServiceError",
    "PartialResultError",
    "PersistenceError",
    "InvalidTransitionError",
    "ConfigurationError",
    "error_registry"
]
