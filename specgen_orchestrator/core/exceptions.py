"""
Exception classes for the SpecGen job orchestrator

Provides the error taxonomy used by the orchestration core: validation of
submitted jobs, failures of the generation service, incomplete fan-out result
sets, and persistence failures of the status and blob stores.
"""

from typing import Optional, Dict, Any, Iterable


class JobOrchestratorError(Exception):
    """Base exception for all job orchestrator errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details
        }


class JobNotFoundError(JobOrchestratorError):
    """Raised when a requested job cannot be found."""

    def __init__(self, job_id: str):
        super().__init__(
            f"Job {job_id} not found",
            error_code="JOB_NOT_FOUND",
            details={"job_id": job_id}
        )


class JobSubmissionError(JobOrchestratorError):
    """Raised when a validated job cannot be recorded or dispatched."""

    def __init__(self, message: str, job_id: Optional[str] = None):
        super().__init__(
            f"Job submission failed: {message}",
            error_code="JOB_SUBMISSION_ERROR",
            details={"job_id": job_id}
        )


class ValidationError(JobOrchestratorError):
    """Raised when input validation fails."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for {field}: {message}",
            error_code="VALIDATION_ERROR",
            details={"field": field, "value": str(value) if value is not None else None}
        )


class ExternalServiceError(JobOrchestratorError):
    """Raised when the generation service fails, times out or returns nothing usable."""

    def __init__(self, service: str, message: str, task_name: Optional[str] = None):
        super().__init__(
            f"{service} failed: {message}",
            error_code="EXTERNAL_SERVICE_ERROR",
            details={"service": service, "task_name": task_name}
        )
        self.service = service
        self.task_name = task_name


class PartialResultError(JobOrchestratorError):
    """Raised when consolidation is attempted with an incomplete task-result set."""

    def __init__(self, job_id: str, missing: Iterable[str], unexpected: Iterable[str] = ()):
        missing = sorted(missing)
        unexpected = sorted(unexpected)
        parts = []
        if missing:
            parts.append(f"missing {', '.join(missing)}")
        if unexpected:
            parts.append(f"unexpected {', '.join(unexpected)}")
        super().__init__(
            f"Incomplete task results for job {job_id}: {'; '.join(parts) or 'no results'}",
            error_code="PARTIAL_RESULT_ERROR",
            details={"job_id": job_id, "missing": missing, "unexpected": unexpected}
        )
        self.missing = missing
        self.unexpected = unexpected


class PersistenceError(JobOrchestratorError):
    """Raised when a status store or blob store operation fails."""

    def __init__(self, operation: str, message: str, key: Optional[str] = None):
        super().__init__(
            f"Persistence operation '{operation}' failed: {message}",
            error_code="PERSISTENCE_ERROR",
            details={"operation": operation, "key": key}
        )


class InvalidTransitionError(JobOrchestratorError):
    """Raised when the orchestrator is asked to make an illegal stage transition."""

    def __init__(self, job_id: str, current: str, target: str):
        super().__init__(
            f"Job {job_id} cannot move from {current} to {target}",
            error_code="INVALID_TRANSITION",
            details={"job_id": job_id, "current": current, "target": target}
        )


class ConfigurationError(JobOrchestratorError):
    """Raised when there's an error in configuration."""

    def __init__(self, config_key: str, message: str):
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            error_code="CONFIGURATION_ERROR",
            details={"config_key": config_key}
        )


class ErrorRegistry:
    """Counts recorded errors by class for diagnostics."""

    def __init__(self):
        self.error_counts: Dict[str, int] = {}

    def record_error(self, error: BaseException):
        """Record an error for analysis."""
        error_type = error.__class__.__name__
        self.error_counts[error_type] = self.error_counts.get(error_type, 0) + 1

    def get_error_statistics(self) -> Dict[str, Any]:
        """Get error statistics for monitoring."""
        return {
            "total_errors": sum(self.error_counts.values()),
            "error_counts": dict(self.error_counts),
            "most_common_error": max(self.error_counts.items(), key=lambda x: x[1])[0] if self.error_counts else None
        }

    def reset(self):
        self.error_counts.clear()


# Global error registry instance
error_registry = ErrorRegistry()
