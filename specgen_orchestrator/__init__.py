"""
SpecGen Job Orchestrator

Turns a natural-language requirement into a generated document: an EARS
specification, a set of user stories, or a multi-part integration plan. Text
generation is delegated to an external service; this package owns the job
state machine, the fan-out/fan-in of the integration plan, and the
deterministic extraction of a structured document from generated markdown.

Usage:
    from specgen_orchestrator import build_job_manager, load_config, JobType

    manager = build_job_manager(load_config())
    await manager.start()

    job = await manager.create_job("user-1", "Payments API", JobType.INTEGRATION_PLAN,
                                   "Integrate the billing service with the ledger")
    finished = await manager.wait_for_job(job.job_id, timeout=600)
    print(finished.status, finished.output.document.counts())

    await manager.stop()
"""

__version__ = "1.0.0"
__author__ = "SpecGen Team"
__license__ = "MIT"

# Core
from .core.orchestrator import JobOrchestrator
from .services.job_manager import JobManager
from .bootstrap import build_job_manager
from .config import OrchestratorConfig, load_config

# Data models
from .models.job import Job, JobStatus, JobStage, JobType, ContentOutput, PlanOutput
from .models.document import StructuredDocument

# Extraction
from .extraction import extract

# Utilities
from .utils.logger import setup_logger, get_logger

# Exceptions
from .core.exceptions import (
    JobOrchestratorError,
    JobNotFoundError,
    JobSubmissionError,
    ValidationError,
    ExternalServiceError,
    PartialResultError,
    PersistenceError,
    ConfigurationError
)

__all__ = [
    # Core
    "JobOrchestrator",
    "JobManager",
    "build_job_manager",
    "OrchestratorConfig",
    "load_config",

    # Models
    "Job",
    "JobStatus",
    "JobStage",
    "JobType",
    "ContentOutput",
    "PlanOutput",
    "StructuredDocument",

    # Extraction
    "extract",

    # Utilities
    "setup_logger",
    "get_logger",

    # Exceptions
    "JobOrchestratorError",
    "JobNotFoundError",
    "JobSubmissionError",
    "ValidationError",
    "ExternalServiceError",
    "PartialResultError",
    "PersistenceError",
    "ConfigurationError",

    # Package metadata
    "__version__",
    "__author__",
    "__license__"
]

# Package-level configuration
import logging
logging.getLogger(__name__).addHandler(logging.NullHandler())
