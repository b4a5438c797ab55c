"""
JobManager service for the SpecGen job orchestrator

Public facade of the core: validates and records new jobs, hands them to the
orchestrator, answers status queries, and accepts task reports.
"""

from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

from ..models.job import ESTIMATED_DURATIONS, Job, JobStage, JobStatus, JobType, parse_job_type
from ..storage.status_store import BaseStatusStore
from ..utils.logger import get_logger, set_log_context
from ..core.exceptions import (
    JobNotFoundError,
    JobSubmissionError,
    PersistenceError,
    ValidationError
)
from ..core.orchestrator import JobOrchestrator

DEFAULT_MAX_INPUT_CHARS = 20000


class JobManager:
    """
    Manages job lifecycle from the caller's side.

    Provides capabilities for:
    - Job creation with synchronous validation
    - Job status and per-user listings
    - Task result and failure reporting
    """

    def __init__(
        self,
        status_store: BaseStatusStore,
        orchestrator: JobOrchestrator,
        max_input_chars: int = DEFAULT_MAX_INPUT_CHARS
    ):
        """
        Initialize JobManager.

        Args:
            status_store: Job record store
            orchestrator: Job state machine
            max_input_chars: Upper bound on the requirement text length
        """
        self.status_store = status_store
        self.orchestrator = orchestrator
        self.max_input_chars = max_input_chars

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="job_manager")

    async def start(self):
        """Start the job manager."""
        self.logger.info("Starting JobManager", extra={"max_input_chars": self.max_input_chars})
        await self.status_store.initialize()
        await self.orchestrator.start()

    async def stop(self):
        """Stop the job manager, waiting for in-flight jobs."""
        self.logger.info("Stopping JobManager")
        await self.orchestrator.stop()
        await self.status_store.close()

    def _validate(self, user_id: Any, name: Any, job_type: Any, input_data: Any) -> JobType:
        try:
            resolved_type = parse_job_type(job_type)
        except ValueError:
            raise ValidationError("job_type", "unknown job type", job_type)

        if not isinstance(user_id, str) or not user_id.strip():
            raise ValidationError("user_id", "must be a non-empty string", user_id)
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("name", "must be a non-empty string", name)
        if not isinstance(input_data, str) or not input_data.strip():
            raise ValidationError("input_data", "must be non-empty text")
        if len(input_data) > self.max_input_chars:
            raise ValidationError(
                "input_data", f"exceeds {self.max_input_chars} characters", len(input_data)
            )
        return resolved_type

    async def create_job(
        self,
        user_id: str,
        name: str,
        job_type: Union[JobType, str],
        input_data: str
    ) -> Job:
        """
        Create a job and start processing it.

        Args:
            user_id: Owner
            name: Display name
            job_type: JobType or its string value
            input_data: Requirement text

        Returns:
            The PENDING job

        Raises:
            ValidationError: Before any record is created
            JobSubmissionError: If the record cannot be stored
        """
        resolved_type = self._validate(user_id, name, job_type, input_data)

        job = Job(
            job_id=str(uuid4()),
            user_id=user_id,
            job_name=name.strip(),
            job_type=resolved_type,
            input_data=input_data,
            status=JobStatus.PENDING,
            stage=JobStage.INITIATED,
            estimated_duration=ESTIMATED_DURATIONS[resolved_type]
        )

        self.logger.info("Creating job", extra={
            "job_id": job.job_id,
            "user_id": user_id,
            "job_type": resolved_type.value,
            "input_chars": len(input_data)
        })

        try:
            await self.status_store.put(job)
        except PersistenceError as e:
            self.logger.error("Failed to record job", extra={"job_id": job.job_id, "error": e.message})
            raise JobSubmissionError(e.message, job_id=job.job_id) from e

        await self.orchestrator.dispatch(job)
        return job

    async def get_job(self, job_id: str) -> Job:
        """
        Get a job by ID.

        Raises:
            JobNotFoundError: If the job does not exist
        """
        job = await self.status_store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def list_jobs_for_user(self, user_id: str) -> List[Job]:
        """Jobs of a user, most recent first."""
        return await self.status_store.list_for_user(user_id)

    async def report_task_result(
        self,
        job_id: str,
        task_name: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
        artifact_key: Optional[str] = None
    ) -> bool:
        """
        Report a finished task.

        Returns:
            True if applied, False if ignored as a duplicate or late report
        """
        return await self.orchestrator.report_task_result(job_id, task_name, content, metadata, artifact_key)

    async def report_task_failure(self, job_id: str, task_name: str, error_message: str) -> bool:
        """Report a failed task; fails the job unless it is already terminal."""
        return await self.orchestrator.report_task_failure(job_id, task_name, error_message)

    async def wait_for_job(self, job_id: str, timeout: Optional[float] = None) -> Job:
        """
        Wait for a job dispatched in this process to finish.

        Returns:
            The job record, terminal unless the timeout expired first
        """
        await self.orchestrator.wait_for_job(job_id, timeout)
        return await self.get_job(job_id)
