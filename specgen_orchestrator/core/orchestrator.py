"""
JobOrchestrator: the job state machine

Drives a job from INITIATED through DISPATCHED and PROCESSING (single-stage)
or FAN_OUT and CONSOLIDATING (fan-out) to COMPLETED or FAILED. Task outcomes
arrive through ``report_task_result`` / ``report_task_failure``; reports are
idempotent per (job, task) and anything arriving after the terminal transition
is discarded.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Dict, Optional, Any, Set, TYPE_CHECKING

from ..models.execution import ConsolidationResult, TaskResult
from ..models.job import (
    CONSOLIDATION_TASK,
    ContentOutput,
    Job,
    JobStage,
    JobStatus,
    PlanOutput,
    can_transition_to,
    utcnow
)
from ..storage.status_store import BaseStatusStore
from ..utils.logger import get_logger, set_log_context
from .exceptions import InvalidTransitionError, PersistenceError, error_registry

if TYPE_CHECKING:
    from ..services.notification_service import BaseNotifier
    from ..services.workflow_runner import BaseWorkflowRunner


@dataclass
class FanInState:
    """In-flight bookkeeping of one job."""

    job_id: str
    job: Job
    stage: JobStage
    results: Dict[str, TaskResult] = field(default_factory=dict)
    # Tasks recorded as completed before this process picked the job up
    persisted: Set[str] = field(default_factory=set)

    @property
    def expected_tasks(self):
        return self.job.job_type.tasks

    @property
    def reported(self) -> Set[str]:
        return set(self.results) | self.persisted

    @property
    def all_reported(self) -> bool:
        return self.reported == set(self.expected_tasks)


@dataclass
class JobLock:
    """Per-job mutex and the number of coroutines holding or awaiting it."""

    mutex: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class JobOrchestrator:
    """
    Job state machine.

    Per-job fan-in state lives in a keyed map guarded by one asyncio.Lock per
    job. The terminal write is a conditional update on ``status = PENDING`` so
    a job reaches its terminal state exactly once. Once that write is persisted
    the job is dropped from memory; later reports rebuild it from the store and
    are rejected by its terminal stage.
    """

    def __init__(
        self,
        status_store: BaseStatusStore,
        runner: 'BaseWorkflowRunner',
        notifier: Optional['BaseNotifier'] = None
    ):
        """
        Initialize the JobOrchestrator.

        Args:
            status_store: Job record store
            runner: Workflow runner executing task and consolidation steps
            notifier: Optional notifier fired after terminal transitions
        """
        self.status_store = status_store
        self.runner = runner
        self.notifier = notifier

        self._states: Dict[str, FanInState] = {}
        self._locks: Dict[str, JobLock] = {}
        self._done_events: Dict[str, asyncio.Event] = {}
        self._background: Set[asyncio.Task] = set()

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="orchestrator")

    async def start(self):
        """Start the orchestrator."""
        self.logger.info("Starting JobOrchestrator", extra={
            "runner": self.runner.__class__.__name__,
            "notifier": self.notifier.__class__.__name__ if self.notifier else None
        })
        await self.runner.initialize()

    async def stop(self):
        """Stop the orchestrator, waiting for in-flight work and notifications."""
        self.logger.info("Stopping JobOrchestrator")
        await self.runner.stop()
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
        if self.notifier is not None:
            await self.notifier.close()

    @asynccontextmanager
    async def _locked(self, job_id: str):
        """Hold the job's mutex; the mutex is dropped with the last user of a job no longer in memory."""
        lock = self._locks.get(job_id)
        if lock is None:
            lock = self._locks[job_id] = JobLock()
        lock.users += 1
        try:
            async with lock.mutex:
                yield
        finally:
            lock.users -= 1
            if not lock.users and job_id not in self._states:
                del self._locks[job_id]

    def _event_for(self, job_id: str) -> asyncio.Event:
        return self._done_events.setdefault(job_id, asyncio.Event())

    def _advance(self, state: FanInState, target: JobStage):
        """Move the in-memory stage, rejecting illegal edges."""
        if not can_transition_to(state.stage, target):
            raise InvalidTransitionError(state.job_id, state.stage.value, target.value)
        state.stage = target

    async def _write(self, job_id: str, fields: Dict[str, Any], operation: str) -> bool:
        """Conditional update on a PENDING job; store failures are logged, not raised."""
        try:
            return await self.status_store.update(job_id, fields, expected_status=JobStatus.PENDING)
        except PersistenceError as e:
            error_registry.record_error(e)
            self.logger.error("Status update failed", extra={
                "job_id": job_id,
                "operation": operation,
                "error": e.message
            })
            return False

    async def _state_for(self, job_id: str) -> Optional[FanInState]:
        """Fan-in state of a job, rebuilt from the store for jobs this process has not seen."""
        state = self._states.get(job_id)
        if state is not None:
            return state

        job = await self.status_store.get(job_id)
        if job is None:
            return None

        state = FanInState(job_id=job_id, job=job, stage=job.stage, persisted=set(job.completed_tasks))
        if job.is_terminal:
            return state

        if job.stage in (JobStage.INITIATED, JobStage.DISPATCHED):
            state.stage = JobStage.FAN_OUT if job.job_type.is_fan_out else JobStage.PROCESSING
        self._states[job_id] = state
        return state

    async def dispatch(self, job: Job):
        """
        Hand a freshly created job to the workflow runner.

        Returns as soon as the work is scheduled.
        """
        state = FanInState(job_id=job.job_id, job=job, stage=job.stage)
        self._event_for(job.job_id)

        async with self._locked(job.job_id):
            self._states[job.job_id] = state

            self._advance(state, JobStage.DISPATCHED)
            await self._write(job.job_id, {"stage": JobStage.DISPATCHED}, "dispatch")

            working_stage = JobStage.FAN_OUT if job.job_type.is_fan_out else JobStage.PROCESSING
            self._advance(state, working_stage)
            await self._write(job.job_id, {"stage": working_stage}, "dispatch")

            self.logger.info("Job dispatched", extra={
                "job_id": job.job_id,
                "job_type": job.job_type.value,
                "stage": working_stage.value,
                "tasks": list(job.job_type.tasks)
            })

            try:
                self.runner.start(job, self)
            except Exception as e:
                self.logger.exception("Failed to schedule job", extra={"job_id": job.job_id})
                await self._finalize(state, JobStatus.FAILED, error_message=f"Failed to schedule job: {e}", error=e)

    async def report_task_result(
        self,
        job_id: str,
        task_name: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
        artifact_key: Optional[str] = None
    ) -> bool:
        """
        Record a successful task.

        Returns:
            True if the report was applied, False if it was a duplicate, late or unknown
        """
        async with self._locked(job_id):
            state = await self._state_for(job_id)
            if state is None:
                self.logger.warning("Result for unknown job ignored", extra={"job_id": job_id, "task_name": task_name})
                return False

            if state.stage not in (JobStage.PROCESSING, JobStage.FAN_OUT):
                self.logger.info("Late task result discarded", extra={
                    "job_id": job_id, "task_name": task_name, "stage": state.stage.value
                })
                return False
            if task_name not in state.expected_tasks:
                self.logger.warning("Result for unexpected task ignored", extra={"job_id": job_id, "task_name": task_name})
                return False
            if task_name in state.reported:
                self.logger.info("Duplicate task result ignored", extra={"job_id": job_id, "task_name": task_name})
                return False

            state.results[task_name] = TaskResult(
                job_id=job_id,
                task_name=task_name,
                content=content,
                metadata=dict(metadata or {}),
                artifact_key=artifact_key
            )
            self.logger.info("Task result recorded", extra={
                "job_id": job_id,
                "task_name": task_name,
                "reported": len(state.reported),
                "expected": len(state.expected_tasks)
            })

            if state.stage == JobStage.PROCESSING:
                await self._finalize(
                    state,
                    JobStatus.COMPLETED,
                    output=ContentOutput(content=content, metadata=dict(metadata or {})),
                    artifact_ref=artifact_key
                )
                return True

            await self._write(job_id, {"completed_tasks": sorted(state.reported)}, "record_task")

            if state.all_reported:
                self._advance(state, JobStage.CONSOLIDATING)
                await self._write(job_id, {"stage": JobStage.CONSOLIDATING}, "consolidating")
                self.logger.info("All tasks reported, consolidating", extra={"job_id": job_id})
                try:
                    self.runner.start_consolidation(state.job, dict(state.results), self)
                except Exception as e:
                    self.logger.exception("Failed to schedule consolidation", extra={"job_id": job_id})
                    await self._finalize(
                        state, JobStatus.FAILED, error_message=f"Failed to schedule consolidation: {e}", error=e
                    )
            return True

    async def report_task_failure(
        self,
        job_id: str,
        task_name: str,
        error_message: str,
        error: Optional[BaseException] = None
    ) -> bool:
        """
        Record a failed task or consolidation; the job fails on the first failure.

        Returns:
            True if the job moved to FAILED, False if the report was late or unknown
        """
        async with self._locked(job_id):
            state = await self._state_for(job_id)
            if state is None:
                self.logger.warning("Failure for unknown job ignored", extra={"job_id": job_id, "task_name": task_name})
                return False
            if state.stage.is_terminal:
                self.logger.info("Late task failure discarded", extra={
                    "job_id": job_id, "task_name": task_name, "stage": state.stage.value
                })
                return False
            if state.stage == JobStage.CONSOLIDATING:
                expected = task_name == CONSOLIDATION_TASK
            else:
                expected = task_name in state.expected_tasks
            if not expected:
                self.logger.warning("Failure for unexpected task ignored", extra={
                    "job_id": job_id, "task_name": task_name, "stage": state.stage.value
                })
                return False
            if task_name in state.reported:
                self.logger.info("Failure for already reported task ignored", extra={
                    "job_id": job_id, "task_name": task_name
                })
                return False

            self.logger.warning("Task failed, failing job", extra={
                "job_id": job_id,
                "task_name": task_name,
                "stage": state.stage.value,
                "error": error_message
            })
            await self._finalize(state, JobStatus.FAILED, error_message=error_message, error=error)
            return True

    async def complete_consolidation(self, job_id: str, result: ConsolidationResult) -> bool:
        """Record the consolidated plan and complete the job."""
        async with self._locked(job_id):
            state = await self._state_for(job_id)
            if state is None or state.stage != JobStage.CONSOLIDATING:
                self.logger.info("Consolidation result discarded", extra={
                    "job_id": job_id, "stage": state.stage.value if state else None
                })
                return False

            await self._finalize(
                state,
                JobStatus.COMPLETED,
                output=PlanOutput(
                    document=result.document,
                    consolidated_content=result.content,
                    metadata=dict(result.metadata)
                ),
                artifact_ref=result.consolidated_key
            )
            return True

    async def _finalize(
        self,
        state: FanInState,
        status: JobStatus,
        output=None,
        error_message: Optional[str] = None,
        artifact_ref: Optional[str] = None,
        error: Optional[BaseException] = None
    ):
        """Terminal transition; must be called with the job's lock held."""
        target = JobStage.COMPLETED if status == JobStatus.COMPLETED else JobStage.FAILED
        self._advance(state, target)

        completed_at = utcnow()
        actual_duration = int(round((completed_at - state.job.created_at).total_seconds()))

        fields = {
            "status": status,
            "stage": target,
            "completed_at": completed_at,
            "actual_duration": actual_duration,
            "completed_tasks": sorted(state.reported),
        }
        if status == JobStatus.COMPLETED:
            fields["output"] = output
            fields["artifact_ref"] = artifact_ref
        else:
            fields["error_message"] = error_message or "Job failed"
            if error is not None:
                error_registry.record_error(error)

        applied = await self._write(state.job_id, fields, "finalize")

        # Reports are rejected by stage from here on, so the contents can go
        state.results.clear()

        self.logger.info("Job finished", extra={
            "job_id": state.job_id,
            "status": status.value,
            "actual_duration": actual_duration,
            "persisted": applied
        })

        if applied:
            self._states.pop(state.job_id, None)
            event = self._done_events.pop(state.job_id, None)
        else:
            # Not persisted: the in-memory terminal stage keeps rejecting reports
            event = self._event_for(state.job_id)
        if event is not None:
            event.set()

        if applied and self.notifier is not None:
            task = asyncio.create_task(self._notify(state.job_id))
            self._background.add(task)
            task.add_done_callback(self._background.discard)

    async def _notify(self, job_id: str):
        try:
            job = await self.status_store.get(job_id)
            if job is not None:
                await self.notifier.notify(job)
        except Exception:
            self.logger.exception("Notification failed", extra={"job_id": job_id})

    async def wait_for_job(self, job_id: str, timeout: Optional[float] = None) -> bool:
        """
        Wait until a job dispatched by this orchestrator reaches a terminal state.

        Returns:
            True if the job is terminal, False on timeout
        """
        event = self._event_for(job_id)
        try:
            if not event.is_set():
                job = await self.status_store.get(job_id)
                if job is not None and job.is_terminal:
                    event.set()
            await asyncio.wait_for(event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        finally:
            if job_id not in self._states and self._done_events.get(job_id) is event:
                del self._done_events[job_id]
        return True
