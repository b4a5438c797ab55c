"""
Workflow runner for the SpecGen job orchestrator

In-process stand-in for a durable workflow engine. Each task of a job runs as
its own asyncio task (three concurrent branches for a fan-out job); every step
gets retries with exponential backoff and a timeout, and reports its outcome
back to the orchestrator.
"""

import asyncio
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Mapping, Optional, Set, TYPE_CHECKING

from ..models.execution import TaskResult
from ..models.job import Job
from ..utils.logger import get_logger, set_log_context
from ..core.exceptions import (
    ExternalServiceError,
    JobOrchestratorError,
    PartialResultError,
    ValidationError
)
from .consolidator import CONSOLIDATION_TASK, Consolidator
from .task_executor import TaskExecutor

if TYPE_CHECKING:
    from ..core.orchestrator import JobOrchestrator

# Errors that no amount of retrying will fix
NON_RETRYABLE_ERRORS = (ValidationError, PartialResultError)


@dataclass
class RetryPolicy:
    """Configuration for retry behavior."""
    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        """Backoff before the next try after ``attempt`` failed attempts."""
        delay = min(
            self.initial_delay * (self.exponential_base ** (attempt - 1)),
            self.max_delay
        )
        if self.jitter:
            delay *= (0.5 + random.random() * 0.5)  # 50%-100% of calculated delay
        return delay


def error_message(error: BaseException) -> str:
    if isinstance(error, JobOrchestratorError):
        return error.message
    return str(error) or error.__class__.__name__


class BaseWorkflowRunner(ABC):
    """Executes the steps of a job and reports outcomes to the orchestrator."""

    @abstractmethod
    def start(self, job: Job, orchestrator: 'JobOrchestrator'):
        """Schedule every task of a job; must not block."""

    @abstractmethod
    def start_consolidation(
        self,
        job: Job,
        task_results: Mapping[str, TaskResult],
        orchestrator: 'JobOrchestrator'
    ):
        """Schedule the consolidation step of a fan-out job; must not block."""

    async def initialize(self):
        """Prepare the runner's collaborators."""

    async def stop(self):
        """Wait for in-flight steps."""


class LocalWorkflowRunner(BaseWorkflowRunner):
    """
    Runs workflow steps as asyncio tasks in this process.

    On the first failing branch of a fan-out job the orchestrator fails the
    job; the sibling branches either finish and have their reports discarded
    (default) or are cancelled when ``cancel_siblings_on_failure`` is set.
    """

    def __init__(
        self,
        executor: TaskExecutor,
        consolidator: Consolidator,
        retry_policy: Optional[RetryPolicy] = None,
        step_timeout: float = 300.0,
        cancel_siblings_on_failure: bool = False
    ):
        """
        Initialize LocalWorkflowRunner.

        Args:
            executor: Task executor
            consolidator: Consolidator for fan-out jobs
            retry_policy: Retry behaviour per step
            step_timeout: Seconds allowed per attempt
            cancel_siblings_on_failure: Cancel the other branches when one fails
        """
        self.executor = executor
        self.consolidator = consolidator
        self.retry_policy = retry_policy or RetryPolicy()
        self.step_timeout = step_timeout
        self.cancel_siblings_on_failure = cancel_siblings_on_failure

        self._tasks: Dict[str, Set[asyncio.Task]] = {}

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="workflow_runner")

    @classmethod
    def from_config(cls, executor: TaskExecutor, consolidator: Consolidator, workflow_config) -> "LocalWorkflowRunner":
        return cls(
            executor,
            consolidator,
            retry_policy=RetryPolicy(
                max_attempts=workflow_config.max_attempts,
                initial_delay=workflow_config.initial_delay,
                max_delay=workflow_config.max_delay,
                exponential_base=workflow_config.exponential_base,
                jitter=workflow_config.jitter
            ),
            step_timeout=workflow_config.step_timeout_seconds,
            cancel_siblings_on_failure=workflow_config.cancel_siblings_on_failure
        )

    def _spawn(self, job_id: str, coro: Awaitable, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        tasks = self._tasks.setdefault(job_id, set())
        tasks.add(task)

        def _forget(done: asyncio.Task):
            tasks.discard(done)
            if not tasks:
                self._tasks.pop(job_id, None)

        task.add_done_callback(_forget)
        return task

    def start(self, job: Job, orchestrator: 'JobOrchestrator'):
        for task_name in job.job_type.tasks:
            self._spawn(
                job.job_id,
                self._run_task(job, task_name, orchestrator),
                name=f"{job.job_id}:{task_name}"
            )

    def start_consolidation(
        self,
        job: Job,
        task_results: Mapping[str, TaskResult],
        orchestrator: 'JobOrchestrator'
    ):
        self._spawn(
            job.job_id,
            self._run_consolidation(job, dict(task_results), orchestrator),
            name=f"{job.job_id}:{CONSOLIDATION_TASK}"
        )

    async def initialize(self):
        await self.executor.blob_store.initialize()
        await self.executor.engine.initialize()
        if self.consolidator.engine is not self.executor.engine:
            await self.consolidator.engine.initialize()

    async def stop(self):
        # Finishing branches may schedule consolidation, so drain until empty
        while self._tasks:
            pending = [task for tasks in self._tasks.values() for task in tasks]
            self.logger.info("Waiting for in-flight steps", extra={"steps": len(pending)})
            await asyncio.gather(*pending, return_exceptions=True)
        await self.executor.engine.shutdown()
        if self.consolidator.engine is not self.executor.engine:
            await self.consolidator.engine.shutdown()
        await self.executor.blob_store.close()

    def _cancel_siblings(self, job_id: str):
        current = asyncio.current_task()
        for task in list(self._tasks.get(job_id, ())):
            if task is not current and not task.done():
                task.cancel()

    async def execute_with_retry(
        self,
        func: Callable[[], Awaitable],
        job_id: str,
        step: str
    ):
        """
        Run a step with a per-attempt timeout and exponential backoff between attempts.

        Args:
            func: Zero-argument coroutine factory for one attempt
            job_id: Owning job (for logging)
            step: Task or step name

        Returns:
            The step's result
        """
        policy = self.retry_policy
        attempt = 0

        while True:
            try:
                return await asyncio.wait_for(func(), timeout=self.step_timeout)

            except NON_RETRYABLE_ERRORS as e:
                self.logger.error("Non-retryable step error", extra={
                    "job_id": job_id, "task_name": step, "error": error_message(e)
                })
                raise

            except asyncio.TimeoutError as e:
                error = ExternalServiceError(
                    "workflow", f"step timed out after {self.step_timeout}s", task_name=step
                )
                error.__cause__ = e
                last_error = error

            except JobOrchestratorError as e:
                last_error = e

            attempt += 1
            self.logger.warning("Step failed", extra={
                "job_id": job_id,
                "task_name": step,
                "attempt": attempt,
                "max_attempts": policy.max_attempts,
                "error": error_message(last_error)
            })

            if attempt >= policy.max_attempts:
                self.logger.error("Step failed after all attempts", extra={
                    "job_id": job_id, "task_name": step, "attempts": attempt
                })
                raise last_error

            delay = policy.delay_for(attempt)
            self.logger.info("Retrying step", extra={"job_id": job_id, "task_name": step, "delay": round(delay, 2)})
            await asyncio.sleep(delay)

    async def _run_task(self, job: Job, task_name: str, orchestrator: 'JobOrchestrator'):
        try:
            result = await self.execute_with_retry(
                lambda: self.executor.execute(job.job_id, task_name, job.input_data),
                job.job_id,
                task_name
            )
        except asyncio.CancelledError:
            self.logger.info("Branch cancelled", extra={"job_id": job.job_id, "task_name": task_name})
            raise
        except Exception as e:
            await self._report_failure(orchestrator, job.job_id, task_name, e)
            if self.cancel_siblings_on_failure:
                self._cancel_siblings(job.job_id)
            return

        try:
            await orchestrator.report_task_result(
                job.job_id, task_name, result.content, result.metadata, result.artifact_key
            )
        except Exception:
            self.logger.exception("Reporting task result failed", extra={
                "job_id": job.job_id, "task_name": task_name
            })

    async def _run_consolidation(self, job: Job, task_results: Dict[str, TaskResult], orchestrator: 'JobOrchestrator'):
        try:
            result = await self.execute_with_retry(
                lambda: self.consolidator.consolidate(job.job_id, task_results, job.input_data),
                job.job_id,
                CONSOLIDATION_TASK
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await self._report_failure(orchestrator, job.job_id, CONSOLIDATION_TASK, e)
            return

        try:
            await orchestrator.complete_consolidation(job.job_id, result)
        except Exception:
            self.logger.exception("Reporting consolidation failed", extra={"job_id": job.job_id})

    async def _report_failure(self, orchestrator: 'JobOrchestrator', job_id: str, step: str, error: BaseException):
        try:
            await orchestrator.report_task_failure(job_id, step, error_message(error), error=error)
        except Exception:
            self.logger.exception("Reporting task failure failed", extra={"job_id": job_id, "task_name": step})
