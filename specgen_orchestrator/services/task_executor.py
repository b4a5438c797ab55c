"""
Task executor for the SpecGen job orchestrator

Runs one named generation task: renders the task's prompt, calls the
generation engine once, and persists the raw text as the task's artifact.
Retries and timeouts belong to the workflow runner, not here.
"""

from typing import Dict, Optional

from ..engines.base import BaseGenerationEngine
from ..models.execution import TaskResult
from ..storage.blob_store import BaseBlobStore, artifact_key
from ..utils.logger import get_logger, set_log_context
from ..core.exceptions import ExternalServiceError, ValidationError
from .prompts import TASK_TEMPLATES, TaskTemplate

MARKDOWN = "text/markdown"


class TaskExecutor:
    """
    Executes generation tasks from the task template table.

    One executor serves every task name; the table decides prompt, system
    instruction and artifact name.
    """

    def __init__(
        self,
        engine: BaseGenerationEngine,
        blob_store: BaseBlobStore,
        templates: Optional[Dict[str, TaskTemplate]] = None
    ):
        """
        Initialize TaskExecutor.

        Args:
            engine: Generation engine
            blob_store: Artifact store for the raw output
            templates: Task table, defaults to TASK_TEMPLATES
        """
        self.engine = engine
        self.blob_store = blob_store
        self.templates = templates if templates is not None else TASK_TEMPLATES

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="task_executor")

    def template_for(self, task_name: str) -> TaskTemplate:
        template = self.templates.get(task_name)
        if template is None:
            raise ValidationError("task_name", "unknown task", task_name)
        return template

    async def execute(self, job_id: str, task_name: str, input_data: str) -> TaskResult:
        """
        Execute one task for a job.

        Args:
            job_id: Owning job
            task_name: Name from the task table
            input_data: Caller's requirement text

        Returns:
            TaskResult with the generated content and its artifact key

        Raises:
            ValidationError: If the task name is unknown
            ExternalServiceError: On service error, timeout or empty response
            PersistenceError: If the artifact cannot be stored
        """
        template = self.template_for(task_name)

        self.logger.info("Executing task", extra={"job_id": job_id, "task_name": task_name})

        try:
            response = await self.engine.generate(
                template.render(input_data),
                template.system_instruction
            )
        except ExternalServiceError as e:
            e.task_name = task_name
            e.details["task_name"] = task_name
            raise

        if not response.content or not response.content.strip():
            raise ExternalServiceError(self.engine.engine_name, "empty response", task_name=task_name)

        key = await self.blob_store.put(
            artifact_key(job_id, template.artifact_name),
            response.content,
            MARKDOWN
        )

        metadata = dict(response.metadata)
        metadata.setdefault("task_name", task_name)
        metadata["usage"] = dict(response.usage)

        self.logger.info("Task completed", extra={
            "job_id": job_id,
            "task_name": task_name,
            "artifact_key": key,
            "content_chars": len(response.content)
        })

        return TaskResult(
            job_id=job_id,
            task_name=task_name,
            content=response.content,
            metadata=metadata,
            artifact_key=key
        )
