"""
Consolidator for fan-out jobs

Synthesizes the diagrams, code and structure task results into one
integration plan, extracts the structured document from it, and stores both
the raw and the structured artifacts.
"""

import json
from datetime import datetime, timezone
from typing import Mapping, Optional, Tuple

from ..engines.base import BaseGenerationEngine
from ..extraction import extract
from ..models.execution import ConsolidationResult, TaskResult
from ..models.job import CONSOLIDATION_TASK, FAN_OUT_TASKS
from ..storage.blob_store import BaseBlobStore, artifact_key
from ..utils.logger import get_logger, set_log_context
from ..core.exceptions import ExternalServiceError, PartialResultError
from .prompts import CONSOLIDATION_SYSTEM_INSTRUCTION, render_consolidation_prompt

CONSOLIDATED_ARTIFACT = "integration-plan.md"
STRUCTURED_ARTIFACT = "integration-plan-structured.json"
DOCUMENT_VERSION = "2.0"

REQUIRED_TASKS = frozenset(FAN_OUT_TASKS)


class Consolidator:
    """Merges fan-out task results into a structured integration plan."""

    def __init__(self, engine: BaseGenerationEngine, blob_store: BaseBlobStore):
        """
        Initialize Consolidator.

        Args:
            engine: Generation engine used for the synthesis call
            blob_store: Artifact store
        """
        self.engine = engine
        self.blob_store = blob_store

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="consolidator")

    @staticmethod
    def check_complete(job_id: str, task_results: Mapping[str, TaskResult]):
        """Raise PartialResultError unless exactly the required tasks are present."""
        present = set(task_results)
        missing = REQUIRED_TASKS - present
        unexpected = present - REQUIRED_TASKS
        if missing or unexpected:
            raise PartialResultError(job_id, missing, unexpected)

    async def consolidate(
        self,
        job_id: str,
        task_results: Mapping[str, TaskResult],
        original_input: str
    ) -> ConsolidationResult:
        """
        Consolidate the fan-out results of a job.

        Args:
            job_id: Owning job
            task_results: Task name -> result; must hold exactly diagrams, code and structure
            original_input: Caller's requirement text

        Returns:
            ConsolidationResult with the structured document and artifact keys

        Raises:
            PartialResultError: If the result set is incomplete (no service call is made)
            ExternalServiceError: On service error, timeout or empty response
            PersistenceError: If an artifact cannot be stored

        A plan already stored for the job is reused instead of calling the
        generation service again.
        """
        self.check_complete(job_id, task_results)

        consolidated_key = artifact_key(job_id, CONSOLIDATED_ARTIFACT)

        # Write-once keys: a plan stored by an earlier attempt wins
        stored = await self.blob_store.get(consolidated_key)
        if stored is not None:
            self.logger.info("Reusing stored integration plan", extra={"job_id": job_id, "key": consolidated_key})
            content = stored.content
            model_id = None
        else:
            content, model_id = await self._generate(job_id, task_results, original_input)
            await self.blob_store.put(consolidated_key, content, "text/markdown")

        document = extract(content)

        structured_key = await self.blob_store.put(
            artifact_key(job_id, STRUCTURED_ARTIFACT),
            json.dumps(document.to_dict(), indent=2, ensure_ascii=False),
            "application/json"
        )

        metadata = {
            "model_id": model_id,
            "structured_data_available": not document.is_empty(),
            "structured_key": structured_key,
            "consolidated_key": consolidated_key,
            "task_models": {name: result.model_id for name, result in sorted(task_results.items())},
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "version": DOCUMENT_VERSION,
            "counts": document.counts()
        }

        self.logger.info("Consolidation completed", extra={"job_id": job_id, **document.counts()})

        return ConsolidationResult(
            job_id=job_id,
            document=document,
            content=content,
            consolidated_key=consolidated_key,
            structured_key=structured_key,
            metadata=metadata
        )

    async def _generate(
        self,
        job_id: str,
        task_results: Mapping[str, TaskResult],
        original_input: str
    ) -> Tuple[str, Optional[str]]:
        """Run the synthesis call; returns the plan text and the model that wrote it."""
        prompt = render_consolidation_prompt(
            original_input,
            {name: result.content for name, result in task_results.items()}
        )

        self.logger.info("Consolidating task results", extra={"job_id": job_id})

        try:
            response = await self.engine.generate(prompt, CONSOLIDATION_SYSTEM_INSTRUCTION)
        except ExternalServiceError as e:
            e.task_name = CONSOLIDATION_TASK
            e.details["task_name"] = CONSOLIDATION_TASK
            raise

        content = response.content
        if not content or not content.strip():
            raise ExternalServiceError(self.engine.engine_name, "empty response", task_name=CONSOLIDATION_TASK)

        return content, response.metadata.get("model_id")
