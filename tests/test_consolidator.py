"""
Tests for the Consolidator.
"""

import json

import pytest

from specgen_orchestrator.core.exceptions import ExternalServiceError, PartialResultError
from specgen_orchestrator.engines.fake_engine import (
    CODE_TEMPLATES,
    DIAGRAMS,
    INTEGRATION_PLAN,
    PROJECT_STRUCTURE,
    FakeGenerationEngine
)
from specgen_orchestrator.models.execution import TaskResult
from specgen_orchestrator.services.consolidator import Consolidator

REQUIREMENTS = "Connect the billing system to the order service."


def task_results(*names):
    contents = {"diagrams": DIAGRAMS, "code": CODE_TEMPLATES, "structure": PROJECT_STRUCTURE}
    return {
        name: TaskResult(
            job_id="job-1",
            task_name=name,
            content=contents.get(name, "# Extra"),
            metadata={"model_id": "fake-model"},
            artifact_key=f"jobs/job-1/{name}.md"
        )
        for name in names
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("names", [
    ("diagrams", "code"),
    ("diagrams", "code", "structure", "poetry"),
    (),
])
async def test_incomplete_results_fail_before_any_call(fake_engine, blob_store, names):
    consolidator = Consolidator(fake_engine, blob_store)

    with pytest.raises(PartialResultError):
        await consolidator.consolidate("job-1", task_results(*names), REQUIREMENTS)

    assert fake_engine.call_count == 0
    assert blob_store.keys() == []


@pytest.mark.asyncio
async def test_consolidate_stores_both_artifacts(fake_engine, blob_store):
    consolidator = Consolidator(fake_engine, blob_store)

    result = await consolidator.consolidate(
        "job-1", task_results("diagrams", "code", "structure"), REQUIREMENTS
    )

    assert result.content == INTEGRATION_PLAN
    assert result.consolidated_key == "jobs/job-1/integration-plan.md"
    assert result.structured_key == "jobs/job-1/integration-plan-structured.json"
    assert len(result.document.sections) == 11

    structured = await blob_store.get(result.structured_key)
    assert structured.content_type == "application/json"
    assert json.loads(structured.content) == result.document.to_dict()

    metadata = result.metadata
    assert metadata["structured_data_available"] is True
    assert metadata["version"] == "2.0"
    assert metadata["task_models"] == {"code": "fake-model", "diagrams": "fake-model", "structure": "fake-model"}
    assert metadata["counts"]["diagrams"] == 2


@pytest.mark.asyncio
async def test_prompt_embeds_every_branch(fake_engine, blob_store):
    consolidator = Consolidator(fake_engine, blob_store)

    await consolidator.consolidate("job-1", task_results("diagrams", "code", "structure"), REQUIREMENTS)

    prompt, _ = fake_engine.calls[0]
    assert prompt.startswith("Produce a consolidated integration plan.")
    assert REQUIREMENTS in prompt
    assert "request.service.ts" in prompt
    assert "export interface CreateRequestDto" in prompt


@pytest.mark.asyncio
async def test_unstructured_response_still_completes(blob_store):
    engine = FakeGenerationEngine(responses={"integration plan": "Nothing structured here."})
    consolidator = Consolidator(engine, blob_store)

    result = await consolidator.consolidate("job-1", task_results("diagrams", "code", "structure"), REQUIREMENTS)

    assert result.document.is_empty()
    assert result.metadata["structured_data_available"] is False


@pytest.mark.asyncio
async def test_engine_failure_is_tagged_as_consolidation(blob_store):
    engine = FakeGenerationEngine(failures={"integration plan": "quota exceeded"})
    consolidator = Consolidator(engine, blob_store)

    with pytest.raises(ExternalServiceError) as exc_info:
        await consolidator.consolidate("job-1", task_results("diagrams", "code", "structure"), REQUIREMENTS)

    assert exc_info.value.task_name == "consolidation"
    assert blob_store.keys() == []


@pytest.mark.asyncio
async def test_stored_plan_is_reused_without_generation(fake_engine, blob_store):
    """A plan left by an earlier attempt is extracted instead of generating a new one."""
    await blob_store.put("jobs/job-1/integration-plan.md", "## Executive Summary\n\nFirst plan.\n", "text/markdown")
    consolidator = Consolidator(fake_engine, blob_store)

    result = await consolidator.consolidate("job-1", task_results("diagrams", "code", "structure"), REQUIREMENTS)

    assert fake_engine.call_count == 0
    assert result.content == "## Executive Summary\n\nFirst plan.\n"
    assert result.metadata["model_id"] is None

    structured = await blob_store.get(result.structured_key)
    assert json.loads(structured.content) == result.document.to_dict()
