"""
Tests for the retry policy and the LocalWorkflowRunner step wrapper.
"""

import asyncio

import pytest

from specgen_orchestrator.core.exceptions import ExternalServiceError, PartialResultError
from specgen_orchestrator.services.consolidator import Consolidator
from specgen_orchestrator.services.task_executor import TaskExecutor
from specgen_orchestrator.services.workflow_runner import (
    LocalWorkflowRunner,
    RetryPolicy,
    error_message
)


def make_runner(fake_engine, blob_store, **kwargs) -> LocalWorkflowRunner:
    return LocalWorkflowRunner(
        TaskExecutor(fake_engine, blob_store),
        Consolidator(fake_engine, blob_store),
        **kwargs
    )


def test_backoff_without_jitter():
    policy = RetryPolicy(initial_delay=1.0, max_delay=5.0, exponential_base=2.0, jitter=False)
    assert [policy.delay_for(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 5.0]


def test_jitter_stays_within_half_to_full_delay():
    policy = RetryPolicy(initial_delay=2.0, jitter=True)
    for _ in range(50):
        assert 1.0 <= policy.delay_for(1) <= 2.0


def test_error_message():
    assert error_message(ExternalServiceError("generation-service", "HTTP 500")) == "generation-service failed: HTTP 500"
    assert error_message(RuntimeError()) == "RuntimeError"


@pytest.mark.asyncio
async def test_retries_until_success(fake_engine, blob_store):
    runner = make_runner(fake_engine, blob_store, retry_policy=RetryPolicy(max_attempts=3, initial_delay=0, jitter=False))
    attempts = []

    async def step():
        attempts.append(1)
        if len(attempts) < 3:
            raise ExternalServiceError("generation-service", "HTTP 503")
        return "done"

    assert await runner.execute_with_retry(step, "job-1", "diagrams") == "done"
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_gives_up_after_max_attempts(fake_engine, blob_store):
    runner = make_runner(fake_engine, blob_store, retry_policy=RetryPolicy(max_attempts=2, initial_delay=0, jitter=False))
    attempts = []

    async def step():
        attempts.append(1)
        raise ExternalServiceError("generation-service", "HTTP 503")

    with pytest.raises(ExternalServiceError):
        await runner.execute_with_retry(step, "job-1", "diagrams")
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_partial_results_are_not_retried(fake_engine, blob_store):
    runner = make_runner(fake_engine, blob_store, retry_policy=RetryPolicy(max_attempts=5, initial_delay=0, jitter=False))
    attempts = []

    async def step():
        attempts.append(1)
        raise PartialResultError("job-1", ["structure"])

    with pytest.raises(PartialResultError):
        await runner.execute_with_retry(step, "job-1", "consolidation")
    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_unexpected_errors_propagate_without_retry(fake_engine, blob_store):
    runner = make_runner(fake_engine, blob_store, retry_policy=RetryPolicy(max_attempts=5, initial_delay=0, jitter=False))
    attempts = []

    async def step():
        attempts.append(1)
        raise KeyError("bug")

    with pytest.raises(KeyError):
        await runner.execute_with_retry(step, "job-1", "code")
    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_timeout_becomes_external_service_error(fake_engine, blob_store):
    runner = make_runner(
        fake_engine, blob_store,
        retry_policy=RetryPolicy(max_attempts=1, initial_delay=0, jitter=False),
        step_timeout=0.01
    )

    async def step():
        await asyncio.sleep(1)

    with pytest.raises(ExternalServiceError) as exc_info:
        await runner.execute_with_retry(step, "job-1", "structure")

    assert exc_info.value.message == "workflow failed: step timed out after 0.01s"
    assert exc_info.value.task_name == "structure"
