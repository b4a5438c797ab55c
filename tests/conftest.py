"""
Shared fixtures for the SpecGen job orchestrator tests.
"""

import pytest
import pytest_asyncio

from specgen_orchestrator.bootstrap import build_job_manager
from specgen_orchestrator.config import OrchestratorConfig, WorkflowConfig
from specgen_orchestrator.core.exceptions import error_registry
from specgen_orchestrator.engines.fake_engine import FakeGenerationEngine
from specgen_orchestrator.services.notification_service import BaseNotifier
from specgen_orchestrator.storage.blob_store import InMemoryBlobStore
from specgen_orchestrator.storage.status_store import InMemoryStatusStore


class RecordingNotifier(BaseNotifier):
    """Keeps every job it is told about."""

    def __init__(self):
        self.jobs = []

    async def notify(self, job):
        self.jobs.append(job)


def fast_config(**workflow) -> OrchestratorConfig:
    """Configuration with no backoff so retries do not slow the suite down."""
    settings = {"max_attempts": 2, "initial_delay": 0, "jitter": False, "step_timeout_seconds": 5}
    settings.update(workflow)
    return OrchestratorConfig(workflow=WorkflowConfig(**settings))


@pytest.fixture(autouse=True)
def reset_error_registry():
    error_registry.reset()
    yield
    error_registry.reset()


@pytest_asyncio.fixture(scope="function")
async def status_store():
    return InMemoryStatusStore()


@pytest_asyncio.fixture(scope="function")
async def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def fake_engine():
    return FakeGenerationEngine()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest_asyncio.fixture(scope="function")
async def job_manager(fake_engine, status_store, blob_store, notifier):
    """A started JobManager on in-memory stores and the fake engine."""
    manager = build_job_manager(
        fast_config(),
        engine=fake_engine,
        status_store=status_store,
        blob_store=blob_store,
        notifier=notifier
    )
    await manager.start()
    yield manager
    await manager.stop()


@pytest_asyncio.fixture(scope="function")
async def make_manager(status_store, blob_store):
    """Factory for started JobManagers with custom collaborators or workflow settings."""
    managers = []

    async def _make(engine=None, notifier=None, store=None, blobs=None, **workflow):
        manager = build_job_manager(
            fast_config(**workflow),
            engine=engine or FakeGenerationEngine(),
            status_store=store or status_store,
            blob_store=blobs or blob_store,
            notifier=notifier
        )
        await manager.start()
        managers.append(manager)
        return manager

    yield _make

    for manager in managers:
        await manager.stop()
