"""
Wiring of the SpecGen job orchestrator from configuration.
"""

from typing import Optional

from .config import OrchestratorConfig
from .core.orchestrator import JobOrchestrator
from .engines import BaseGenerationEngine, create_generation_engine
from .services.consolidator import Consolidator
from .services.job_manager import JobManager
from .services.notification_service import BaseNotifier, LoggingNotifier, WebhookNotifier
from .services.task_executor import TaskExecutor
from .services.workflow_runner import LocalWorkflowRunner
from .storage.blob_store import BaseBlobStore, InMemoryBlobStore, LocalBlobStore
from .storage.status_store import BaseStatusStore, InMemoryStatusStore, PostgresStatusStore


def build_status_store(config: OrchestratorConfig) -> BaseStatusStore:
    if config.storage.status_store == "postgres":
        return PostgresStatusStore(config.storage.database_url)
    return InMemoryStatusStore()


def build_blob_store(config: OrchestratorConfig) -> BaseBlobStore:
    if config.storage.blob_store == "local":
        return LocalBlobStore(config.storage.blob_root)
    return InMemoryBlobStore()


def build_notifier(config: OrchestratorConfig) -> Optional[BaseNotifier]:
    if not config.notifications.enabled:
        return None
    if config.notifications.webhook_url:
        return WebhookNotifier(config.notifications.webhook_url)
    return LoggingNotifier()


def build_job_manager(
    config: OrchestratorConfig,
    engine: Optional[BaseGenerationEngine] = None,
    status_store: Optional[BaseStatusStore] = None,
    blob_store: Optional[BaseBlobStore] = None,
    notifier: Optional[BaseNotifier] = None
) -> JobManager:
    """
    Assemble a JobManager and everything behind it.

    Any collaborator passed in replaces the one configuration would build.
    Call ``await manager.start()`` before use.
    """
    engine = engine or create_generation_engine(config.generation)
    status_store = status_store or build_status_store(config)
    blob_store = blob_store or build_blob_store(config)
    if notifier is None:
        notifier = build_notifier(config)

    runner = LocalWorkflowRunner.from_config(
        TaskExecutor(engine, blob_store),
        Consolidator(engine, blob_store),
        config.workflow
    )
    orchestrator = JobOrchestrator(status_store, runner, notifier=notifier)
    return JobManager(status_store, orchestrator, max_input_chars=config.max_input_chars)
