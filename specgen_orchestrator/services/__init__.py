"""
Services package for the SpecGen job orchestrator

Contains the job manager facade, the task executor, the consolidator, the
workflow runner and the notification service.
"""

from .job_manager import JobManager
from .task_executor import TaskExecutor
from .consolidator import Consolidator
from .workflow_runner import BaseWorkflowRunner, LocalWorkflowRunner, RetryPolicy
from .notification_service import BaseNotifier, LoggingNotifier, WebhookNotifier
from .prompts import TASK_TEMPLATES, TaskTemplate

__all__ = [
    "JobManager",
    "TaskExecutor",
    "Consolidator",
    "BaseWorkflowRunner",
    "LocalWorkflowRunner",
    "RetryPolicy",
    "BaseNotifier",
    "LoggingNotifier",
    "WebhookNotifier",
    "TASK_TEMPLATES",
    "TaskTemplate"
]
