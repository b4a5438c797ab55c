"""
Notification service for the SpecGen job orchestrator

Tells the job owner that a job finished. Notifications are fire-and-forget
from the orchestrator's point of view: a failing notifier never changes job
state.
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from ..models.job import Job
from ..utils.logger import get_logger, set_log_context
from ..core.exceptions import ExternalServiceError


class BaseNotifier(ABC):
    @abstractmethod
    async def notify(self, job: Job):
        """Announce a terminal job."""

    async def close(self):
        """Release notifier resources."""


class LoggingNotifier(BaseNotifier):
    """Writes a structured log line per finished job."""

    def __init__(self):
        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="notification_service")

    async def notify(self, job: Job):
        self.logger.info("Job completion notification", extra={
            "job_id": job.job_id,
            "user_id": job.user_id,
            "status": job.status.value,
            "job_name": job.job_name
        })


class WebhookNotifier(BaseNotifier):
    """
    POSTs the job summary to a webhook.

    Payload: ``{"event": "job.completed" | "job.failed", "user_id": ..., "job": {summary}}``.
    """

    def __init__(self, webhook_url: str, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="notification_service")

    async def notify(self, job: Job):
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)

        payload = {
            "event": f"job.{job.status.value.lower()}",
            "user_id": job.user_id,
            "job": job.summary()
        }

        try:
            response = await self._client.post(self.webhook_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ExternalServiceError("notification-webhook", str(e)) from e

        self.logger.info("Webhook notification sent", extra={
            "job_id": job.job_id,
            "status_code": response.status_code
        })

    async def close(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
