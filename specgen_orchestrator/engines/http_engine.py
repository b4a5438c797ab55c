"""
HTTP generation engine.

Calls a model-invocation endpoint that accepts the Bedrock converse-style body
(``system``, ``messages``, ``inferenceConfig``) and returns text in one of the
known response shapes.
"""

from datetime import datetime, timezone
from typing import Dict, Any, Optional

import httpx

from .base import BaseGenerationEngine, GenerationResponse
from ..core.exceptions import ExternalServiceError
from ..utils.logger import get_logger, set_log_context

SERVICE_NAME = "generation-service"
DEFAULT_SYSTEM_INSTRUCTION = "You are a helpful AI assistant."


def extract_response_text(data: Dict[str, Any]) -> Optional[str]:
    """Pull the generated text out of any of the supported response shapes."""
    candidates = []

    output = data.get("output")
    if isinstance(output, dict):
        message = output.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, list) and content and isinstance(content[0], dict):
                candidates.append(content[0].get("text"))
        candidates.append(output.get("text"))

    content = data.get("content")
    if isinstance(content, list) and content and isinstance(content[0], dict):
        candidates.append(content[0].get("text"))

    candidates.append(data.get("text"))

    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate
    return None


class HttpGenerationEngine(BaseGenerationEngine):
    """
    Generation engine backed by a remote model endpoint.

    One request per ``generate`` call; no retries here, the workflow runner
    owns retry policy.
    """

    def __init__(self, config: Dict[str, Any], client: Optional[httpx.AsyncClient] = None):
        """
        Initialize HTTP generation engine.

        Args:
            config: Keys ``endpoint``, ``model_id``, ``api_key``, ``timeout_seconds``,
                ``max_tokens``, ``temperature``, ``top_p``
            client: Optional pre-built client (tests use a mock transport)
        """
        super().__init__(config)
        self.endpoint = config["endpoint"]
        self.model_id = config.get("model_id", "amazon.nova-pro-v1:0")
        self.timeout = config.get("timeout_seconds", 120.0)
        self._client = client
        self._owns_client = client is None

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="http_generation_engine")

    async def initialize(self) -> bool:
        if self._client is None:
            headers = {"Content-Type": "application/json"}
            if self.config.get("api_key"):
                headers["Authorization"] = f"Bearer {self.config['api_key']}"
            self._client = httpx.AsyncClient(timeout=self.timeout, headers=headers)
        self._is_initialized = True
        self.logger.info("HTTP generation engine initialized", extra={
            "endpoint": self.endpoint,
            "model_id": self.model_id
        })
        return True

    async def shutdown(self) -> bool:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
        self._is_initialized = False
        return True

    def build_request_body(self, prompt: str, system_instruction: Optional[str]) -> Dict[str, Any]:
        return {
            "modelId": self.model_id,
            "system": [{"text": system_instruction or DEFAULT_SYSTEM_INSTRUCTION}],
            "messages": [
                {"role": "user", "content": [{"text": prompt}]}
            ],
            "inferenceConfig": {
                "maxTokens": self.config.get("max_tokens", 8192),
                "temperature": self.config.get("temperature", 0.7),
                "topP": self.config.get("top_p", 0.9),
                "stopSequences": []
            }
        }

    async def generate(self, prompt: str, system_instruction: Optional[str] = None) -> GenerationResponse:
        if self._client is None:
            await self.initialize()

        body = self.build_request_body(prompt, system_instruction)

        try:
            response = await self._client.post(self.endpoint, json=body, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise ExternalServiceError(SERVICE_NAME, f"request timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise ExternalServiceError(SERVICE_NAME, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(SERVICE_NAME, f"request failed: {e}") from e
        except ValueError as e:
            raise ExternalServiceError(SERVICE_NAME, "response is not valid JSON") from e

        if not isinstance(data, dict):
            raise ExternalServiceError(SERVICE_NAME, "response is not a JSON object")

        content = extract_response_text(data)
        if content is None:
            raise ExternalServiceError(SERVICE_NAME, "response contained no generated text")

        usage = data.get("usage") or {}
        self.logger.info("Generation response received", extra={
            "input_tokens": usage.get("inputTokens"),
            "output_tokens": usage.get("outputTokens")
        })

        return GenerationResponse(
            content=content,
            metadata={
                "model_id": self.model_id,
                "timestamp": datetime.now(timezone.utc).isoformat()
            },
            usage={
                "input_tokens": usage.get("inputTokens", 0) or 0,
                "output_tokens": usage.get("outputTokens", 0) or 0
            }
        )
