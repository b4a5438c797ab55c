"""
Fake generation engine.

Returns deterministic canned markdown chosen by keywords in the first line of
the prompt, for local development (``USE_MOCK_SERVICES=true``) and tests.
Responses and failures can be scripted per keyword.
"""

import asyncio
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Tuple

from .base import BaseGenerationEngine, GenerationResponse
from ..core.exceptions import ExternalServiceError
from ..utils.logger import get_logger, set_log_context

SERVICE_NAME = "generation-service"
FAKE_MODEL_ID = "fake-model"


EARS_SPECIFICATION = """# EARS Specification

## 1. Introduction and Scope

Requirements for the requested capability, written in EARS syntax.

## 2. Functional Requirements

- REQ-001: The system SHALL record every submitted request.
- REQ-002: WHEN a request is submitted the system SHALL acknowledge it within 2 seconds.
- REQ-003: IF the upstream service is unavailable, THEN the system SHALL queue the request.

## 3. Non-functional Requirements

- REQ-010: The system SHALL serve 95% of reads in under 200 ms.
"""

USER_STORIES = """# User Stories

## Epic: Request intake

### Story 1: Submit a request

As a requester, I want to submit a request so that it is processed without manual follow-up.

**Acceptance criteria**

- Given a valid request, when I submit it, then I receive an identifier.
- Given an invalid request, when I submit it, then I see what to fix.

**Story points:** 3

### Story 2: Track a request

As a requester, I want to see the status of my request so that I know when it is done.

**Story points:** 2
"""

DIAGRAMS = """# Architecture Diagrams

## High-Level System Architecture

```mermaid
graph TD
    Client --> Gateway
    Gateway --> Orchestrator
    Orchestrator --> Store
```

## Security Flow

```mermaid
sequenceDiagram
    Client->>Gateway: request with token
    Gateway->>Auth: validate token
    Auth-->>Gateway: claims
```
"""

CODE_TEMPLATES = """# Code Templates

## Request DTO

```typescript
export interface CreateRequestDto {
  name: string;
  payload: string;
}
```

## Request Service

```python
from fastapi import FastAPI

app = FastAPI()


class RequestService:
    def submit(self, name: str) -> str:
        return name
```
"""

PROJECT_STRUCTURE = """# Project Structure

```
integration-service/
├── src/
│   ├── controllers/          # HTTP handlers
│   ├── services/
│   │   └── request.service.ts
│   └── index.ts              // entry point
├── tests/
└── package.json
```
"""

INTEGRATION_PLAN = """# Integration Plan

### 1. Executive Summary and Integration Overview

The integration connects the client applications to the orchestration backend
through a gateway, with asynchronous processing for long-running work.

### 2. System Architecture and Component Design

The system is composed of a gateway, an orchestrator and a durable store.

#### High-Level Architecture

```mermaid
graph TD
    Client --> Gateway
    Gateway --> Orchestrator
    Orchestrator --> Store
```

### 3. API Specifications and Data Contracts

```typescript
export interface CreateRequestDto {
  name: string;
  payload: string;
}
```

### 4. Security Architecture and Authentication

Every call carries a bearer token validated at the gateway.

```mermaid
sequenceDiagram
    Client->>Gateway: request with token
    Gateway->>Auth: validate token
```

### 5. Error Handling and Resilience Patterns

Transient upstream failures are retried with exponential backoff.

### 6. Testing Strategy and Quality Assurance

Unit tests per service plus contract tests against the gateway.

```python
def test_submit_returns_identifier():
    assert submit("demo")
```

### 7. Deployment and Operations Guide

Services are deployed as containers behind a load balancer.

```
integration-service/
├── src/
│   ├── controllers/          # HTTP handlers
│   └── index.ts              // entry point
├── tests/
└── package.json
```

### 8. Monitoring and Observability

Structured logs and request latency dashboards per endpoint.

### 9. Performance and Scalability Considerations

The orchestrator scales horizontally; the store is the only shared resource.

### 10. Risk Assessment and Mitigation

Upstream rate limits are the main risk; requests are queued when throttled.

## Implementation Guidance

Start with the gateway contract, then the orchestrator, then the dashboards.
"""

GENERIC = """# Generated Content

## Summary

The request was processed and a draft document was produced.
"""

# (keywords, canned content) checked in order against the first prompt line
CANNED_RESPONSES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("consolidated integration plan", "integration plan"), INTEGRATION_PLAN),
    (("diagram",), DIAGRAMS),
    (("code template",), CODE_TEMPLATES),
    (("project structure",), PROJECT_STRUCTURE),
    (("user stor",), USER_STORIES),
    (("ears",), EARS_SPECIFICATION),
)


class FakeGenerationEngine(BaseGenerationEngine):
    """
    Deterministic generation engine.

    Only the first line of the prompt is matched, so material embedded further
    down (such as sub-task output inside a synthesis prompt) never selects a
    response. Scripted entries are checked before the canned responses.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        responses: Optional[Dict[str, str]] = None,
        failures: Optional[Dict[str, str]] = None,
        transient_failures: Optional[Dict[str, int]] = None,
        delay: float = 0.0
    ):
        """
        Initialize fake generation engine.

        Args:
            config: Engine configuration (unused keys are ignored)
            responses: keyword -> content to return
            failures: keyword -> error message, raised on every matching call
            transient_failures: keyword -> number of matching calls that fail before succeeding
            delay: Seconds to sleep per call
        """
        super().__init__(config)
        self.responses = {k.lower(): v for k, v in (responses or {}).items()}
        self.failures = {k.lower(): v for k, v in (failures or {}).items()}
        self.transient_failures = {k.lower(): v for k, v in (transient_failures or {}).items()}
        self.delay = delay
        self.calls: List[Tuple[str, Optional[str]]] = []

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="fake_generation_engine")

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def _matching(self, table: Dict[str, Any], prompt: str) -> Optional[str]:
        for keyword in table:
            if keyword in prompt:
                return keyword
        return None

    def _canned(self, prompt: str) -> str:
        for keywords, content in CANNED_RESPONSES:
            if any(keyword in prompt for keyword in keywords):
                return content
        return GENERIC

    async def generate(self, prompt: str, system_instruction: Optional[str] = None) -> GenerationResponse:
        self.calls.append((prompt, system_instruction))
        if self.delay:
            await asyncio.sleep(self.delay)

        lines = prompt.strip().splitlines()
        lowered = lines[0].lower() if lines else ""

        keyword = self._matching(self.failures, lowered)
        if keyword is not None:
            raise ExternalServiceError(SERVICE_NAME, self.failures[keyword])

        keyword = self._matching(self.transient_failures, lowered)
        if keyword is not None and self.transient_failures[keyword] > 0:
            self.transient_failures[keyword] -= 1
            raise ExternalServiceError(SERVICE_NAME, "transient failure")

        keyword = self._matching(self.responses, lowered)
        content = self.responses[keyword] if keyword is not None else self._canned(lowered)
        if not content or not content.strip():
            raise ExternalServiceError(SERVICE_NAME, "response contained no generated text")

        self.logger.debug("Returning canned generation", extra={"prompt_chars": len(prompt)})

        return GenerationResponse(
            content=content,
            metadata={
                "model_id": FAKE_MODEL_ID,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "mock_mode": True
            },
            usage={
                "input_tokens": len(prompt) // 4,
                "output_tokens": len(content) // 4
            }
        )
