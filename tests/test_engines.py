"""
Tests for the generation engines.
"""

import json

import httpx
import pytest

from specgen_orchestrator.config import GenerationConfig
from specgen_orchestrator.core.exceptions import ExternalServiceError
from specgen_orchestrator.engines import create_generation_engine
from specgen_orchestrator.engines.fake_engine import (
    DIAGRAMS,
    GENERIC,
    INTEGRATION_PLAN,
    FakeGenerationEngine
)
from specgen_orchestrator.engines.http_engine import HttpGenerationEngine, extract_response_text

ENDPOINT = "https://generation.example.com/v1/converse"


def http_engine(handler) -> HttpGenerationEngine:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpGenerationEngine({"endpoint": ENDPOINT, "model_id": "test-model"}, client=client)


@pytest.mark.parametrize("data", [
    {"output": {"message": {"content": [{"text": "hello"}]}}},
    {"output": {"text": "hello"}},
    {"content": [{"text": "hello"}]},
    {"text": "hello"},
])
def test_extract_response_text_shapes(data):
    assert extract_response_text(data) == "hello"


def test_extract_response_text_without_text():
    assert extract_response_text({"output": {"message": {"content": []}}}) is None


@pytest.mark.asyncio
async def test_http_engine_request_and_response():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "output": {"message": {"content": [{"text": "# Generated"}]}},
            "usage": {"inputTokens": 12, "outputTokens": 3}
        })

    engine = http_engine(handler)
    response = await engine.generate("Write an EARS specification.", "You are precise.")

    assert engine.is_initialized
    assert seen["url"] == ENDPOINT
    assert seen["body"]["modelId"] == "test-model"
    assert seen["body"]["system"] == [{"text": "You are precise."}]
    assert seen["body"]["messages"][0]["content"][0]["text"] == "Write an EARS specification."
    assert response.content == "# Generated"
    assert response.metadata["model_id"] == "test-model"
    assert response.usage == {"input_tokens": 12, "output_tokens": 3}


@pytest.mark.asyncio
@pytest.mark.parametrize("handler, message", [
    (lambda request: httpx.Response(503, text="busy"), "HTTP 503"),
    (lambda request: httpx.Response(200, text="not json"), "not valid JSON"),
    (lambda request: httpx.Response(200, json=["a", "list"]), "not a JSON object"),
    (lambda request: httpx.Response(200, json={"output": {}}), "no generated text"),
])
async def test_http_engine_errors_become_external_service_errors(handler, message):
    engine = http_engine(handler)

    with pytest.raises(ExternalServiceError) as exc_info:
        await engine.generate("prompt")

    assert message in exc_info.value.message
    assert exc_info.value.message.startswith("generation-service failed")


@pytest.mark.asyncio
async def test_http_engine_timeout():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(ExternalServiceError) as exc_info:
        await http_engine(handler).generate("prompt")

    assert "timed out" in exc_info.value.message


@pytest.mark.asyncio
async def test_fake_engine_matches_first_line_only():
    """Words further down the prompt never select a canned response."""
    engine = FakeGenerationEngine()

    diagrams = await engine.generate("Draw the architecture diagrams for this.\nMention a project structure too.")
    plan = await engine.generate("Produce a consolidated integration plan.\n\n## Diagrams\n...")
    generic = await engine.generate("Summarise this.\nDraw the architecture diagrams.")

    assert diagrams.content == DIAGRAMS
    assert plan.content == INTEGRATION_PLAN
    assert generic.content == GENERIC
    assert diagrams.metadata["mock_mode"] is True
    assert engine.call_count == 3


@pytest.mark.asyncio
async def test_fake_engine_scripted_responses_and_failures():
    engine = FakeGenerationEngine(
        responses={"ears": "# Scripted"},
        failures={"code templates": "model overloaded"},
        transient_failures={"diagrams": 1}
    )

    assert (await engine.generate("Write an EARS specification document")).content == "# Scripted"

    with pytest.raises(ExternalServiceError) as exc_info:
        await engine.generate("Write the code templates for a system")
    assert exc_info.value.message == "generation-service failed: model overloaded"

    with pytest.raises(ExternalServiceError):
        await engine.generate("Draw the architecture diagrams")
    assert (await engine.generate("Draw the architecture diagrams")).content == DIAGRAMS


def test_create_generation_engine():
    assert isinstance(create_generation_engine(GenerationConfig()), FakeGenerationEngine)

    engine = create_generation_engine(GenerationConfig(provider="http", endpoint=ENDPOINT))
    assert isinstance(engine, HttpGenerationEngine)
    assert engine.endpoint == ENDPOINT
