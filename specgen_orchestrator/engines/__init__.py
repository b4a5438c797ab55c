"""
Generation engines for the SpecGen job orchestrator.

Provides the engine interface, the HTTP engine for a remote model endpoint and
a deterministic fake engine, plus the factory that picks one from configuration.
"""

from .base import BaseGenerationEngine, GenerationResponse
from .http_engine import HttpGenerationEngine
from .fake_engine import FakeGenerationEngine


def create_generation_engine(generation_config) -> BaseGenerationEngine:
    """
    Build the generation engine named by configuration.

    Args:
        generation_config: GenerationConfig

    Returns:
        Uninitialized engine instance
    """
    config = generation_config.model_dump()
    if generation_config.provider == "http":
        return HttpGenerationEngine(config)
    return FakeGenerationEngine(config)


__all__ = [
    "BaseGenerationEngine",
    "GenerationResponse",
    "HttpGenerationEngine",
    "FakeGenerationEngine",
    "create_generation_engine"
]
