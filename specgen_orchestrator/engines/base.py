"""
Base generation engine interface.

Defines the common interface that all text-generation engines must implement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Any, Optional


@dataclass
class GenerationResponse:
    """Text returned by a generation engine plus its bookkeeping."""

    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    usage: Dict[str, int] = field(default_factory=dict)


class BaseGenerationEngine(ABC):
    """
    Abstract base class for all generation engines.

    This interface keeps the orchestration core independent of where text
    comes from (a remote model endpoint, canned responses for tests, etc.).
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the generation engine.

        Args:
            config: Engine-specific configuration
        """
        self.config = config or {}
        self._is_initialized = False

    async def initialize(self) -> bool:
        """
        Initialize the generation engine.

        Returns:
            True if initialization successful
        """
        self._is_initialized = True
        return True

    async def shutdown(self) -> bool:
        """
        Shutdown the generation engine and clean up resources.

        Returns:
            True if shutdown successful
        """
        self._is_initialized = False
        return True

    @abstractmethod
    async def generate(self, prompt: str, system_instruction: Optional[str] = None) -> GenerationResponse:
        """
        Generate text for a prompt.

        Args:
            prompt: User prompt
            system_instruction: Optional system instruction

        Returns:
            GenerationResponse with non-empty content

        Raises:
            ExternalServiceError: On service error, timeout or empty response
        """
        pass

    @property
    def is_initialized(self) -> bool:
        """Check if engine is initialized."""
        return self._is_initialized

    @property
    def engine_name(self) -> str:
        """Get the name of this engine."""
        return self.__class__.__name__
