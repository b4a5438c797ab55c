"""
Task execution models for the SpecGen job orchestrator

Task results are in-flight only; the raw artifact they point at is the durable
record.
"""

from typing import Optional, Dict, Any
from dataclasses import dataclass, field

from .document import StructuredDocument


@dataclass
class TaskResult:
    """Result of one named generation task."""

    job_id: str
    task_name: str
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    artifact_key: Optional[str] = None

    @property
    def model_id(self) -> Optional[str]:
        return self.metadata.get("model_id")


@dataclass
class ConsolidationResult:
    """Structured plan produced from the three fan-out task results."""

    job_id: str
    document: StructuredDocument
    content: str
    consolidated_key: str
    structured_key: str
    metadata: Dict[str, Any] = field(default_factory=dict)
