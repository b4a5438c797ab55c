"""
Structured document models produced by the content-extraction engine

A generated integration plan is loosely structured markdown; extraction turns
it into sections, diagrams, code templates and project-structure entries.
"""

from enum import Enum
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
from uuid import UUID, uuid5

# Namespace for deterministic element ids
DOCUMENT_NAMESPACE = UUID("6f1c2d3e-8a4b-5c6d-9e7f-0a1b2c3d4e5f")


def element_id(kind: str, position: int, content: str) -> str:
    """Stable id for an extracted element; identical input yields identical ids."""
    return str(uuid5(DOCUMENT_NAMESPACE, f"{kind}:{position}:{content}"))


class DiagramCategory(Enum):
    """Diagram category enumeration."""
    HIGH_LEVEL = "high-level"
    LOW_LEVEL = "low-level"
    DATA_FLOW = "data-flow"
    DEPLOYMENT = "deployment"
    SECURITY = "security"
    COMPONENT = "component"


class CodeCategory(Enum):
    """Code template category enumeration."""
    INTERFACE = "interface"
    DTO = "dto"
    SERVICE = "service"
    CONTROLLER = "controller"
    MODEL = "model"
    CONFIG = "config"
    TEST = "test"
    SCHEMA = "schema"


class ItemKind(Enum):
    """Project structure entry kind."""
    FILE = "file"
    DIRECTORY = "directory"


@dataclass
class Section:
    """A named section of the generated document."""

    id: str
    key: str
    title: str
    content: str
    order: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "key": self.key,
            "title": self.title,
            "content": self.content,
            "order": self.order
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Section":
        return cls(**data)


@dataclass
class Diagram:
    """A diagram block with its notation and inferred category."""

    id: str
    title: str
    content: str
    notation: str
    category: DiagramCategory

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "notation": self.notation,
            "category": self.category.value
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Diagram":
        data = dict(data)
        data["category"] = DiagramCategory(data["category"])
        return cls(**data)


@dataclass
class CodeTemplate:
    """A code block with its language, inferred category and framework."""

    id: str
    title: str
    content: str
    language: str
    category: CodeCategory
    framework: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "language": self.language,
            "category": self.category.value,
            "framework": self.framework
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CodeTemplate":
        data = dict(data)
        data["category"] = CodeCategory(data["category"])
        return cls(**data)


@dataclass
class ProjectStructureItem:
    """One entry of a project tree listing."""

    path: str
    kind: ItemKind
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "kind": self.kind.value,
            "description": self.description
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectStructureItem":
        data = dict(data)
        data["kind"] = ItemKind(data["kind"])
        return cls(**data)


@dataclass
class StructuredDocument:
    """Typed result of content extraction."""

    sections: List[Section] = field(default_factory=list)
    diagrams: List[Diagram] = field(default_factory=list)
    code_templates: List[CodeTemplate] = field(default_factory=list)
    project_structure: List[ProjectStructureItem] = field(default_factory=list)

    def is_empty(self) -> bool:
        """True when no collection holds anything."""
        return not (self.sections or self.diagrams or self.code_templates or self.project_structure)

    def section(self, key: str) -> Optional[str]:
        """Body of the section with the given catalog key, if extracted."""
        for section in self.sections:
            if section.key == key:
                return section.content
        return None

    def counts(self) -> Dict[str, int]:
        return {
            "sections": len(self.sections),
            "diagrams": len(self.diagrams),
            "code_templates": len(self.code_templates),
            "project_structure": len(self.project_structure)
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert document to dictionary for serialization."""
        return {
            "sections": [s.to_dict() for s in self.sections],
            "diagrams": [d.to_dict() for d in self.diagrams],
            "code_templates": [c.to_dict() for c in self.code_templates],
            "project_structure": [p.to_dict() for p in self.project_structure]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StructuredDocument":
        """Create document from dictionary."""
        return cls(
            sections=[Section.from_dict(s) for s in data.get("sections", [])],
            diagrams=[Diagram.from_dict(d) for d in data.get("diagrams", [])],
            code_templates=[CodeTemplate.from_dict(c) for c in data.get("code_templates", [])],
            project_structure=[ProjectStructureItem.from_dict(p) for p in data.get("project_structure", [])]
        )
