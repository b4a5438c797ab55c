"""
Prompt templates per generation task.

Each task renders the caller's requirements into a prompt, carries its system
instruction, and names the artifact its raw output is stored under.
"""

from dataclasses import dataclass
from typing import Dict, Mapping

from ..models.job import (
    TASK_CODE,
    TASK_DIAGRAMS,
    TASK_EARS_SPECIFICATION,
    TASK_STRUCTURE,
    TASK_USER_STORIES
)


@dataclass(frozen=True)
class TaskTemplate:
    prompt_template: str
    system_instruction: str
    artifact_name: str

    def render(self, requirements: str) -> str:
        return self.prompt_template.format(requirements=requirements)


TASK_TEMPLATES: Dict[str, TaskTemplate] = {
    TASK_EARS_SPECIFICATION: TaskTemplate(
        prompt_template=(
            "Write an EARS specification document for these requirements.\n\n"
            "Requirements:\n{requirements}\n\n"
            "Number every requirement (REQ-001, REQ-002, ...), cover functional and "
            "non-functional requirements, and give measurable acceptance criteria."
        ),
        system_instruction=(
            "You are a requirements engineer. Write requirements in EARS syntax: "
            "ubiquitous, event-driven (WHEN), state-driven (WHILE) and unwanted-behaviour "
            "(IF ... THEN) patterns, each atomic and testable."
        ),
        artifact_name="ears-specification.md"
    ),
    TASK_USER_STORIES: TaskTemplate(
        prompt_template=(
            "Turn these requirements into user stories grouped by epic.\n\n"
            "Requirements:\n{requirements}\n\n"
            "Use 'As a ..., I want ..., so that ...', add Given/When/Then acceptance "
            "criteria and a story point estimate per story."
        ),
        system_instruction=(
            "You are a product manager writing INVEST-compliant user stories for "
            "sprint planning."
        ),
        artifact_name="user-stories.md"
    ),
    TASK_DIAGRAMS: TaskTemplate(
        prompt_template=(
            "Draw the architecture diagrams for a system meeting these requirements.\n\n"
            "Requirements:\n{requirements}\n\n"
            "Give a high-level view, a detailed sequence view, a data flow, a deployment "
            "view and a security flow, each as a mermaid block under its own heading."
        ),
        system_instruction="You are a solution architect who communicates designs through diagrams.",
        artifact_name="diagrams.md"
    ),
    TASK_CODE: TaskTemplate(
        prompt_template=(
            "Write the code templates for a system meeting these requirements.\n\n"
            "Requirements:\n{requirements}\n\n"
            "Include interfaces, DTOs, a service, a controller and a test, each in a "
            "language-tagged block under its own heading."
        ),
        system_instruction="You are a senior engineer writing idiomatic starter code.",
        artifact_name="code-templates.md"
    ),
    TASK_STRUCTURE: TaskTemplate(
        prompt_template=(
            "Lay out the project structure for a system meeting these requirements.\n\n"
            "Requirements:\n{requirements}\n\n"
            "Show one directory tree drawn with ├── and └── connectors, with a short "
            "comment on the important entries."
        ),
        system_instruction="You are a senior engineer organising a maintainable repository.",
        artifact_name="project-structure.md"
    ),
}

CONSOLIDATION_SYSTEM_INSTRUCTION = (
    "You are a senior solution architect. Merge the material you are given into one "
    "coherent document without dropping diagrams, code or the project layout."
)

CONSOLIDATION_PROMPT = """Produce a consolidated integration plan.

Original requirements:
{requirements}

Use these numbered sections, in this order, as level-3 headings:
1. Executive Summary and Integration Overview
2. System Architecture and Component Design
3. API Specifications and Data Contracts
4. Security Architecture and Authentication
5. Error Handling and Resilience Patterns
6. Testing Strategy and Quality Assurance
7. Deployment and Operations Guide
8. Monitoring and Observability
9. Performance and Scalability Considerations
10. Risk Assessment and Mitigation
End with an "Implementation Guidance" section.

Place the diagrams, code and project structure below in the sections they belong to.

--- Diagrams ---
{diagrams}

--- Code ---
{code}

--- Project structure ---
{structure}
"""


def render_consolidation_prompt(requirements: str, contents: Mapping[str, str]) -> str:
    """Synthesis prompt embedding the original input and each sub-task's content."""
    return CONSOLIDATION_PROMPT.format(
        requirements=requirements,
        diagrams=contents[TASK_DIAGRAMS],
        code=contents[TASK_CODE],
        structure=contents[TASK_STRUCTURE]
    )
