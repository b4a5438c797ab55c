"""
Data models for the SpecGen job orchestrator

Jobs and their lifecycle, in-flight task results, and the structured document
produced by content extraction.
"""

# Job models
from .job import (
    Job,
    JobStatus,
    JobStage,
    JobType,
    ContentOutput,
    PlanOutput,
    JobOutput,
    output_from_dict,
    parse_job_type,
    JOB_TYPE_TASKS,
    FAN_OUT_TASKS,
    CONSOLIDATION_TASK,
    ESTIMATED_DURATIONS,
    STAGE_TRANSITIONS,
    can_transition_to,
    get_valid_transitions,
    utcnow
)

# Execution models
from .execution import TaskResult, ConsolidationResult

# Document models
from .document import (
    StructuredDocument,
    Section,
    Diagram,
    DiagramCategory,
    CodeTemplate,
    CodeCategory,
    ProjectStructureItem,
    ItemKind
)

__all__ = [
    # Job models
    "Job",
    "JobStatus",
    "JobStage",
    "JobType",
    "ContentOutput",
    "PlanOutput",
    "JobOutput",
    "output_from_dict",
    "parse_job_type",
    "JOB_TYPE_TASKS",
    "FAN_OUT_TASKS",
    "CONSOLIDATION_TASK",
    "ESTIMATED_DURATIONS",
    "STAGE_TRANSITIONS",
    "can_transition_to",
    "get_valid_transitions",
    "utcnow",

    # Execution models
    "TaskResult",
    "ConsolidationResult",

    # Document models
    "StructuredDocument",
    "Section",
    "Diagram",
    "DiagramCategory",
    "CodeTemplate",
    "CodeCategory",
    "ProjectStructureItem",
    "ItemKind"
]
