"""
Job-related data models for the SpecGen job orchestrator

Defines the job record, job types and their task tables, the public job
status, the orchestrator's internal stages, and the job output variants.
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Tuple, Union
from dataclasses import dataclass, field

from .document import StructuredDocument


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class JobStatus(Enum):
    """Public job status enumeration."""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class JobType(Enum):
    """Job type enumeration."""
    EARS_SPEC = "EARS_SPEC"
    USER_STORY = "USER_STORY"
    INTEGRATION_PLAN = "INTEGRATION_PLAN"

    @property
    def is_fan_out(self) -> bool:
        return len(JOB_TYPE_TASKS[self]) > 1

    @property
    def tasks(self) -> Tuple[str, ...]:
        return JOB_TYPE_TASKS[self]


class JobStage(Enum):
    """Orchestrator state of a job."""
    INITIATED = "INITIATED"
    DISPATCHED = "DISPATCHED"
    PROCESSING = "PROCESSING"
    FAN_OUT = "FAN_OUT"
    CONSOLIDATING = "CONSOLIDATING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStage.COMPLETED, JobStage.FAILED)


# Task names
TASK_EARS_SPECIFICATION = "ears-specification"
TASK_USER_STORIES = "user-stories"
TASK_DIAGRAMS = "diagrams"
TASK_CODE = "code"
TASK_STRUCTURE = "structure"

FAN_OUT_TASKS: Tuple[str, ...] = (TASK_DIAGRAMS, TASK_CODE, TASK_STRUCTURE)

# Step that merges the fan-out results
CONSOLIDATION_TASK = "consolidation"

JOB_TYPE_TASKS: Dict[JobType, Tuple[str, ...]] = {
    JobType.EARS_SPEC: (TASK_EARS_SPECIFICATION,),
    JobType.USER_STORY: (TASK_USER_STORIES,),
    JobType.INTEGRATION_PLAN: FAN_OUT_TASKS,
}

# Estimated duration in seconds per job type
ESTIMATED_DURATIONS: Dict[JobType, int] = {
    JobType.EARS_SPEC: 120,
    JobType.USER_STORY: 90,
    JobType.INTEGRATION_PLAN: 300,
}


@dataclass
class ContentOutput:
    """Output of a single-stage job: the generated markdown."""

    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    kind: str = field(default="content", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "content": self.content, "metadata": self.metadata}


@dataclass
class PlanOutput:
    """Output of a fan-out job: the consolidated, structured plan."""

    document: StructuredDocument
    consolidated_content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    kind: str = field(default="plan", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "document": self.document.to_dict(),
            "consolidated_content": self.consolidated_content,
            "metadata": self.metadata
        }


JobOutput = Union[ContentOutput, PlanOutput]


def output_from_dict(data: Optional[Dict[str, Any]]) -> Optional[JobOutput]:
    """Rebuild the output variant named by its ``kind`` tag."""
    if not data:
        return None
    kind = data.get("kind")
    if kind == "content":
        return ContentOutput(content=data["content"], metadata=data.get("metadata") or {})
    if kind == "plan":
        return PlanOutput(
            document=StructuredDocument.from_dict(data.get("document") or {}),
            consolidated_content=data.get("consolidated_content", ""),
            metadata=data.get("metadata") or {}
        )
    raise ValueError(f"Unknown job output kind: {kind!r}")


_DATETIME_FIELDS = ("created_at", "updated_at", "completed_at")


@dataclass
class Job:
    """Core job data model."""

    # Primary identification
    job_id: str
    user_id: str
    job_name: str
    job_type: JobType
    input_data: str

    # Status tracking
    status: JobStatus = JobStatus.PENDING
    stage: JobStage = JobStage.INITIATED

    # Results
    output: Optional[JobOutput] = None
    error_message: Optional[str] = None
    artifact_ref: Optional[str] = None
    completed_tasks: List[str] = field(default_factory=list)

    # Timing
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    estimated_duration: Optional[int] = None
    actual_duration: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_dict(self) -> Dict[str, Any]:
        """Convert job to dictionary for serialization."""
        return {
            "job_id": self.job_id,
            "user_id": self.user_id,
            "job_name": self.job_name,
            "job_type": self.job_type.value,
            "input_data": self.input_data,
            "status": self.status.value,
            "stage": self.stage.value,
            "output": self.output.to_dict() if self.output else None,
            "error_message": self.error_message,
            "artifact_ref": self.artifact_ref,
            "completed_tasks": list(self.completed_tasks),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "estimated_duration": self.estimated_duration,
            "actual_duration": self.actual_duration
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Job":
        """Create job from dictionary."""
        data = dict(data)

        # Parse datetime fields
        for field_name in _DATETIME_FIELDS:
            if isinstance(data.get(field_name), str):
                data[field_name] = datetime.fromisoformat(data[field_name])

        # Parse enum fields
        data["job_type"] = JobType(data["job_type"])
        if "status" in data:
            data["status"] = JobStatus(data["status"])
        if "stage" in data:
            data["stage"] = JobStage(data["stage"])

        output = data.get("output")
        if isinstance(output, dict):
            data["output"] = output_from_dict(output)
        data["completed_tasks"] = list(data.get("completed_tasks") or [])

        return cls(**data)

    def summary(self) -> Dict[str, Any]:
        """Compact view for listings and notifications."""
        return {
            "job_id": self.job_id,
            "job_name": self.job_name,
            "job_type": self.job_type.value,
            "status": self.status.value,
            "stage": self.stage.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error_message": self.error_message,
            "artifact_ref": self.artifact_ref
        }

    def check_invariants(self) -> List[str]:
        """Return the list of violated record invariants (empty when consistent)."""
        problems = []
        completed = self.status == JobStatus.COMPLETED
        failed = self.status == JobStatus.FAILED

        if completed != (self.output is not None):
            problems.append("output must be present iff status is COMPLETED")
        if failed != (self.error_message is not None):
            problems.append("error_message must be present iff status is FAILED")
        if self.is_terminal != (self.completed_at is not None):
            problems.append("completed_at must be set iff the job is terminal")
        if self.is_terminal != (self.actual_duration is not None):
            problems.append("actual_duration must be set iff the job is terminal")
        if self.output is not None:
            expected_kind = "plan" if self.job_type.is_fan_out else "content"
            if self.output.kind != expected_kind:
                problems.append(f"{self.job_type.value} output must be of kind {expected_kind}")
        return problems


# Orchestrator stage transition rules
STAGE_TRANSITIONS: Dict[JobStage, List[JobStage]] = {
    JobStage.INITIATED: [JobStage.DISPATCHED, JobStage.FAILED],
    JobStage.DISPATCHED: [JobStage.PROCESSING, JobStage.FAN_OUT, JobStage.FAILED],
    JobStage.PROCESSING: [JobStage.COMPLETED, JobStage.FAILED],
    JobStage.FAN_OUT: [JobStage.CONSOLIDATING, JobStage.FAILED],
    JobStage.CONSOLIDATING: [JobStage.COMPLETED, JobStage.FAILED],
    JobStage.COMPLETED: [],  # Terminal state
    JobStage.FAILED: [],  # Terminal state
}


def can_transition_to(current_stage: JobStage, target_stage: JobStage) -> bool:
    """Check if a job can transition from current stage to target stage."""
    return target_stage in STAGE_TRANSITIONS.get(current_stage, [])


def get_valid_transitions(current_stage: JobStage) -> List[JobStage]:
    """Get list of valid stage transitions from current stage."""
    return STAGE_TRANSITIONS.get(current_stage, [])


def parse_job_type(value: Union[str, JobType]) -> JobType:
    """Resolve a job type from its enum or string value; raises ValueError otherwise."""
    if isinstance(value, JobType):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Unsupported job type: {value!r}")
    normalized = value.strip().upper().replace("-", "_")
    return JobType(normalized)
