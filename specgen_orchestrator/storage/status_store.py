"""
Status store for job records

The orchestration core reads and writes job records only through this
interface. Updates are conditional and partial: ``status`` and ``created_at``
can never be cleared, and ``updated_at`` is bumped on every write.
"""

import asyncio
import copy
import json
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Dict, Any, List, Optional

import asyncpg

from ..models.job import Job, JobStatus, JobStage, JobType, utcnow
from ..core.exceptions import PersistenceError, ValidationError
from ..utils.logger import get_logger, set_log_context

# Fields a partial update may set
UPDATABLE_FIELDS = frozenset({
    "status", "stage", "output", "error_message", "artifact_ref",
    "completed_tasks", "completed_at", "actual_duration", "created_at",
})
NON_CLEARABLE_FIELDS = frozenset({"status", "created_at"})


def prepare_update(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate a partial update and return the fields to write.

    None values are dropped, except on fields that may never be cleared,
    which are rejected. ``updated_at`` is always set to now.
    """
    unknown = set(fields) - UPDATABLE_FIELDS - {"updated_at"}
    if unknown:
        raise ValidationError("fields", "not updatable", sorted(unknown))

    prepared = {}
    for name, value in fields.items():
        if value is None:
            if name in NON_CLEARABLE_FIELDS:
                raise ValidationError(name, "cannot be cleared")
            continue
        prepared[name] = value

    prepared["updated_at"] = utcnow()
    return prepared


class BaseStatusStore(ABC):
    """Abstract job record store."""

    async def initialize(self) -> None:
        """Prepare the store for use."""

    async def close(self) -> None:
        """Release store resources."""

    @abstractmethod
    async def get(self, job_id: str) -> Optional[Job]:
        """Return the job record, or None if unknown."""

    @abstractmethod
    async def put(self, job: Job) -> None:
        """Insert or replace a whole job record."""

    @abstractmethod
    async def update(
        self,
        job_id: str,
        fields: Dict[str, Any],
        expected_status: Optional[JobStatus] = None
    ) -> bool:
        """
        Apply a partial update.

        Args:
            job_id: Job to update
            fields: Field name -> new value
            expected_status: When given, only update if the stored status matches

        Returns:
            True if the update was applied, False if the job is unknown or the
            condition did not hold
        """

    @abstractmethod
    async def list_for_user(self, user_id: str) -> List[Job]:
        """Jobs of one user, most recent first."""


class InMemoryStatusStore(BaseStatusStore):
    """
    Lock-guarded in-process store.

    Records are copied on the way in and out so callers never share state
    with the store.
    """

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = asyncio.Lock()

    async def get(self, job_id: str) -> Optional[Job]:
        async with self._lock:
            job = self._jobs.get(job_id)
            return copy.deepcopy(job) if job else None

    async def put(self, job: Job) -> None:
        async with self._lock:
            self._jobs[job.job_id] = copy.deepcopy(job)

    async def update(
        self,
        job_id: str,
        fields: Dict[str, Any],
        expected_status: Optional[JobStatus] = None
    ) -> bool:
        prepared = prepare_update(fields)
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return False
            if expected_status is not None and job.status != expected_status:
                return False

            updated = copy.deepcopy(job)
            for name, value in prepared.items():
                setattr(updated, name, copy.deepcopy(value))
            self._jobs[job_id] = updated
            return True

    async def list_for_user(self, user_id: str) -> List[Job]:
        async with self._lock:
            jobs = [copy.deepcopy(job) for job in self._jobs.values() if job.user_id == user_id]
        return sorted(jobs, key=lambda job: job.created_at, reverse=True)


CREATE_JOBS_TABLE = """
    CREATE TABLE IF NOT EXISTS jobs (
        job_id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        job_name TEXT NOT NULL,
        job_type TEXT NOT NULL,
        input_data TEXT NOT NULL,
        status TEXT NOT NULL,
        stage TEXT NOT NULL,
        output JSONB,
        error_message TEXT,
        artifact_ref TEXT,
        completed_tasks JSONB NOT NULL DEFAULT '[]'::jsonb,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL,
        completed_at TIMESTAMPTZ,
        estimated_duration INTEGER,
        actual_duration INTEGER
    );
    CREATE INDEX IF NOT EXISTS jobs_user_created_idx ON jobs (user_id, created_at DESC);
"""

_JSONB_COLUMNS = frozenset({"output", "completed_tasks"})


def _to_column(name: str, value: Any) -> Any:
    """Python field value to its column representation."""
    if isinstance(value, (JobStatus, JobStage, JobType)):
        return value.value
    if name == "output":
        return json.dumps(value.to_dict())
    if name == "completed_tasks":
        return json.dumps(list(value))
    return value


def _row_to_job(row: Any) -> Job:
    data = dict(row)
    output = data.get("output")
    if isinstance(output, str):
        output = json.loads(output)
    completed_tasks = data.get("completed_tasks")
    if isinstance(completed_tasks, str):
        completed_tasks = json.loads(completed_tasks)

    data["output"] = output
    data["completed_tasks"] = completed_tasks or []
    return Job.from_dict(data)


class PostgresStatusStore(BaseStatusStore):
    """
    PostgreSQL-backed store using an asyncpg connection pool.

    Conditional updates compile to ``UPDATE ... WHERE job_id = $1 AND status = $2``
    so a terminal write happens at most once across processes.
    """

    def __init__(self, connection_string: str, pool_size: int = 10):
        """
        Initialize PostgreSQL status store.

        Args:
            connection_string: PostgreSQL connection string
            pool_size: Maximum pool size
        """
        self.connection_string = connection_string
        self.pool_size = pool_size
        self.pool: Optional[asyncpg.Pool] = None

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="postgres_status_store")

    async def initialize(self) -> None:
        """Create the connection pool and the jobs table."""
        try:
            self.pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=1,
                max_size=self.pool_size,
                command_timeout=60
            )
            async with self.pool.acquire() as conn:
                await conn.execute(CREATE_JOBS_TABLE)
        except Exception as e:
            raise PersistenceError("initialization", f"Failed to create connection pool: {str(e)}")

        self.logger.info("Status store initialized")

    async def close(self) -> None:
        if self.pool:
            await self.pool.close()
            self.pool = None

    @asynccontextmanager
    async def get_connection(self):
        """Get a database connection from the pool."""
        if not self.pool:
            raise PersistenceError("connection", "Database pool not initialized")

        async with self.pool.acquire() as connection:
            yield connection

    async def get(self, job_id: str) -> Optional[Job]:
        try:
            async with self.get_connection() as conn:
                row = await conn.fetchrow("SELECT * FROM jobs WHERE job_id = $1", job_id)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError("get", str(e), key=job_id)
        return _row_to_job(row) if row else None

    async def put(self, job: Job) -> None:
        try:
            async with self.get_connection() as conn:
                await conn.execute("""
                    INSERT INTO jobs (
                        job_id, user_id, job_name, job_type, input_data, status, stage,
                        output, error_message, artifact_ref, completed_tasks,
                        created_at, updated_at, completed_at, estimated_duration, actual_duration
                    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8::jsonb, $9, $10, $11::jsonb, $12, $13, $14, $15, $16)
                    ON CONFLICT (job_id) DO UPDATE SET
                        status = EXCLUDED.status,
                        stage = EXCLUDED.stage,
                        output = EXCLUDED.output,
                        error_message = EXCLUDED.error_message,
                        artifact_ref = EXCLUDED.artifact_ref,
                        completed_tasks = EXCLUDED.completed_tasks,
                        updated_at = EXCLUDED.updated_at,
                        completed_at = EXCLUDED.completed_at,
                        actual_duration = EXCLUDED.actual_duration
                """,
                job.job_id, job.user_id, job.job_name, job.job_type.value, job.input_data,
                job.status.value, job.stage.value,
                json.dumps(job.output.to_dict()) if job.output else None,
                job.error_message, job.artifact_ref, json.dumps(job.completed_tasks),
                job.created_at, job.updated_at, job.completed_at,
                job.estimated_duration, job.actual_duration)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError("put", str(e), key=job.job_id)

    async def update(
        self,
        job_id: str,
        fields: Dict[str, Any],
        expected_status: Optional[JobStatus] = None
    ) -> bool:
        prepared = prepare_update(fields)

        assignments = []
        params: List[Any] = [job_id]
        for name, value in prepared.items():
            params.append(_to_column(name, value))
            cast = "::jsonb" if name in _JSONB_COLUMNS else ""
            assignments.append(f"{name} = ${len(params)}{cast}")

        query = f"UPDATE jobs SET {', '.join(assignments)} WHERE job_id = $1"
        if expected_status is not None:
            params.append(expected_status.value)
            query += f" AND status = ${len(params)}"

        try:
            async with self.get_connection() as conn:
                result = await conn.execute(query, *params)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError("update", str(e), key=job_id)

        # asyncpg returns the command tag, e.g. "UPDATE 1"
        return result.split()[-1] != "0"

    async def list_for_user(self, user_id: str) -> List[Job]:
        try:
            async with self.get_connection() as conn:
                rows = await conn.fetch(
                    "SELECT * FROM jobs WHERE user_id = $1 ORDER BY created_at DESC", user_id
                )
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError("list_for_user", str(e), key=user_id)
        return [_row_to_job(row) for row in rows]
