"""
JobRepository - Persist job records.

The repository owns:
- Creating job records (status init)
- Fetching by ID (deleted records are invisible)
- Status/message/runtime-info updates, enforcing the terminal-status rule
- Logical deletion
- Listing by queue and by pipeline run

Storage backends:
- In-memory (for testing)
- SQLite (development and single-node deployments)

Update policy: only the touched fields are written. Status, message,
runtime info and timestamps are updated column by column; the config and
other fields are never rewritten by an update.

Every update is conditional on the status read just before it
(optimistic concurrency), so two writers racing on the same job cannot
silently overwrite each other.
"""

import copy
import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence

from jobplane.errors import (
    JobNotFoundError,
    PersistenceError,
    StateConflictError,
    ValidationError,
)
from jobplane.ids import run_job_prefix
from jobplane.schemas import Job, JobStatus, JobType, job_config_from_dict

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


@dataclass
class StatusChange:
    """Fields an update writes. None means 'leave as is'."""
    status: Optional[JobStatus] = None
    message: Optional[str] = None
    runtime_info: Optional[dict[str, Any]] = None
    activated_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def plan_status_change(
    job_id: str,
    current_status: JobStatus,
    already_activated: bool,
    status: Optional[JobStatus],
    message: str,
    runtime_info: Optional[dict[str, Any]],
    expected_status: Optional[JobStatus],
) -> StatusChange:
    """
    Compute the field changes for a status update.

    Raises:
        StateConflictError: If the job is terminal, or its status no longer
            matches expected_status
    """
    if expected_status is not None and current_status != expected_status:
        raise StateConflictError(
            job_id,
            current_status,
            f"job {job_id} status is {current_status.value}, expected {expected_status.value}",
        )
    if current_status.is_terminal:
        raise StateConflictError(
            job_id,
            current_status,
            f"job {job_id} status is already {current_status.value}, and job cannot be updated",
        )

    now = _utcnow()
    change = StatusChange(updated_at=now)
    if status is not None:
        change.status = status
        if status == JobStatus.RUNNING and not already_activated:
            change.activated_at = now
    if message:
        change.message = message
    if runtime_info is not None:
        change.runtime_info = runtime_info
    return change


def _coerce_status(status: "JobStatus | str | None") -> Optional[JobStatus]:
    if status is None or status == "":
        return None
    try:
        return JobStatus(status)
    except ValueError:
        raise ValidationError(f"unknown job status: {status!r}")


class JobRepository(ABC):
    """
    Abstract base class for job persistence.

    Implementations must provide read-your-writes consistency per job ID.
    """

    @abstractmethod
    def create(self, job: Job) -> None:
        """
        Persist a new job.

        Raises:
            PersistenceError: If the job cannot be stored (including duplicate ID)
        """
        pass

    @abstractmethod
    def get_by_id(self, job_id: str) -> Job:
        """
        Fetch a job.

        Raises:
            JobNotFoundError: If no live record has this ID
            PersistenceError: If the store fails
        """
        pass

    def get_status(self, job_id: str) -> JobStatus:
        """Current status of a job."""
        return self.get_by_id(job_id).status

    @abstractmethod
    def update_status(
        self,
        job_id: str,
        message: str,
        status: "JobStatus | str | None",
        expected_status: Optional[JobStatus] = None,
    ) -> None:
        """
        Update status and/or message.

        Empty status or message leaves that field untouched.

        Raises:
            JobNotFoundError: If the job does not exist
            StateConflictError: If the job is terminal or expected_status mismatches
            PersistenceError: If the store fails
        """
        pass

    @abstractmethod
    def update(
        self,
        job_id: str,
        status: "JobStatus | str | None",
        runtime_info: Optional[dict[str, Any]],
        message: str,
        expected_status: Optional[JobStatus] = None,
    ) -> JobStatus:
        """
        Update status, runtime info and message.

        Returns:
            The job's status after the update

        Raises:
            JobNotFoundError: If the job does not exist
            StateConflictError: If the job is terminal or expected_status mismatches
            PersistenceError: If the store fails
        """
        pass

    @abstractmethod
    def delete(self, job_id: str) -> None:
        """
        Logically delete a job.

        Raises:
            JobNotFoundError: If the job does not exist
            PersistenceError: If the store fails
        """
        pass

    @abstractmethod
    def list_by_queue(self, queue_id: str, statuses: Sequence[JobStatus]) -> list[Job]:
        """
        Jobs in a queue whose status is in ``statuses``.

        Never raises for query failures; returns an empty list instead.
        """
        pass

    @abstractmethod
    def list_by_run_prefix(self, run_id: str, job_id: str = "") -> list[Job]:
        """
        Jobs whose ID has the form job-<run_id>-*, optionally narrowed to job_id.

        Raises:
            PersistenceError: If the store fails
        """
        pass


class InMemoryJobRepository(JobRepository):
    """
    In-memory implementation of JobRepository for testing.

    Stores deep copies so callers cannot mutate stored state by accident.
    """

    def __init__(self):
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def create(self, job: Job) -> None:
        with self._lock:
            if job.id in self._jobs:
                raise PersistenceError(f"job {job.id} already exists")
            self._jobs[job.id] = copy.deepcopy(job)

    def get_by_id(self, job_id: str) -> Job:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            return copy.deepcopy(job)

    def update_status(self, job_id, message, status, expected_status=None) -> None:
        self._apply(job_id, _coerce_status(status), None, message, expected_status)

    def update(self, job_id, status, runtime_info, message, expected_status=None) -> JobStatus:
        return self._apply(job_id, _coerce_status(status), runtime_info, message, expected_status)

    def _apply(self, job_id, status, runtime_info, message, expected_status) -> JobStatus:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            change = plan_status_change(
                job_id, job.status, job.activated_at is not None,
                status, message, runtime_info, expected_status,
            )
            if change.status is not None:
                job.status = change.status
            if change.message is not None:
                job.message = change.message
            if change.runtime_info is not None:
                job.runtime_info = copy.deepcopy(change.runtime_info)
            if change.activated_at is not None:
                job.activated_at = change.activated_at
            job.updated_at = change.updated_at
            return job.status

    def delete(self, job_id: str) -> None:
        with self._lock:
            if self._jobs.pop(job_id, None) is None:
                raise JobNotFoundError(job_id)

    def list_by_queue(self, queue_id: str, statuses: Sequence[JobStatus]) -> list[Job]:
        try:
            wanted = {JobStatus(s) for s in statuses}
        except ValueError as e:
            logger.warning(f"list jobs of queue {queue_id} failed: {e}")
            return []
        with self._lock:
            return [
                copy.deepcopy(j) for j in self._jobs.values()
                if j.queue_id == queue_id and j.status in wanted
            ]

    def list_by_run_prefix(self, run_id: str, job_id: str = "") -> list[Job]:
        prefix = run_job_prefix(run_id)
        with self._lock:
            return [
                copy.deepcopy(j) for j in self._jobs.values()
                if j.id.startswith(prefix) and (not job_id or j.id == job_id)
            ]

    def clear(self) -> None:
        """Clear all stored data (for testing)."""
        with self._lock:
            self._jobs.clear()


# =============================================================================
# SQLITE
# =============================================================================

_DB_SCHEMA = """
CREATE TABLE IF NOT EXISTS job (
    pk INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    user_name TEXT NOT NULL,
    queue_id TEXT NOT NULL,
    type TEXT NOT NULL,
    config TEXT NOT NULL,
    extension_template TEXT NOT NULL DEFAULT '',
    runtime_info TEXT NOT NULL DEFAULT '{}',
    status TEXT NOT NULL,
    message TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    activated_at TEXT,
    updated_at TEXT NOT NULL,
    deleted_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_job_queue_status ON job (queue_id, status);
CREATE INDEX IF NOT EXISTS idx_job_deleted_at ON job (deleted_at);
"""

_COLUMNS = (
    "id", "user_name", "queue_id", "type", "config", "extension_template",
    "runtime_info", "status", "message", "created_at", "activated_at", "updated_at",
)


@dataclass
class JobRow:
    """
    Persistence-layer representation of a job.

    Everything is stored as text; JSON columns hold the config and the
    runtime info. runtime_info '{}' means 'not attached yet'.
    """
    id: str
    user_name: str
    queue_id: str
    type: str
    config: str
    extension_template: str
    runtime_info: str
    status: str
    message: str
    created_at: str
    activated_at: Optional[str]
    updated_at: str

    @classmethod
    def from_job(cls, job: Job) -> "JobRow":
        return cls(
            id=job.id,
            user_name=job.user_name,
            queue_id=job.queue_id,
            type=job.job_type.value,
            config=json.dumps(job.config.to_dict(), sort_keys=True),
            extension_template=job.extension_template,
            runtime_info=json.dumps(job.runtime_info) if job.runtime_info is not None else "{}",
            status=job.status.value,
            message=job.message,
            created_at=job.created_at.isoformat(),
            activated_at=job.activated_at.isoformat() if job.activated_at else None,
            updated_at=job.updated_at.isoformat(),
        )

    @classmethod
    def from_sqlite(cls, row: sqlite3.Row) -> "JobRow":
        return cls(**{col: row[col] for col in _COLUMNS})

    def to_job(self) -> Job:
        runtime_info = json.loads(self.runtime_info) if self.runtime_info else {}
        return Job(
            id=self.id,
            user_name=self.user_name,
            queue_id=self.queue_id,
            job_type=JobType(self.type),
            config=job_config_from_dict(json.loads(self.config)),
            status=JobStatus(self.status),
            message=self.message,
            extension_template=self.extension_template,
            runtime_info=runtime_info or None,
            created_at=datetime.fromisoformat(self.created_at),
            updated_at=datetime.fromisoformat(self.updated_at),
            activated_at=datetime.fromisoformat(self.activated_at) if self.activated_at else None,
        )

    def values(self) -> tuple:
        return tuple(getattr(self, col) for col in _COLUMNS)


class SqliteJobRepository(JobRepository):
    """
    SQLite-backed JobRepository.

    A fresh connection is opened per operation; a process-local lock
    serializes read-modify-write sequences, and the conditional
    ``WHERE status = ?`` guards against writers in other processes.
    Deletion is logical: deleted_at is stamped and the row becomes
    invisible to every read.
    """

    def __init__(self, db_path: Path | str):
        self._db_path = Path(db_path).expanduser()
        self._lock = threading.Lock()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        try:
            with conn:
                conn.executescript(_DB_SCHEMA)
        finally:
            conn.close()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self._db_path, timeout=10)
        except sqlite3.Error as e:
            raise PersistenceError(f"cannot open job database {self._db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        return conn

    def _fetch_row(self, conn: sqlite3.Connection, job_id: str) -> JobRow:
        row = conn.execute(
            "SELECT * FROM job WHERE id = ? AND deleted_at IS NULL", (job_id,)
        ).fetchone()
        if row is None:
            raise JobNotFoundError(job_id)
        return JobRow.from_sqlite(row)

    def create(self, job: Job) -> None:
        row = JobRow.from_job(job)
        placeholders = ", ".join("?" * len(_COLUMNS))
        sql = f"INSERT INTO job ({', '.join(_COLUMNS)}) VALUES ({placeholders})"
        conn = self._connect()
        try:
            with conn:
                conn.execute(sql, row.values())
        except sqlite3.IntegrityError as e:
            raise PersistenceError(f"job {job.id} already exists: {e}") from e
        except sqlite3.Error as e:
            logger.error(f"create job {job.id} in database failed: {e}")
            raise PersistenceError(f"create job {job.id} in database failed: {e}") from e
        finally:
            conn.close()

    def get_by_id(self, job_id: str) -> Job:
        conn = self._connect()
        try:
            return self._fetch_row(conn, job_id).to_job()
        except sqlite3.Error as e:
            logger.error(f"get job {job_id} failed: {e}")
            raise PersistenceError(f"get job {job_id} failed: {e}") from e
        finally:
            conn.close()

    def update_status(self, job_id, message, status, expected_status=None) -> None:
        self._apply(job_id, _coerce_status(status), None, message, expected_status)

    def update(self, job_id, status, runtime_info, message, expected_status=None) -> JobStatus:
        return self._apply(job_id, _coerce_status(status), runtime_info, message, expected_status)

    def _apply(self, job_id, status, runtime_info, message, expected_status) -> JobStatus:
        with self._lock:
            conn = self._connect()
            try:
                with conn:
                    row = self._fetch_row(conn, job_id)
                    current = JobStatus(row.status)
                    change = plan_status_change(
                        job_id, current, row.activated_at is not None,
                        status, message, runtime_info, expected_status,
                    )

                    sets = {"updated_at": change.updated_at.isoformat()}
                    if change.status is not None:
                        sets["status"] = change.status.value
                    if change.message is not None:
                        sets["message"] = change.message
                    if change.runtime_info is not None:
                        sets["runtime_info"] = json.dumps(change.runtime_info)
                    if change.activated_at is not None:
                        sets["activated_at"] = change.activated_at.isoformat()

                    assignments = ", ".join(f"{col} = ?" for col in sets)
                    cursor = conn.execute(
                        f"UPDATE job SET {assignments} "
                        "WHERE id = ? AND status = ? AND deleted_at IS NULL",
                        (*sets.values(), job_id, current.value),
                    )
                    if cursor.rowcount != 1:
                        raise StateConflictError(
                            job_id, current,
                            f"job {job_id} was modified concurrently; status is no longer {current.value}",
                        )
                    logger.info(f"update job {job_id}: {sorted(sets)}")
                    return change.status or current
            except sqlite3.Error as e:
                logger.error(f"update job {job_id} failed: {e}")
                raise PersistenceError(f"update job {job_id} failed: {e}") from e
            finally:
                conn.close()

    def delete(self, job_id: str) -> None:
        conn = self._connect()
        try:
            with conn:
                cursor = conn.execute(
                    "UPDATE job SET deleted_at = ? WHERE id = ? AND deleted_at IS NULL",
                    (_utcnow().isoformat(), job_id),
                )
                if cursor.rowcount == 0:
                    raise JobNotFoundError(job_id)
        except sqlite3.Error as e:
            logger.error(f"delete job {job_id} from database failed: {e}")
            raise PersistenceError(f"delete job {job_id} from database failed: {e}") from e
        finally:
            conn.close()

    def list_by_queue(self, queue_id: str, statuses: Sequence[JobStatus]) -> list[Job]:
        if not statuses:
            return []
        placeholders = ", ".join("?" * len(statuses))
        sql = (
            f"SELECT * FROM job WHERE queue_id = ? AND status IN ({placeholders}) "
            "AND deleted_at IS NULL ORDER BY created_at ASC"
        )
        try:
            params = [queue_id, *(JobStatus(s).value for s in statuses)]
            conn = self._connect()
        except (PersistenceError, ValueError) as e:
            logger.warning(f"list jobs of queue {queue_id} failed: {e}")
            return []
        try:
            rows = conn.execute(sql, params).fetchall()
            return [JobRow.from_sqlite(r).to_job() for r in rows]
        except (sqlite3.Error, ValueError) as e:
            logger.warning(f"list jobs of queue {queue_id} failed: {e}")
            return []
        finally:
            conn.close()

    def list_by_run_prefix(self, run_id: str, job_id: str = "") -> list[Job]:
        # substr() instead of LIKE: exact, case-sensitive, no wildcard escaping
        prefix = run_job_prefix(run_id)
        sql = "SELECT * FROM job WHERE substr(id, 1, ?) = ? AND deleted_at IS NULL"
        params: list[Any] = [len(prefix), prefix]
        if job_id:
            sql += " AND id = ?"
            params.append(job_id)
        conn = self._connect()
        try:
            rows = conn.execute(sql + " ORDER BY created_at ASC", params).fetchall()
            return [JobRow.from_sqlite(r).to_job() for r in rows]
        except sqlite3.Error as e:
            logger.error(f"get jobs by run {run_id} failed: {e}")
            raise PersistenceError(f"get jobs by run {run_id} failed: {e}") from e
        finally:
            conn.close()
