"""
Job entity and the read-only JobInfo projection handed to runtimes.

Job is the domain object the orchestrator works with. Persistence uses
its own row representation (see jobplane.repository) and maps to/from
Job at the repository boundary.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .job_config import JobConfig, job_config_from_dict
from .status import JobStatus, JobType


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


@dataclass
class Job:
    """
    A submitted unit of work.

    Attributes:
        id: Unique, immutable job ID
        user_name: Owning user
        queue_id: Queue the job was submitted to
        job_type: Kind of job (matches config.job_type)
        config: The job configuration
        status: Current status
        message: Human-readable status message
        extension_template: YAML extension template (may be empty)
        runtime_info: Opaque backend info, set once the cluster knows the job
        created_at: Creation time
        updated_at: Last mutation time
        activated_at: First time the job entered RUNNING
    """
    id: str
    user_name: str
    queue_id: str
    job_type: JobType
    config: JobConfig
    status: JobStatus = JobStatus.INIT
    message: str = ""
    extension_template: str = ""
    runtime_info: Optional[dict[str, Any]] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    activated_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        result = {
            "id": self.id,
            "user_name": self.user_name,
            "queue_id": self.queue_id,
            "job_type": self.job_type.value,
            "config": self.config.to_dict(),
            "status": self.status.value,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        if self.extension_template:
            result["extension_template"] = self.extension_template
        if self.runtime_info is not None:
            result["runtime_info"] = self.runtime_info
        if self.activated_at is not None:
            result["activated_at"] = self.activated_at.isoformat()
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Job":
        """Deserialize from dictionary."""
        activated_at = None
        if data.get("activated_at"):
            activated_at = datetime.fromisoformat(data["activated_at"])
        return cls(
            id=data["id"],
            user_name=data.get("user_name", ""),
            queue_id=data.get("queue_id", ""),
            job_type=JobType(data["job_type"]),
            config=job_config_from_dict(data["config"]),
            status=JobStatus(data.get("status", JobStatus.INIT.value)),
            message=data.get("message", ""),
            extension_template=data.get("extension_template", ""),
            runtime_info=data.get("runtime_info"),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            activated_at=activated_at,
        )


@dataclass(frozen=True)
class JobInfo:
    """
    Read-only view of a persisted job, passed to RuntimeService calls.

    Runtimes must not mutate job state; they only see this projection.
    """
    id: str
    job_type: JobType
    status: JobStatus
    namespace: str
    config: Mapping[str, Any]
    extension_template: str = ""

    @property
    def name(self) -> str:
        return self.config.get("name", "")

    @classmethod
    def from_job(cls, job: Job) -> "JobInfo":
        """Project a Job into a JobInfo."""
        return cls(
            id=job.id,
            job_type=job.job_type,
            status=job.status,
            namespace=job.config.namespace,
            config=MappingProxyType(job.config.to_dict()),
            extension_template=job.extension_template,
        )
