"""
Job status and job kind enums.

State machine:
    init -> pending -> running -> {succeeded, failed, terminated}

The three final states are terminal: once a job reaches one of them
its status and message are immutable.
"""

from enum import Enum


class JobStatus(str, Enum):
    """Status of a job."""
    INIT = "init"
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TERMINATED = "terminated"

    @classmethod
    def from_string(cls, value: str) -> "JobStatus":
        """Parse a status string, raising ValueError for unknown values."""
        try:
            return cls(value)
        except ValueError:
            valid = [s.value for s in cls]
            raise ValueError(f"Unknown job status: {value!r}. Valid: {valid}")

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    JobStatus.SUCCEEDED,
    JobStatus.FAILED,
    JobStatus.TERMINATED,
})


def is_immutable_status(status: "JobStatus | str") -> bool:
    """True if no further status mutation is permitted from ``status``."""
    return JobStatus(status) in TERMINAL_STATUSES


class JobType(str, Enum):
    """Kind of job; selects the JobConfig variant."""
    SINGLE = "single"
    DISTRIBUTED = "distributed"
    WORKFLOW = "workflow"


class Priority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


DEFAULT_PRIORITY = Priority.NORMAL.value

# Env keys stamped onto every job config
ENV_JOB_TYPE = "PF_JOB_TYPE"
ENV_JOB_QUEUE_NAME = "PF_JOB_QUEUE_NAME"

# Marker value written to ENV_JOB_TYPE for single-container jobs
POD_JOB_MARKER = "pod"

JOB_ID_PREFIX = "job"
