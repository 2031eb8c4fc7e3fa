"""
jobplane.schemas - Data structures for the orchestration layer.

CreateSingleJobRequest -> SingleJobConfig -> Job -> JobInfo

1. Request: JSON shape accepted at the boundary
2. JobConfig: validated configuration bound to a queue/cluster/namespace
3. Job: persisted entity carrying status and runtime info
4. JobInfo: read-only projection handed to a RuntimeService
"""

from .status import (
    JobStatus,
    JobType,
    Priority,
    TERMINAL_STATUSES,
    DEFAULT_PRIORITY,
    ENV_JOB_TYPE,
    ENV_JOB_QUEUE_NAME,
    POD_JOB_MARKER,
    JOB_ID_PREFIX,
    is_immutable_status,
)
from .job_config import (
    FileSystem,
    JobConfig,
    SingleJobConfig,
    DistributedJobConfig,
    WorkflowJobConfig,
    MemberConfig,
    job_config_from_dict,
)
from .job import Job, JobInfo
from .directory import Queue, Cluster, Flavour
from .requests import (
    SchedulingPolicy,
    CreateSingleJobRequest,
    CreateDistributedJobRequest,
    CreateWorkflowJobRequest,
    CreateJobResponse,
)
from .mount import FSCacheConfig, MountInfo, process_mount_info

__all__ = [
    # Status
    "JobStatus",
    "JobType",
    "Priority",
    "TERMINAL_STATUSES",
    "DEFAULT_PRIORITY",
    "ENV_JOB_TYPE",
    "ENV_JOB_QUEUE_NAME",
    "POD_JOB_MARKER",
    "JOB_ID_PREFIX",
    "is_immutable_status",
    # Config
    "FileSystem",
    "JobConfig",
    "SingleJobConfig",
    "DistributedJobConfig",
    "WorkflowJobConfig",
    "MemberConfig",
    "job_config_from_dict",
    # Job
    "Job",
    "JobInfo",
    # Directory
    "Queue",
    "Cluster",
    "Flavour",
    # Requests
    "SchedulingPolicy",
    "CreateSingleJobRequest",
    "CreateDistributedJobRequest",
    "CreateWorkflowJobRequest",
    "CreateJobResponse",
    # Mount
    "FSCacheConfig",
    "MountInfo",
    "process_mount_info",
]
