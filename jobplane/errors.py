"""
Error classes for jobplane orchestration.

Every orchestrator call either returns a value or raises exactly one of
these. The families map to distinct remediation paths:

- ValidationError: fix the request (bad fields, invalid priority)
- NotFoundError: the job/queue/cluster/flavour does not exist
- PermissionDeniedError: the caller may not act on the resource
- PersistenceError: the job store failed (retry the store)
- RuntimeServiceError: the cluster-side call failed or timed out
  (retry or inspect the cluster)
- RuntimeInitError: a runtime handle for a cluster could not be built
- StateConflictError: the job is in a state that forbids the mutation

Builtin names (PermissionError, RuntimeError) are not shadowed.
"""


class JobplaneError(Exception):
    """Base exception for jobplane."""
    pass


class ValidationError(JobplaneError):
    """Malformed or missing request fields."""
    pass


class InvalidPriorityError(ValidationError):
    """Priority label outside the accepted set."""

    def __init__(self, priority: str):
        self.priority = priority
        super().__init__(f"invalid job priority: {priority!r}")


class UnsupportedJobTypeError(ValidationError):
    """Job kind is a known request shape with no orchestration support."""

    def __init__(self, job_type: str):
        self.job_type = job_type
        super().__init__(f"job type {job_type!r} is not supported")


class NotFoundError(JobplaneError):
    """A referenced record does not exist."""

    kind = "record"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"{self.kind} not found: {key}")


class JobNotFoundError(NotFoundError):
    kind = "job"


class QueueNotFoundError(NotFoundError):
    kind = "queue"


class ClusterNotFoundError(NotFoundError):
    kind = "cluster"


class FlavourNotFoundError(NotFoundError):
    kind = "flavour"


class PermissionDeniedError(JobplaneError):
    """Authorization denied for subject/action/resource."""

    def __init__(self, subject: str, action: str, resource: str):
        self.subject = subject
        self.action = action
        self.resource = resource
        super().__init__(f"user {subject!r} is not allowed to {action} {resource}")


class PersistenceError(JobplaneError):
    """Job store operation failed."""
    pass


class RuntimeServiceError(JobplaneError):
    """
    Cluster-side operation failed.

    The outcome on the cluster is unknown or negative; the job record
    is left untouched so a retry can re-derive the state.
    """
    pass


class RuntimeTimeoutError(RuntimeServiceError):
    """Cluster-side operation did not finish before the request deadline."""
    pass


class RuntimeInitError(JobplaneError):
    """Runtime handle construction for a cluster failed."""
    pass


class StateConflictError(JobplaneError):
    """Mutation rejected because of the job's current status."""

    def __init__(self, job_id: str, status: str, message: str | None = None):
        self.job_id = job_id
        self.status = getattr(status, "value", status)
        super().__init__(message or f"job {job_id} status is already {self.status}")


class OperationCancelledError(JobplaneError):
    """The caller cancelled the request before it completed."""
    pass
