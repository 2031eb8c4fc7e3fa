"""
RuntimeService protocol - per-cluster job operations.

One RuntimeService handle exists per cluster. It is the only place that
talks to a cluster control plane; the orchestrator never sees transport
details. Handles receive read-only JobInfo projections.
"""

from typing import Callable, Protocol, runtime_checkable

from jobplane.schemas import Cluster, JobInfo


@runtime_checkable
class RuntimeService(Protocol):
    """
    Protocol for cluster-side job operations.

    Implementations raise any exception to signal failure; the orchestrator
    classifies it as RuntimeServiceError. Builtin TimeoutError is treated
    as a timeout (outcome unknown).
    """

    def create_job(self, job: JobInfo) -> None:
        """Submit the job to the cluster."""
        ...

    def delete_job(self, job: JobInfo) -> None:
        """Remove the job and its resources from the cluster."""
        ...

    def stop_job(self, job: JobInfo) -> None:
        """Stop a running job, keeping its record on the cluster."""
        ...


# Builds a handle from cluster connection info. Raise to signal failure.
RuntimeFactory = Callable[[Cluster], RuntimeService]
