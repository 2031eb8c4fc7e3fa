"""
LocalRuntime - in-process runtime for development and tests.

Keeps job state in a dict instead of talking to a control plane.
Registered under the ``local`` cluster type.
"""

import logging
import threading
from typing import Optional

from jobplane.schemas import Cluster, JobInfo

logger = logging.getLogger(__name__)

CLUSTER_TYPE = "local"


class LocalRuntime:
    """RuntimeService that records job state in memory."""

    def __init__(self, cluster: Cluster):
        self.cluster = cluster
        self._jobs: dict[str, str] = {}
        self._lock = threading.Lock()

    def create_job(self, job: JobInfo) -> None:
        with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"job {job.id} already exists on cluster {self.cluster.id}")
            self._jobs[job.id] = "pending"
        logger.info(f"[{self.cluster.id}] created job {job.id} in namespace {job.namespace}")

    def stop_job(self, job: JobInfo) -> None:
        with self._lock:
            # Jobs never admitted to the cluster have nothing to stop
            if job.id in self._jobs:
                self._jobs[job.id] = "terminated"
        logger.info(f"[{self.cluster.id}] stopped job {job.id}")

    def delete_job(self, job: JobInfo) -> None:
        with self._lock:
            self._jobs.pop(job.id, None)
        logger.info(f"[{self.cluster.id}] deleted job {job.id}")

    def job_state(self, job_id: str) -> Optional[str]:
        """State of a job on this cluster, None if unknown."""
        with self._lock:
            return self._jobs.get(job_id)


def create_local_runtime(cluster: Cluster) -> LocalRuntime:
    """RuntimeFactory for ``local`` clusters."""
    return LocalRuntime(cluster)
