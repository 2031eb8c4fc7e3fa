import logging
from unittest.mock import Mock

import pytest

from jobplane.directory import InMemoryDirectory
from jobplane.orchestrator import JobOrchestrator
from jobplane.repository import InMemoryJobRepository
from jobplane.runtime import RuntimeRegistry
from jobplane.schemas import (
    Cluster,
    Flavour,
    Job,
    JobStatus,
    JobType,
    Queue,
    SingleJobConfig,
)


@pytest.fixture(autouse=True)
def restore_jobplane_logger():
    """setup_logging() replaces handlers on the shared jobplane logger."""
    logger = logging.getLogger("jobplane")
    handlers, level = list(logger.handlers), logger.level
    yield
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers = handlers
    logger.setLevel(level)


@pytest.fixture
def directory():
    return InMemoryDirectory(
        queues=[
            Queue(id="q1", name="default-queue", cluster_id="c1", namespace="ns1"),
            Queue(id="q-orphan", name="orphan", cluster_id="c-missing", namespace="ns1"),
        ],
        clusters=[
            Cluster(id="c1", name="cluster-1", cluster_type="fake"),
            Cluster(id="c9", name="cluster-9", cluster_type="fake"),
            Cluster(id="c-odd", name="odd", cluster_type="no-such-type"),
        ],
        flavours=[Flavour(name="flavor.small", cpu="1", mem="1Gi")],
    )


@pytest.fixture
def repository():
    return InMemoryJobRepository()


@pytest.fixture
def fake_runtime():
    return Mock(spec=["create_job", "stop_job", "delete_job"])


@pytest.fixture
def registry(fake_runtime):
    return RuntimeRegistry({"fake": lambda cluster: fake_runtime})


@pytest.fixture
def orchestrator(repository, directory, registry):
    orch = JobOrchestrator(repository, directory, registry, runtime_timeout_s=5.0)
    yield orch
    orch.close()


def _build_config(**overrides) -> SingleJobConfig:
    fields = {
        "name": "job1",
        "queue_id": "q1",
        "cluster_id": "c1",
        "namespace": "ns1",
        "flavour": "flavor.small",
        "user_name": "alice",
    }
    fields.update(overrides)
    return SingleJobConfig(**fields)


@pytest.fixture
def build_config():
    """Factory for a fully-bound SingleJobConfig."""
    return _build_config


@pytest.fixture
def make_job(repository):
    """Persist a job directly in the repository with the given status."""

    def _make(job_id="job-abc12345", status=JobStatus.INIT, user_name="alice", queue_id="q1"):
        job = Job(
            id=job_id,
            user_name=user_name,
            queue_id=queue_id,
            job_type=JobType.SINGLE,
            config=_build_config(user_name=user_name, queue_id=queue_id),
            status=status,
        )
        repository.create(job)
        return job

    return _make
