"""
JobOrchestrator - create, stop and delete jobs.

Ties the builder, the job repository, the directory and the runtime
registry together and enforces ordering between store and cluster:

    create: validate -> normalize priority -> persist (status init)
    stop:   authorize -> fetch -> reject terminal -> resolve cluster
            -> runtime handle -> runtime.stop_job
    delete: authorize -> fetch -> resolve cluster -> runtime handle
            -> runtime.delete_job -> repository.delete

The store is only advanced after the cluster confirms. A failed or
timed-out runtime call leaves the record untouched, so a retry can
re-derive the outcome from the backend.

Deleting a job that already finished is allowed (that is how finished
jobs are cleaned up); stopping one is not.
"""

import concurrent.futures
import dataclasses
import logging
import time
from typing import Any, Callable, Optional, Sequence

from jobplane.auth import ACTION_DELETE, ACTION_STOP, AllowAllAuthorizer, Authorizer
from jobplane.builder import JobConfigBuilder
from jobplane.context import RequestContext
from jobplane.directory import Directory
from jobplane.errors import (
    JobplaneError,
    OperationCancelledError,
    PersistenceError,
    RuntimeServiceError,
    RuntimeTimeoutError,
    StateConflictError,
    UnsupportedJobTypeError,
    ValidationError,
)
from jobplane.ids import generate_job_id
from jobplane.priority import check_priority
from jobplane.repository import JobRepository
from jobplane.runtime import RuntimeRegistry, RuntimeService
from jobplane.schemas import (
    CreateDistributedJobRequest,
    CreateJobResponse,
    CreateSingleJobRequest,
    CreateWorkflowJobRequest,
    Job,
    JobConfig,
    JobInfo,
    JobStatus,
    JobType,
)
from jobplane.utils import json_to_yaml

logger = logging.getLogger(__name__)

# How often a waiting runtime call re-checks for cancellation
_POLL_INTERVAL_S = 0.05


def validate_job(config: JobConfig) -> None:
    """
    Structural validation of a job config before admission.

    Raises:
        ValidationError: Listing every missing field
    """
    missing = [
        name for name, value in (
            ("name", config.name),
            ("queue_id", config.queue_id),
            ("cluster_id", config.cluster_id),
            ("namespace", config.namespace),
        ) if not value
    ]
    if config.job_type == JobType.SINGLE and not config.flavour:
        missing.append("flavour")
    if missing:
        raise ValidationError(f"job config is missing required fields: {missing}")
    if config.port < 0 or config.port > 65535:
        raise ValidationError(f"port out of range: {config.port}")


class JobOrchestrator:
    """
    Façade for job lifecycle operations.

    Safe to call from many request threads at once. Operations on the same
    job are not serialized here; the repository's conditional updates and
    the idempotence of stop/delete cover back-to-back calls.

    Args:
        repository: Job store
        directory: Queue/cluster/flavour lookup
        runtimes: Per-cluster runtime handle cache
        authorizer: Authorization policy (default: allow all)
        runtime_timeout_s: Upper bound for a single runtime call
        max_workers: Threads available for in-flight runtime calls
    """

    def __init__(
        self,
        repository: JobRepository,
        directory: Directory,
        runtimes: RuntimeRegistry,
        authorizer: Optional[Authorizer] = None,
        runtime_timeout_s: Optional[float] = 30.0,
        max_workers: int = 8,
    ):
        self._repository = repository
        self._directory = directory
        self._runtimes = runtimes
        self._authorizer = authorizer or AllowAllAuthorizer()
        self._builder = JobConfigBuilder(directory)
        self._runtime_timeout_s = runtime_timeout_s
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="jobplane-runtime"
        )

    def close(self) -> None:
        """Stop accepting runtime calls and release worker threads."""
        self._executor.shutdown(wait=False)

    def __enter__(self) -> "JobOrchestrator":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def create_single_job(
        self, request: CreateSingleJobRequest, ctx: Optional[RequestContext] = None
    ) -> CreateJobResponse:
        """
        Build, validate and persist a single-container job.

        The submitting user defaults to the request context's user when the
        request does not name one.

        Raises:
            ValidationError: Bad extension template or config
            InvalidPriorityError: Priority outside low/normal/high
            QueueNotFoundError / FlavourNotFoundError: Unknown references
            PersistenceError: The store rejected the record
        """
        if ctx is not None:
            ctx.check()
            if not request.user_name:
                request = dataclasses.replace(request, user_name=ctx.user_name)

        extension_template = ""
        if request.extension_template:
            try:
                extension_template = json_to_yaml(request.extension_template)
            except ValidationError as e:
                logger.error(f"Failed to parse extension template to yaml: {e}")
                raise

        conf = self._builder.build(request)
        job_id = self.create_job(conf, request.id, extension_template)
        return CreateJobResponse(id=job_id)

    def create_distributed_job(
        self, request: CreateDistributedJobRequest, ctx: Optional[RequestContext] = None
    ) -> CreateJobResponse:
        raise UnsupportedJobTypeError(JobType.DISTRIBUTED.value)

    def create_workflow_job(
        self, request: CreateWorkflowJobRequest, ctx: Optional[RequestContext] = None
    ) -> CreateJobResponse:
        raise UnsupportedJobTypeError(JobType.WORKFLOW.value)

    def create_job(
        self, config: JobConfig, requested_id: str = "", extension_template: str = ""
    ) -> str:
        """
        Admit a job: validate it and persist it with status init.

        No runtime is contacted; getting the job onto its cluster happens
        elsewhere.

        Args:
            config: Built job configuration
            requested_id: Caller-chosen job ID; generated when empty
            extension_template: YAML extension template

        Returns:
            The job ID

        Raises:
            ValidationError: Missing required fields
            InvalidPriorityError: Priority outside low/normal/high
            PersistenceError: The store rejected the record
        """
        validate_job(config)
        try:
            check_priority(config)
        except ValidationError as e:
            logger.error(f"check priority failed: {e}")
            raise

        job = Job(
            id=requested_id or generate_job_id(),
            user_name=config.user_name,
            queue_id=config.queue_id,
            job_type=config.job_type,
            config=config,
            status=JobStatus.INIT,
            extension_template=extension_template,
        )
        try:
            self._repository.create(job)
        except PersistenceError as e:
            logger.error(f"create job [{config.name}] in database failed: {e}")
            raise
        logger.info(f"create job [{job.id}] successful.")
        return job.id

    # -------------------------------------------------------------------------
    # Stop / delete
    # -------------------------------------------------------------------------

    def stop_job(self, ctx: RequestContext, job_id: str) -> None:
        """
        Stop a job on its cluster.

        Raises:
            PermissionDeniedError: Caller may not stop the job
            JobNotFoundError: No such job
            StateConflictError: The job already finished
            QueueNotFoundError / ClusterNotFoundError: Binding cannot be resolved
            RuntimeInitError: No runtime handle for the cluster
            RuntimeServiceError: The cluster call failed or timed out
            OperationCancelledError: The request was cancelled
        """
        job = self._authorized_job(ctx, job_id, ACTION_STOP)
        if job.is_terminal:
            error = StateConflictError(
                job_id, job.status,
                f"job {job_id} status is already {job.status.value}, and job cannot be stopped",
            )
            logger.error(str(error))
            raise error

        runtime = self._runtime_for(ctx, job)
        self._call_runtime(ctx, "stop", runtime.stop_job, job)
        logger.info(f"stop job [{job_id}] successful.")

    def delete_job(self, ctx: RequestContext, job_id: str) -> None:
        """
        Delete a job from its cluster, then from the store.

        Raises:
            PermissionDeniedError: Caller may not delete the job
            JobNotFoundError: No such job (including a repeated delete)
            QueueNotFoundError / ClusterNotFoundError: Binding cannot be resolved
            RuntimeInitError: No runtime handle for the cluster
            RuntimeServiceError: The cluster-side delete failed; record kept
            PersistenceError: Cluster-side delete succeeded but the record
                could not be removed
            OperationCancelledError: The request was cancelled
        """
        job = self._authorized_job(ctx, job_id, ACTION_DELETE)
        runtime = self._runtime_for(ctx, job)
        self._call_runtime(ctx, "delete", runtime.delete_job, job)

        try:
            self._repository.delete(job_id)
        except PersistenceError as e:
            logger.error(f"job {job_id} deleted from cluster, but deleting its record failed: {e}")
            raise PersistenceError(
                f"job {job_id} was deleted from its cluster, but removing the record failed: {e}"
            ) from e
        logger.info(f"delete job [{job_id}] successful.")

    def _authorized_job(self, ctx: RequestContext, job_id: str, action: str) -> Job:
        ctx.check()
        job = self._repository.get_by_id(job_id)
        self._authorizer.authorize(ctx.user_name, action, job)
        return job

    def _runtime_for(self, ctx: RequestContext, job: Job) -> RuntimeService:
        """Resolve job -> queue -> cluster -> runtime handle."""
        ctx.check()
        try:
            _, cluster = self._directory.get_cluster_for_queue(job.queue_id)
        except JobplaneError as e:
            logger.error(f"get cluster for queue {job.queue_id} of job {job.id} failed: {e}")
            raise
        return self._runtimes.get_or_create_runtime(cluster, timeout=self._deadline(ctx))

    def _deadline(self, ctx: RequestContext) -> Optional[float]:
        remaining = ctx.remaining()
        if remaining is None:
            return self._runtime_timeout_s
        if self._runtime_timeout_s is None:
            return remaining
        return min(remaining, self._runtime_timeout_s)

    def _call_runtime(
        self,
        ctx: RequestContext,
        op: str,
        call: Callable[[JobInfo], Any],
        job: Job,
    ) -> None:
        """
        Run a runtime call bounded by the request deadline.

        Error classification:
        - RuntimeServiceError: raised by the runtime, propagate
        - TimeoutError (raised, or deadline hit) -> RuntimeTimeoutError
        - Anything else -> RuntimeServiceError
        - Caller cancelled while waiting -> OperationCancelledError
        """
        ctx.check()
        info = JobInfo.from_job(job)
        timeout = self._deadline(ctx)
        future = self._executor.submit(call, info)

        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            step = _POLL_INTERVAL_S
            if deadline is not None:
                step = max(0.0, min(step, deadline - time.monotonic()))
            done, _ = concurrent.futures.wait([future], timeout=step)
            if done:
                break
            if ctx.cancelled:
                future.cancel()
                logger.warning(f"{op} job {job.id} cancelled while waiting for cluster")
                raise OperationCancelledError(
                    f"request {ctx.request_id} cancelled during {op} of job {job.id}"
                )
            if deadline is not None and time.monotonic() >= deadline:
                future.cancel()
                logger.error(f"{op} job {job.id} on cluster timed out after {timeout}s")
                raise RuntimeTimeoutError(
                    f"{op} job {job.id} on cluster {job.config.cluster_id} timed out after {timeout}s"
                )

        try:
            future.result()
        except RuntimeServiceError:
            raise
        except TimeoutError as e:
            logger.error(f"{op} job {job.id} on cluster timed out: {e}")
            raise RuntimeTimeoutError(
                f"{op} job {job.id} on cluster {job.config.cluster_id} timed out: {e}"
            ) from e
        except Exception as e:
            logger.error(f"{op} job {job.id} on cluster failed: {e}")
            raise RuntimeServiceError(
                f"{op} job {job.id} on cluster {job.config.cluster_id} failed: {e}"
            ) from e

    # -------------------------------------------------------------------------
    # Read / update pass-throughs
    # -------------------------------------------------------------------------

    def get_job(self, job_id: str) -> Job:
        return self._repository.get_by_id(job_id)

    def update_job(
        self,
        job_id: str,
        status: "JobStatus | str | None" = None,
        runtime_info: Optional[dict[str, Any]] = None,
        message: str = "",
        expected_status: Optional[JobStatus] = None,
    ) -> JobStatus:
        """Record a status observed on the cluster (used by status watchers)."""
        return self._repository.update(job_id, status, runtime_info, message, expected_status)

    def list_queue_jobs(self, queue_id: str, statuses: Sequence[JobStatus]) -> list[Job]:
        return self._repository.list_by_queue(queue_id, statuses)

    def list_run_jobs(self, run_id: str, job_id: str = "") -> list[Job]:
        return self._repository.list_by_run_prefix(run_id, job_id)
