"""
JobConfigBuilder - turn a submission request into a validated JobConfig.

Build steps, in order (each one a precondition for the next):
1. Copy request fields verbatim
2. Resolve the queue -> queue ID, queue name env, cluster ID, namespace
3. Normalize priority
4. Resolve the flavour
5. Derive the filesystem ID
6. Tag job kind and submitting user

Only directory lookups and pure validation happen here; nothing is
persisted and no runtime is contacted.
"""

import copy
import logging

from jobplane.directory import Directory
from jobplane.errors import FlavourNotFoundError, QueueNotFoundError
from jobplane.ids import fs_id
from jobplane.priority import normalize_priority
from jobplane.schemas import (
    ENV_JOB_QUEUE_NAME,
    ENV_JOB_TYPE,
    POD_JOB_MARKER,
    CreateSingleJobRequest,
    SingleJobConfig,
)

logger = logging.getLogger(__name__)


class JobConfigBuilder:
    """Builds SingleJobConfig objects from CreateSingleJobRequest."""

    def __init__(self, directory: Directory):
        self._directory = directory

    def build(self, request: CreateSingleJobRequest) -> SingleJobConfig:
        """
        Build a fully-populated config.

        Raises:
            QueueNotFoundError: If the scheduling queue does not exist
            InvalidPriorityError: If the requested priority is not low/normal/high
            FlavourNotFoundError: If the flavour does not exist
        """
        logger.debug(f"Building config for job {request.name!r}")

        conf = SingleJobConfig(
            name=request.name,
            labels=dict(request.labels),
            annotations=dict(request.annotations),
            env=dict(request.env),
            port=request.port,
            image=request.image,
            command=request.command,
            args=list(request.args),
            file_system=copy.copy(request.file_system),
            extra_file_systems=[copy.copy(fs) for fs in request.extra_file_systems],
        )

        queue_id = request.scheduling_policy.queue
        try:
            queue = self._directory.get_queue_by_id(queue_id)
        except QueueNotFoundError as e:
            logger.error(f"Get queue by id {queue_id!r} failed when creating job {request.name}: {e}")
            raise
        conf.queue_id = queue.id
        conf.set_env(ENV_JOB_QUEUE_NAME, queue.name)
        conf.cluster_id = queue.cluster_id
        conf.namespace = queue.namespace

        conf.priority = normalize_priority(request.scheduling_policy.priority)

        try:
            flavour = self._directory.get_flavour_by_name(request.flavour)
        except FlavourNotFoundError as e:
            logger.error(
                f"Get flavour by name {request.flavour!r} failed when creating job {request.name}: {e}"
            )
            raise
        conf.flavour = flavour.name

        if request.file_system.name:
            conf.fs_id = fs_id(request.user_name, request.file_system.name)

        conf.set_env(ENV_JOB_TYPE, POD_JOB_MARKER)
        conf.user_name = request.user_name
        return conf
