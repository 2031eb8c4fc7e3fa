"""
RuntimeRegistry - process-wide cache of one RuntimeService per cluster.

The registry maps cluster types to factories and cluster IDs to live
handles. Handles are built lazily on first use and kept for the life of
the process; there is no eviction.

Construction is single-flight per cluster: when several threads ask for
the same uninitialized cluster at once, one of them builds the handle and
the others wait for that result. A failed construction is reported to
every waiter and is not cached, so a later call may try again.

Usage:
    registry = RuntimeRegistry()
    registry.register_factory("local", create_local_runtime)

    runtime = registry.get_or_create_runtime(cluster)
    runtime.stop_job(job_info)
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

from jobplane.errors import RuntimeInitError
from jobplane.schemas import Cluster

from .base import RuntimeFactory, RuntimeService

logger = logging.getLogger(__name__)


@dataclass
class _Construction:
    """An in-flight handle construction other callers can wait on."""
    done: threading.Event = field(default_factory=threading.Event)
    handle: Optional[RuntimeService] = None
    error: Optional[RuntimeInitError] = None


class RuntimeRegistry:
    """
    Registry of runtime factories and cached per-cluster handles.

    Cache key is the cluster ID. Cluster connection info is assumed stable
    for the process lifetime: a cluster whose info changes keeps its
    original handle.
    """

    def __init__(self, factories: Optional[dict[str, RuntimeFactory]] = None) -> None:
        self._factories: dict[str, RuntimeFactory] = dict(factories or {})
        self._runtimes: dict[str, RuntimeService] = {}
        self._inflight: dict[str, _Construction] = {}
        self._lock = threading.Lock()

    def register_factory(self, cluster_type: str, factory: RuntimeFactory) -> None:
        """
        Register the factory used to build handles for a cluster type.

        Args:
            cluster_type: Cluster type name (e.g. local, kubernetes)
            factory: Callable building a RuntimeService from a Cluster
        """
        with self._lock:
            self._factories[cluster_type] = factory

    def list_cluster_types(self) -> list[str]:
        with self._lock:
            return sorted(self._factories)

    def has_runtime(self, cluster_id: str) -> bool:
        """True if a handle for cluster_id is cached."""
        with self._lock:
            return cluster_id in self._runtimes

    def list_clusters(self) -> list[str]:
        """IDs of clusters with a cached handle."""
        with self._lock:
            return sorted(self._runtimes)

    def get_or_create_runtime(
        self, cluster: Cluster, timeout: Optional[float] = None
    ) -> RuntimeService:
        """
        Return the cached handle for a cluster, building it on first use.

        Args:
            cluster: Cluster record with connection info
            timeout: Max seconds to wait for another caller's in-flight
                construction (None waits indefinitely)

        Returns:
            The cluster's RuntimeService (same instance on every call)

        Raises:
            RuntimeInitError: If construction fails, the cluster type has no
                factory, or waiting for a concurrent construction timed out
        """
        with self._lock:
            runtime = self._runtimes.get(cluster.id)
            if runtime is not None:
                return runtime

            construction = self._inflight.get(cluster.id)
            leader = construction is None
            if leader:
                construction = _Construction()
                self._inflight[cluster.id] = construction
                factory = self._factories.get(cluster.cluster_type)

        if not leader:
            return self._wait_for(cluster, construction, timeout)

        # Build outside the lock so other clusters are not blocked
        handle: Optional[RuntimeService] = None
        error: Optional[RuntimeInitError] = None
        try:
            if factory is None:
                raise RuntimeInitError(
                    f"no runtime factory registered for cluster type "
                    f"{cluster.cluster_type!r} (cluster {cluster.id})"
                )
            handle = factory(cluster)
            if handle is None:
                raise RuntimeInitError(f"runtime factory for cluster {cluster.id} returned no handle")
        except RuntimeInitError as e:
            error = e
        except Exception as e:
            error = RuntimeInitError(f"create runtime for cluster {cluster.id} failed: {e}")
            error.__cause__ = e
        finally:
            with self._lock:
                if handle is not None:
                    self._runtimes[cluster.id] = handle
                self._inflight.pop(cluster.id, None)
            construction.handle = handle
            construction.error = error
            construction.done.set()

        if error is not None:
            logger.error(f"get or create runtime failed: {error}")
            raise error
        logger.info(f"Created runtime for cluster {cluster.id} (type={cluster.cluster_type})")
        return handle

    def _wait_for(
        self, cluster: Cluster, construction: _Construction, timeout: Optional[float]
    ) -> RuntimeService:
        if not construction.done.wait(timeout):
            raise RuntimeInitError(
                f"timed out waiting for runtime construction of cluster {cluster.id}"
            )
        if construction.error is not None:
            raise RuntimeInitError(str(construction.error)) from construction.error
        if construction.handle is None:
            raise RuntimeInitError(f"runtime construction of cluster {cluster.id} was aborted")
        return construction.handle
