"""
jobplane.runtime - Cluster runtime contract and per-cluster handle cache.
"""

from .base import RuntimeService, RuntimeFactory
from .local import LocalRuntime, create_local_runtime, CLUSTER_TYPE as LOCAL_CLUSTER_TYPE
from .registry import RuntimeRegistry

__all__ = [
    "RuntimeService",
    "RuntimeFactory",
    "RuntimeRegistry",
    "LocalRuntime",
    "create_local_runtime",
    "LOCAL_CLUSTER_TYPE",
]
