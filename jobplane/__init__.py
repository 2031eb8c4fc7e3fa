"""
jobplane - Job orchestration control plane

Validates job submissions, persists job state and dispatches stop/delete
operations to per-cluster runtimes.
"""

__version__ = "0.1.0"


__all__ = ["JobplaneConfig", "load_config", "get_jobplane_home"]

from .config import JobplaneConfig, load_config, get_jobplane_home
