"""ID helpers for jobs and filesystems."""

import secrets
import string

from jobplane.schemas import JOB_ID_PREFIX

# Lowercase alphanumerics keep IDs valid as backend object names
_ALPHABET = string.ascii_lowercase + string.digits
_RANDOM_LEN = 8


def generate_id(prefix: str, length: int = _RANDOM_LEN) -> str:
    """Return ``<prefix>-<random>``."""
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(length))
    return f"{prefix}-{suffix}"


def generate_job_id() -> str:
    return generate_id(JOB_ID_PREFIX)


def fs_id(user_name: str, fs_name: str) -> str:
    """Deterministic filesystem ID: fs-<user>-<name>."""
    return f"fs-{user_name}-{fs_name}"


def run_job_prefix(run_id: str) -> str:
    """ID prefix shared by every job spawned by a pipeline run."""
    return f"{JOB_ID_PREFIX}-{run_id}-"
