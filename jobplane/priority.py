"""Priority policy: normalize and validate job priority labels."""

from jobplane.errors import InvalidPriorityError
from jobplane.schemas import DEFAULT_PRIORITY, JobConfig, Priority

VALID_PRIORITIES = frozenset(p.value for p in Priority)


def normalize_priority(priority: str) -> str:
    """
    Return the effective priority label.

    Empty means the default (normal); otherwise the label must be one of
    low, normal, high.

    Raises:
        InvalidPriorityError: For any other label
    """
    if not priority:
        return DEFAULT_PRIORITY
    if priority not in VALID_PRIORITIES:
        raise InvalidPriorityError(priority)
    return priority


def check_priority(config: JobConfig) -> None:
    """Normalize config.priority in place."""
    config.priority = normalize_priority(config.priority)
