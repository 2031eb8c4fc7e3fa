"""
Authorization capability for orchestration calls.

The orchestrator calls ``authorize(subject, action, resource)`` before any
mutation or runtime call. Implementations raise PermissionDeniedError to deny.
"""

from typing import Iterable, Protocol, runtime_checkable

from jobplane.errors import PermissionDeniedError
from jobplane.schemas import Job

# Actions passed to Authorizer.authorize
ACTION_STOP = "stop"
ACTION_DELETE = "delete"


@runtime_checkable
class Authorizer(Protocol):
    """
    Protocol for authorization checks.

    Keeping the check behind this interface lets the policy be replaced
    without touching orchestration logic.
    """

    def authorize(self, subject: str, action: str, resource: Job) -> None:
        """
        Allow or deny ``subject`` performing ``action`` on ``resource``.

        Raises:
            PermissionDeniedError: If the action is denied
        """
        ...


class AllowAllAuthorizer:
    """Permissive authorizer: every action is allowed."""

    def authorize(self, subject: str, action: str, resource: Job) -> None:
        return None


class OwnerAuthorizer:
    """
    Allow the job's owner and a fixed set of admin users.

    Args:
        admins: User names allowed to act on every job
    """

    def __init__(self, admins: Iterable[str] = ("root",)):
        self._admins = frozenset(admins)

    def authorize(self, subject: str, action: str, resource: Job) -> None:
        if subject in self._admins or subject == resource.user_name:
            return
        raise PermissionDeniedError(subject, action, f"job {resource.id}")
