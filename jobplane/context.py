"""
RequestContext - caller identity, deadline and cancellation for one request.

Each inbound request gets its own context. The orchestrator checks it
between steps and bounds runtime calls by its remaining time.
"""

import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from jobplane.errors import OperationCancelledError


@dataclass
class RequestContext:
    """
    Attributes:
        user_name: Authenticated caller
        request_id: Correlation ID for logs
        timeout_s: Total time budget for the request (None = no deadline)
    """
    user_name: str = ""
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    timeout_s: Optional[float] = None
    _started: float = field(default_factory=time.monotonic, init=False, repr=False)
    _cancelled: threading.Event = field(default_factory=threading.Event, init=False, repr=False)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, None if there is none."""
        if self.timeout_s is None:
            return None
        return max(0.0, self.timeout_s - (time.monotonic() - self._started))

    def check(self) -> None:
        """
        Raise if the request was cancelled or its deadline passed.

        Raises:
            OperationCancelledError: If cancelled or out of time
        """
        if self.cancelled:
            raise OperationCancelledError(f"request {self.request_id} was cancelled")
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise OperationCancelledError(f"request {self.request_id} deadline exceeded")
