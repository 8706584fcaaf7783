"""Per-request deadline checked at the entry of every store operation."""

import time
from typing import Optional

from .exceptions import OperationCancelledError


class Deadline:
    """Expiry instant plus an explicit cancellation flag.

    Operations call :meth:`check` once before doing any work. Work that is
    already running is never interrupted.
    """

    def __init__(self, expires_at: Optional[float] = None):
        self.expires_at = expires_at
        self._cancelled = False

    @classmethod
    def after(cls, seconds: Optional[float]) -> "Deadline":
        """Deadline expiring ``seconds`` from now (never, if ``seconds`` is falsy)."""
        if not seconds:
            return cls()
        return cls(time.monotonic() + seconds)

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def expired(self) -> bool:
        if self._cancelled:
            return True
        return self.expires_at is not None and time.monotonic() >= self.expires_at

    def check(self) -> None:
        """Raise OperationCancelledError if the deadline has passed."""
        if self._cancelled:
            raise OperationCancelledError("operation cancelled")
        if self.expired:
            raise OperationCancelledError("deadline exceeded")


def check_deadline(deadline: Optional[Deadline]) -> None:
    """Check an optional deadline."""
    if deadline is not None:
        deadline.check()
