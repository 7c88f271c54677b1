"""Shared cancellation scope for one sweep run.

One scope governs the active-set fetch and every scanner thread. It carries
an optional monotonic deadline and a cancellation flag; children see both
their own and their parent's state, so cancelling a child (e.g. when one
scanner fails) never cancels the caller's scope.
"""

from __future__ import annotations

import threading
import time
from typing import Optional

from reviewsweep_core.exceptions import DeadlineExceeded, ScanCancelled


class CancelScope:
    def __init__(self, timeout: Optional[float] = None, parent: Optional["CancelScope"] = None):
        self._event = threading.Event()
        self._parent = parent

        deadline = time.monotonic() + timeout if timeout is not None else None
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline: Optional[float] = deadline

    def child(self, timeout: Optional[float] = None) -> "CancelScope":
        return CancelScope(timeout=timeout, parent=self)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self) -> None:
        """Raise if work under this scope should stop."""
        if self.expired:
            raise DeadlineExceeded("Sweep deadline exceeded")
        if self.cancelled:
            raise ScanCancelled("Sweep cancelled")
