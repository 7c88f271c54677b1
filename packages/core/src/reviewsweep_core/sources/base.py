"""Abstract source of open review requests.

Any source-control system (GitLab, GitHub) implements this interface. The
runner depends on ActiveSetProvider, not on a concrete host, so the ground
truth can come from either without touching the scan engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from reviewsweep_core.scope import CancelScope


class ActiveSetProvider(ABC):
    """Fetches the set of currently open review ids.

    Called once per run, before any scanner starts. Implementations must
    raise ActiveSetFetchError on any failure; there is no valid orphan
    determination without a ground truth.
    """

    name: str = ""

    @abstractmethod
    def fetch(self, scope: Optional[CancelScope] = None) -> frozenset[int]:
        """Return the ids of all open review requests."""

    def close(self) -> None:
        """Release any resources held by the provider (HTTP sessions)."""
