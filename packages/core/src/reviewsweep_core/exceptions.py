"""reviewsweep exceptions.

Every error carries the pipeline stage it belongs to so the CLI can tell the
user whether the config, the active-set fetch, or a particular backend scan
failed.
"""

from __future__ import annotations

from typing import Any


class SweepError(Exception):
    """Base exception for all reviewsweep errors."""

    stage: str = "sweep"

    def __init__(self, detail: str = "An error occurred", context: dict[str, Any] | None = None):
        self.detail = detail
        self.context = context or {}
        super().__init__(detail)


class ConfigError(SweepError):
    """Raised when the credentials/config file is missing, unreadable or incomplete."""

    stage = "config"


class ActiveSetFetchError(SweepError):
    """Raised when the open review requests cannot be retrieved or parsed."""

    stage = "active-set"


class ScanError(SweepError):
    """Raised when one backend scanner fails."""

    def __init__(self, backend: str, detail: str = "Scan failed", context: dict[str, Any] | None = None):
        self.backend = backend
        super().__init__(detail=detail, context={"backend": backend, **(context or {})})

    @property
    def stage(self) -> str:  # type: ignore[override]
        return f"scan:{self.backend}"


class ReviewIdParseError(ScanError):
    """A review-owned resource name whose identifier segment is not an integer.

    This means the naming convention drifted, so the scan must not go on and
    silently mis-detect.
    """

    def __init__(self, backend: str, name: str, segment: str | None):
        self.name = name
        self.segment = segment
        if segment is None:
            detail = f"Resource {name!r} has no review id segment"
        else:
            detail = f"Resource {name!r} has a non-integer review id segment {segment!r}"
        super().__init__(backend, detail=detail, context={"name": name, "segment": segment})


class ScanCancelled(SweepError):
    """Raised inside a scanner once the shared scope is cancelled."""

    stage = "cancelled"


class DeadlineExceeded(SweepError):
    """Raised when the run-wide deadline expires."""

    stage = "deadline"
