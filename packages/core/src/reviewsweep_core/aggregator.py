"""Fan-in of concurrent backend scans.

Every scanner runs in its own worker thread against the same frozen active
set. Workers never talk to each other; each posts its dangling ids and then
exactly one terminal event (done or failed) onto a single queue, tagged with
the worker's index. The consumer below counts terminal events, so adding a
backend never touches this module.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import AbstractSet, Iterator, NamedTuple, Optional, Sequence

from reviewsweep_core.exceptions import DeadlineExceeded, ScanCancelled, ScanError, SweepError
from reviewsweep_core.scanners.base import ResourceScanner
from reviewsweep_core.scope import CancelScope

logger = logging.getLogger(__name__)

_ITEM = "item"
_DONE = "done"
_FAILED = "failed"


@dataclass(frozen=True)
class DanglingItem:
    """One dangling review id, tagged with the backend that reported it."""

    review_id: int
    backend: str


class _Event(NamedTuple):
    task: int
    kind: str
    payload: object = None


def _run_scanner(
    task: int,
    scanner: ResourceScanner,
    active_set: AbstractSet[int],
    scope: CancelScope,
    events: queue.Queue,
) -> None:
    try:
        review_ids = scanner.scan(active_set, scope=scope)
        for review_id in review_ids:
            events.put(_Event(task, _ITEM, review_id))
    except Exception as e:
        events.put(_Event(task, _FAILED, e))
        return
    events.put(_Event(task, _DONE))


def aggregate(
    scanners: Sequence[ResourceScanner],
    active_set: AbstractSet[int],
    scope: Optional[CancelScope] = None,
) -> Iterator[DanglingItem]:
    """Run every scanner concurrently and yield their dangling items as they arrive.

    Items from one backend keep that backend's enumeration order; across
    backends the interleaving is whatever the threads produce. The generator
    ends once every scanner has reported its terminal event. The first
    failure cancels the remaining scanners and is raised to the caller;
    DeadlineExceeded is raised if the scope's deadline passes while waiting.
    """
    if not scanners:
        return

    run_scope = (scope or CancelScope()).child()
    events: queue.Queue = queue.Queue()
    try:
        for task, scanner in enumerate(scanners):
            # Daemon threads: a straggler stuck in a backend call must not keep the process alive.
            threading.Thread(
                target=_run_scanner,
                args=(task, scanner, active_set, run_scope, events),
                name=f"reviewsweep-scan-{scanner.label}",
                daemon=True,
            ).start()

        pending = len(scanners)
        while pending:
            try:
                event = events.get(timeout=run_scope.remaining())
            except queue.Empty:
                raise DeadlineExceeded("Sweep deadline exceeded while waiting for scanners") from None

            scanner = scanners[event.task]
            if event.kind == _ITEM:
                yield DanglingItem(review_id=event.payload, backend=scanner.label)
            elif event.kind == _DONE:
                pending -= 1
                logger.debug("Scanner %s finished; %d still running", scanner.label, pending)
            else:
                error = event.payload
                logger.debug("Scanner %s failed: %s", scanner.label, error)
                if isinstance(error, (DeadlineExceeded, ScanCancelled)):
                    raise type(error)(
                        f"{error.detail} while scanning {scanner.label}",
                        context={**error.context, "backend": scanner.label},
                    ) from error
                if isinstance(error, SweepError):
                    raise error
                raise ScanError(scanner.label, detail=f"{type(error).__name__}: {error}") from error
    finally:
        # Stops stragglers after a failure, deadline, or an abandoned generator.
        run_scope.cancel()
