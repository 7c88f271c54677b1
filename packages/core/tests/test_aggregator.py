"""Tests for the concurrent fan-in of scanner results."""

import os
import subprocess
import sys
import textwrap
import threading
import time
from pathlib import Path

import pytest

from reviewsweep_core.aggregator import DanglingItem, aggregate
from reviewsweep_core.exceptions import DeadlineExceeded, ReviewIdParseError, ScanError
from reviewsweep_core.scanners.base import NamingRule, ResourceScanner
from reviewsweep_core.scope import CancelScope


class _ListScanner(ResourceScanner):
    rule = NamingRule(pattern=r"^r-", index=1)

    def __init__(self, label, names, delay=0.0):
        self.label = label
        self.names = names
        self.delay = delay

    def list_names(self, scope):
        if self.delay:
            time.sleep(self.delay)
        return list(self.names)


class _FailingScanner(ResourceScanner):
    rule = NamingRule(pattern=r"^r-", index=1)

    def __init__(self, label, error):
        self.label = label
        self.error = error

    def list_names(self, scope):
        raise self.error


class _BlockingScanner(ResourceScanner):
    """Blocks until its scope is cancelled (or a safety timeout passes)."""

    rule = NamingRule(pattern=r"^r-", index=1)

    def __init__(self, label):
        self.label = label
        self.saw_cancel = threading.Event()
        self.release = threading.Event()

    def list_names(self, scope):
        waited = 0.0
        while waited < 5.0 and not self.release.is_set():
            if scope.cancelled:
                self.saw_cancel.set()
                break
            time.sleep(0.01)
            waited += 0.01
        return ["r-1"]


def _names(*ids):
    return [f"r-{i}" for i in ids]


def test_no_scanners_completes_immediately():
    assert list(aggregate([], frozenset({1}))) == []


def test_merged_output_is_union_tagged_by_backend():
    scanners = [
        _ListScanner("k8s", _names(12, 13)),
        _ListScanner("mongo", _names(3, 3, 5)),
        _ListScanner("minio", _names(8)),
    ]
    items = list(aggregate(scanners, frozenset({5})))

    assert sorted((i.backend, i.review_id) for i in items) == [
        ("k8s", 12),
        ("k8s", 13),
        ("minio", 8),
        ("mongo", 3),
        ("mongo", 3),
    ]


def test_per_backend_order_is_preserved():
    scanners = [
        _ListScanner("a", _names(9, 1, 7, 3), delay=0.02),
        _ListScanner("b", _names(4, 2, 8)),
    ]
    items = list(aggregate(scanners, frozenset()))

    assert [i.review_id for i in items if i.backend == "a"] == [9, 1, 7, 3]
    assert [i.review_id for i in items if i.backend == "b"] == [4, 2, 8]


def test_items_are_yielded_before_slow_backends_finish():
    fast = _ListScanner("fast", _names(1))
    slow = _BlockingScanner("slow")
    stream = aggregate([fast, slow], frozenset())

    first = next(stream)
    assert first == DanglingItem(review_id=1, backend="fast")
    assert not slow.saw_cancel.is_set()

    slow.release.set()
    rest = list(stream)
    assert rest == [DanglingItem(review_id=1, backend="slow")]


def test_all_active_yields_nothing():
    scanners = [_ListScanner("k8s", _names(1, 2)), _ListScanner("minio", _names(2))]
    assert list(aggregate(scanners, frozenset({1, 2}))) == []


def test_first_failure_is_raised():
    scanners = [
        _ListScanner("k8s", _names(1)),
        _FailingScanner("minio", ConnectionError("refused")),
    ]
    with pytest.raises(ScanError) as exc_info:
        list(aggregate(scanners, frozenset()))
    assert exc_info.value.backend == "minio"


def test_parse_error_is_raised_unchanged():
    scanners = [_ListScanner("minio", ["r-abc"])]
    with pytest.raises(ReviewIdParseError):
        list(aggregate(scanners, frozenset()))


def test_failure_cancels_running_scanners():
    blocking = _BlockingScanner("k8s")
    scanners = [blocking, _FailingScanner("mongo", RuntimeError("boom"))]

    with pytest.raises(ScanError):
        list(aggregate(scanners, frozenset()))

    assert blocking.saw_cancel.wait(timeout=2.0)


def test_failure_does_not_cancel_callers_scope():
    scope = CancelScope()
    with pytest.raises(ScanError):
        list(aggregate([_FailingScanner("mongo", RuntimeError("boom"))], frozenset(), scope=scope))
    assert not scope.cancelled


def test_non_sweep_exception_escaping_scan_is_wrapped():
    class _Broken(_ListScanner):
        def scan(self, active_set, scope=None):
            raise KeyError("surprise")

    with pytest.raises(ScanError) as exc_info:
        list(aggregate([_Broken("k8s", [])], frozenset()))
    assert exc_info.value.backend == "k8s"
    assert isinstance(exc_info.value.__cause__, KeyError)


def test_deadline_while_waiting_raises():
    blocking = _BlockingScanner("k8s")
    try:
        with pytest.raises(DeadlineExceeded):
            list(aggregate([blocking], frozenset(), scope=CancelScope(timeout=0.1)))
        assert blocking.saw_cancel.wait(timeout=2.0)
    finally:
        blocking.release.set()


def test_abandoned_stream_cancels_scanners():
    fast = _ListScanner("fast", _names(1))
    blocking = _BlockingScanner("slow")
    stream = aggregate([fast, blocking], frozenset())
    next(stream)
    stream.close()
    assert blocking.saw_cancel.wait(timeout=2.0)


def test_repeated_runs_give_same_set():
    scanners = [_ListScanner("k8s", _names(4, 5)), _ListScanner("mongo", _names(6))]
    first = {(i.backend, i.review_id) for i in aggregate(scanners, frozenset({5}))}
    second = {(i.backend, i.review_id) for i in aggregate(scanners, frozenset({5}))}
    assert first == second == {("k8s", 4), ("mongo", 6)}


def test_deadline_inside_scanner_names_the_backend():
    scanners = [_FailingScanner("mongo", DeadlineExceeded("Sweep deadline exceeded"))]
    with pytest.raises(DeadlineExceeded) as exc_info:
        list(aggregate(scanners, frozenset()))
    assert exc_info.value.context["backend"] == "mongo"
    assert "mongo" in exc_info.value.detail


_HUNG_BACKEND_SCRIPT = textwrap.dedent(
    """
    import time

    from reviewsweep_core.aggregator import aggregate
    from reviewsweep_core.exceptions import ReviewIdParseError
    from reviewsweep_core.scanners.base import NamingRule, ResourceScanner


    class Hung(ResourceScanner):
        label = "k8s"
        rule = NamingRule(pattern=r"^r-", index=1)

        def list_names(self, scope):
            time.sleep(30)
            return []


    class Bad(ResourceScanner):
        label = "minio"
        rule = NamingRule(pattern=r"^r-", index=1)

        def list_names(self, scope):
            return ["r-abc"]


    try:
        list(aggregate([Hung(), Bad()], frozenset()))
    except ReviewIdParseError:
        print("failed fast")
    """
)


def test_process_exits_while_a_backend_call_still_hangs():
    src = Path(__file__).resolve().parents[1] / "src"
    env = {**os.environ, "PYTHONPATH": os.pathsep.join(filter(None, [str(src), os.environ.get("PYTHONPATH")]))}

    start = time.monotonic()
    result = subprocess.run(
        [sys.executable, "-c", _HUNG_BACKEND_SCRIPT],
        capture_output=True,
        text=True,
        env=env,
        timeout=25,
    )

    assert result.returncode == 0, result.stderr
    assert "failed fast" in result.stdout
    assert time.monotonic() - start < 10
