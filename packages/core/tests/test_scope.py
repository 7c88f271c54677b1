"""Tests for CancelScope."""

import pytest

from reviewsweep_core.exceptions import DeadlineExceeded, ScanCancelled
from reviewsweep_core.scope import CancelScope


def test_fresh_scope_has_no_deadline():
    scope = CancelScope()
    assert scope.remaining() is None
    assert not scope.expired
    assert not scope.cancelled
    scope.check()


def test_cancel_makes_check_raise():
    scope = CancelScope()
    scope.cancel()
    with pytest.raises(ScanCancelled):
        scope.check()


def test_expired_deadline_raises():
    scope = CancelScope(timeout=0)
    assert scope.expired
    assert scope.remaining() == 0.0
    with pytest.raises(DeadlineExceeded):
        scope.check()


def test_child_sees_parent_cancellation():
    parent = CancelScope()
    child = parent.child()
    parent.cancel()
    assert child.cancelled


def test_cancelling_child_leaves_parent_alone():
    parent = CancelScope()
    child = parent.child()
    child.cancel()
    assert child.cancelled
    assert not parent.cancelled


def test_child_inherits_earlier_deadline():
    parent = CancelScope(timeout=10)
    assert parent.child().deadline == parent.deadline
    assert parent.child(timeout=60).deadline == parent.deadline
    assert parent.child(timeout=1).deadline < parent.deadline
