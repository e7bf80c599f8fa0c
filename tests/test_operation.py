"""Tests for the single outstanding operation manager."""

import threading
import time

import pytest

from boatbase.errors import DeadlineExceeded, OperationCancelled
from boatbase.operation import Operation, SingleOperationManager


def test_new_operation_supersedes_previous():
    mgr = SingleOperationManager()
    with mgr.new() as first:
        with mgr.new() as second:
            assert first.cancelled
            assert not second.cancelled
    assert not mgr.running


def test_cancel_running_wakes_sleeper():
    mgr = SingleOperationManager()
    errors = []

    def wait():
        with mgr.new() as op:
            try:
                op.sleep(10.0)
            except OperationCancelled as e:
                errors.append(e)

    t = threading.Thread(target=wait)
    t.start()
    while not mgr.running:
        time.sleep(0.01)
    mgr.cancel_running()
    t.join(timeout=2.0)

    assert not t.is_alive()
    assert len(errors) == 1
    assert not isinstance(errors[0], DeadlineExceeded)


def test_deadline():
    op = Operation(timeout=0.05)
    t0 = time.monotonic()
    with pytest.raises(DeadlineExceeded):
        op.wait_for_success(1.0, lambda: False)
    assert time.monotonic() - t0 < 0.5


def test_wait_for_success_polls_until_true():
    calls = []

    def check():
        calls.append(1)
        return len(calls) >= 3

    Operation().wait_for_success(0.01, check)
    assert len(calls) == 3


def test_deadline_is_a_cancellation():
    assert issubclass(DeadlineExceeded, OperationCancelled)
