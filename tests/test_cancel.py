"""
tests/test_cancel.py
====================
Checkpoint and CanceledError, on their own and wired through
compute_ordering().
"""

import os
import sys
import threading

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from neighbornet import (
    CanceledError,
    Checkpoint,
    compute_ordering,
    try_compute_ordering,
    get_available_backends,
    is_circular_ordering,
    quiet,
)
from matrices import random_metric


BACKENDS = get_available_backends()


@pytest.fixture(scope="module")
def D8():
    return random_metric(8, np.random.default_rng(8))


class CountingHook:
    """Cancel hook that requests cancellation on its *after*-th call."""

    def __init__(self, after):
        self.after = after
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.calls >= self.after


class TestCheckpoint:

    def test_none_never_cancels(self):
        cp = Checkpoint()
        for _ in range(10):
            cp()
        assert cp.checks == 10
        assert not cp.cancellable

    def test_callable_true_raises(self):
        cp = Checkpoint(lambda: True)
        with pytest.raises(CanceledError):
            cp()

    def test_callable_false_passes(self):
        cp = Checkpoint(lambda: False)
        cp()
        assert cp.checks == 1
        assert cp.cancellable

    def test_event(self):
        event = threading.Event()
        cp = Checkpoint(event)
        cp()
        event.set()
        with pytest.raises(CanceledError):
            cp()

    def test_stage_in_message(self):
        cp = Checkpoint(lambda: True)
        cp.stage = "expansion"
        with pytest.raises(CanceledError, match="during expansion"):
            cp()

    def test_error_records_checks(self):
        cp = Checkpoint(CountingHook(3))
        cp()
        cp()
        with pytest.raises(CanceledError) as info:
            cp()
        assert info.value.checks == 3

    def test_wraps_checkpoint(self):
        inner = Checkpoint(lambda: True)
        outer = Checkpoint(inner)
        with pytest.raises(CanceledError):
            outer()

    def test_rejects_non_callable(self):
        with pytest.raises(TypeError, match="cancel must be"):
            Checkpoint(42)


@pytest.mark.parametrize("backend", BACKENDS)
class TestCancelledOrdering:
    """A cancel hook aborts compute_ordering without a result."""

    def test_cancel_on_first_check(self, D8, backend):
        with quiet():
            with pytest.raises(CanceledError):
                compute_ordering(D8, cancel=lambda: True, backend=backend)

    def test_hook_raising_itself(self, D8, backend):
        def hook():
            raise CanceledError("stopped by caller")

        with quiet():
            with pytest.raises(CanceledError, match="stopped by caller"):
                compute_ordering(D8, cancel=hook, backend=backend)

    def test_set_event(self, D8, backend):
        event = threading.Event()
        event.set()
        with quiet():
            with pytest.raises(CanceledError):
                compute_ordering(D8, cancel=event, backend=backend)

    def test_unset_event_completes(self, D8, backend):
        with quiet():
            ordering = compute_ordering(D8, cancel=threading.Event(), backend=backend)
        assert is_circular_ordering(ordering, 8)

    def test_cancel_during_expansion(self, D8, backend):
        """Checks passed during agglomeration, then a cancel in expansion."""
        cp = Checkpoint(lambda: cp.stage == "expansion")
        with quiet():
            with pytest.raises(CanceledError, match="expansion"):
                compute_ordering(D8, cancel=cp, backend=backend)

    def test_false_hook_is_polled(self, D8, backend):
        cp = Checkpoint(lambda: False)
        with quiet():
            compute_ordering(D8, cancel=cp, backend=backend)
        # At least one agglomeration check plus one per expansion step.
        assert cp.checks >= 1 + (8 - 3)

    def test_try_returns_none(self, D8, backend):
        with quiet():
            assert try_compute_ordering(D8, cancel=lambda: True, backend=backend) is None

    def test_try_returns_ordering(self, D8, backend):
        with quiet():
            ordering = try_compute_ordering(D8, backend=backend)
        np.testing.assert_array_equal(
            ordering, compute_ordering(D8, backend=backend)
        )


def test_small_inputs_never_poll():
    """n < 4 returns the identity without consulting the hook."""
    with quiet():
        ordering = compute_ordering(np.zeros((3, 3)), cancel=lambda: True)
    assert ordering.tolist() == [0, 1, 2, 3]


def test_python_backend_polls_per_representative(D8):
    """The python backend checks inside each round, not just once per round."""
    hook = CountingHook(after=3)
    with quiet():
        with pytest.raises(CanceledError) as info:
            compute_ordering(D8, cancel=hook, backend="python")
    assert info.value.checks == 3
    assert "agglomeration" in str(info.value)


@pytest.mark.skipif("cpu" not in BACKENDS, reason="cpu backend (numba) not available")
def test_cpu_backend_polls_once_per_round(D8):
    """Compiled kernels cannot poll, so the cpu engine checks before each round."""
    from neighbornet._nodes import ActiveNodeList
    from neighbornet._buffer import DistanceBuffer
    from neighbornet._agglomerate import AgglomerationEngine

    cp = Checkpoint(lambda: False)
    engine = AgglomerationEngine(
        ActiveNodeList.for_taxa(8), DistanceBuffer.from_distances(D8), "cpu", cp
    )
    engine.run()
    # The two-paired-clusters shortcut skips the sums and so the check.
    assert cp.checks == engine.rounds - int(engine.special_case)
