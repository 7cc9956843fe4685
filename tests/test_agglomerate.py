"""
tests/test_agglomerate.py
=========================
Pytest test suite for AgglomerationEngine.

The two hand-traced matrices in tests/matrices.py pin down the exact merge
sequence, including the first-found tie-break and the two-paired-clusters
shortcut.  Random matrices check the bookkeeping that must hold for every
input:

    len(amalgs) == n - 3 == (#3-way) + 2 * (#4-way)
    num_nodes   == 3n - 6
    exactly three active nodes remain
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from neighbornet._nodes import ActiveNodeList, NIL
from neighbornet._buffer import DistanceBuffer
from neighbornet._agglomerate import AgglomerationEngine
from neighbornet._backend import get_available_backends
from matrices import TWO_PAIRS, FIVE_TWO_PAIRS, random_metric, tree_metric


BACKENDS = get_available_backends()


def run_engine(D, backend="python"):
    D = np.asarray(D, dtype=np.float64)
    nodes = ActiveNodeList.for_taxa(D.shape[0])
    buffer = DistanceBuffer.from_distances(D)
    engine = AgglomerationEngine(nodes, buffer, backend)
    engine.run()
    return engine


@pytest.mark.parametrize("backend", BACKENDS)
class TestHandTraced:

    def test_two_pairs_merges(self, backend):
        engine = run_engine(TWO_PAIRS, backend)
        assert engine.rounds == 2
        assert engine.merge_counts == {"2-way": 1, "3-way": 1, "4-way": 0}
        assert not engine.special_case

    def test_two_pairs_stack_and_list(self, backend):
        engine = run_engine(TWO_PAIRS, backend)
        nodes = engine.nodes
        assert engine.amalgs == [5]
        assert list(nodes) == [6, 5, 4]
        assert (nodes.ch1[5], nodes.ch2[5]) == (3, 1)
        assert (nodes.ch1[6], nodes.ch2[6]) == (1, 2)
        assert nodes.nbr[5] == 6

    def test_five_taxa_reaches_special_case(self, backend):
        engine = run_engine(FIVE_TWO_PAIRS, backend)
        assert engine.special_case
        assert engine.rounds == 4
        assert engine.merge_counts == {"2-way": 2, "3-way": 2, "4-way": 0}
        assert engine.amalgs == [6, 8]
        assert list(engine.nodes) == [8, 7, 9]

    def test_special_case_children(self, backend):
        nodes = run_engine(FIVE_TWO_PAIRS, backend).nodes
        assert (nodes.ch1[8], nodes.ch2[8]) == (6, 5)
        assert (nodes.ch1[9], nodes.ch2[9]) == (5, 4)


class TestSelectionKernels:
    """The pure Python kernels on a small, fresh list."""

    def test_cluster_distance_singletons(self):
        nbr = np.full(5, NIL, dtype=np.int64)
        D = np.arange(25, dtype=np.float64).reshape(5, 5)
        assert AgglomerationEngine._cluster_distance(1, 2, nbr, D) == D[1, 2]

    def test_cluster_distance_pairs(self):
        nbr = np.full(5, NIL, dtype=np.int64)
        nbr[1], nbr[2] = 2, 1
        nbr[3], nbr[4] = 4, 3
        D = np.ones((5, 5))
        D[1, 3] = 5.0
        assert AgglomerationEngine._cluster_distance(1, 3, nbr, D) == pytest.approx(2.0)

    def test_cluster_sums_two_pairs(self):
        nodes = ActiveNodeList.for_taxa(4)
        nodes.pair(1, 2)
        buffer = DistanceBuffer.from_distances(TWO_PAIRS)
        AgglomerationEngine._cluster_sums(nodes.next, nodes.nbr, nodes.sx, buffer.D)
        # {1,2} sees 3 and 4 at 5 each; 3 sees {1,2} at 5 and 4 at 2.
        assert nodes.sx[1] == nodes.sx[2] == 10.0
        assert nodes.sx[3] == nodes.sx[4] == 7.0

    def test_select_first_found_wins_ties(self):
        nodes = ActiveNodeList.for_taxa(4)
        nodes.pair(1, 2)
        buffer = DistanceBuffer.from_distances(TWO_PAIRS)
        AgglomerationEngine._cluster_sums(nodes.next, nodes.nbr, nodes.sx, buffer.D)
        cx, cy = AgglomerationEngine._select_clusters(
            nodes.next, nodes.nbr, nodes.sx, buffer.D, 3
        )
        assert (cx, cy) == (3, 1)

    def test_select_never_returns_a_pair_with_itself(self):
        nodes = ActiveNodeList.for_taxa(4)
        nodes.pair(1, 2)
        nodes.pair(3, 4)
        buffer = DistanceBuffer.from_distances(TWO_PAIRS)
        AgglomerationEngine._cluster_sums(nodes.next, nodes.nbr, nodes.sx, buffer.D)
        cx, cy = AgglomerationEngine._select_clusters(
            nodes.next, nodes.nbr, nodes.sx, buffer.D, 2
        )
        assert (cx, cy) == (3, 1)
        assert nodes.nbr[cx] != cy


class TestEngineErrors:

    def test_unknown_backend(self):
        nodes = ActiveNodeList.for_taxa(4)
        buffer = DistanceBuffer.from_distances(TWO_PAIRS)
        with pytest.raises(ValueError, match="Unknown backend"):
            AgglomerationEngine(nodes, buffer, "gpu")

    def test_small_list_is_left_alone(self):
        D = np.array([[0.0, 1.0, 2.0], [1.0, 0.0, 1.0], [2.0, 1.0, 0.0]])
        engine = run_engine(D)
        assert engine.rounds == 0
        assert engine.amalgs == []


@pytest.mark.parametrize("backend", BACKENDS)
@pytest.mark.parametrize("n", [4, 5, 6, 9, 13, 20])
def test_bookkeeping_random(n, backend):
    engine = run_engine(random_metric(n, np.random.default_rng(n)), backend)
    counts = engine.merge_counts

    assert len(engine.amalgs) == n - 3
    assert counts["3-way"] + 2 * counts["4-way"] == n - 3
    assert engine.nodes.num_nodes == 3 * n - 6
    assert engine.num_active == engine.nodes.num_active == 3


@pytest.mark.parametrize("n", [6, 8, 10])
def test_bookkeeping_tree(n):
    D, _ = tree_metric(n, np.random.default_rng(100 + n))
    engine = run_engine(D)
    assert len(engine.amalgs) == n - 3
    assert engine.nodes.num_nodes == 3 * n - 6
