"""
tests/test_buffer.py
====================
Pytest test suite for DistanceBuffer.
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from neighbornet._buffer import DistanceBuffer
from matrices import TWO_PAIRS


class TestInit:

    def test_size(self):
        buf = DistanceBuffer(6)
        assert buf.size == 13
        assert buf.D.shape == (13, 13)
        assert buf.nbytes == 13 * 13 * 8

    def test_from_distances_offsets_by_one(self):
        buf = DistanceBuffer.from_distances(TWO_PAIRS)
        assert buf.size == 7
        np.testing.assert_array_equal(buf.D[1:5, 1:5], TWO_PAIRS)
        assert np.all(buf.D[0, :] == 0.0)
        assert np.all(buf.D[5:, :] == 0.0)

    def test_indexed_by_taxon_id(self):
        buf = DistanceBuffer.from_distances(TWO_PAIRS)
        assert buf.D[1, 2] == 2.0
        assert buf.D[2, 3] == 5.0

    def test_init_from_wrong_shape(self):
        buf = DistanceBuffer(4)
        with pytest.raises(ValueError, match="4x4"):
            buf.init_from(np.zeros((3, 3)))

    def test_init_from_clears_old_rows(self):
        buf = DistanceBuffer.from_distances(TWO_PAIRS)
        buf.D[6, 1] = 42.0
        buf.init_from(TWO_PAIRS)
        assert buf.D[6, 1] == 0.0


class TestThreeWayUpdate:
    """update_three_way() on the 2+2 matrix: merge (3, 1, 2) into u=5, v=6."""

    @pytest.fixture
    def updated(self):
        buf = DistanceBuffer.from_distances(TWO_PAIRS)
        active = np.array([6, 5, 4], dtype=np.int64)
        buf.update_three_way(3, 1, 2, 5, 6, active)
        return buf

    def test_u_row(self, updated):
        # D[5, 4] = 2/3 D[3, 4] + 1/3 D[1, 4]
        assert updated.D[5, 4] == pytest.approx(2.0 / 3.0 * 2.0 + 5.0 / 3.0)

    def test_v_row(self, updated):
        # D[6, 4] = 2/3 D[2, 4] + 1/3 D[1, 4]
        assert updated.D[6, 4] == pytest.approx(5.0)

    def test_symmetric(self, updated):
        np.testing.assert_array_equal(updated.D, updated.D.T)

    def test_zero_diagonal(self, updated):
        assert updated.D[5, 5] == 0.0
        assert updated.D[6, 6] == 0.0

    def test_u_v_distance_is_zero(self, updated):
        assert updated.D[5, 6] == 0.0

    def test_input_rows_untouched(self, updated):
        np.testing.assert_array_equal(updated.D[1:5, 1:5], TWO_PAIRS)
