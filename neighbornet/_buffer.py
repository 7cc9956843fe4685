"""
_buffer.py
==========
Working distance matrix for the NeighborNet agglomeration.

The input n x n matrix is copied into the top-left corner of a larger
(3n-5) x (3n-5) float64 buffer indexed by node ID (row/column 0 belongs to
the list header and stays zero).  Every 3-way merge creates two new node IDs
whose rows are filled in by ``update_three_way``; no other rows change after
construction.
"""

import numpy as np


class DistanceBuffer:
    """
    Symmetric distance matrix sized for every node the agglomeration can
    create.

    Attributes
    ----------
    n_taxa : int
    size   : int                 Side length, ``3 * n_taxa - 5``.
    D      : float64[size, size] The matrix; ``D[i, j]`` for node IDs i, j.
    """

    def __init__(self, n_taxa: int, size: int = None) -> None:
        if size is None:
            size = max(3 * n_taxa - 5, n_taxa + 1)
        self.n_taxa: int = n_taxa
        self.size: int = size
        self.D = np.zeros((size, size), dtype=np.float64)

    @classmethod
    def from_distances(cls, distances: np.ndarray) -> "DistanceBuffer":
        """Allocate a buffer for *distances* (n x n, 0-indexed) and fill it."""
        buf = cls(int(distances.shape[0]))
        buf.init_from(distances)
        return buf

    def init_from(self, distances: np.ndarray) -> None:
        """
        Copy *distances* into ``D[1..n, 1..n]`` and zero everything else.

        Parameters
        ----------
        distances : float64[n, n]
            Row/column ``i`` is taxon ``i + 1``.
        """
        n = self.n_taxa
        if distances.shape != (n, n):
            raise ValueError(
                f"expected a {n}x{n} matrix, got shape {distances.shape}"
            )
        self.D.fill(0.0)
        self.D[1 : n + 1, 1 : n + 1] = distances

    def update_three_way(
        self, x: int, y: int, z: int, u: int, v: int, active: np.ndarray
    ) -> None:
        """
        Fill the rows of the merge nodes *u* (from x, y) and *v* (from y, z).

        For every active node p:

            D[u, p] = D[p, u] = 2/3 D[x, p] + 1/3 D[y, p]
            D[v, p] = D[p, v] = 2/3 D[z, p] + 1/3 D[y, p]

        *active* must already contain u and v in place of x and z.  Neither
        x, y nor z has an entry for the fresh IDs, so D[u, v] stays zero.
        """
        D = self.D
        D[u, active] = (2.0 / 3.0) * D[x, active] + D[y, active] / 3.0
        D[active, u] = D[u, active]
        D[v, active] = (2.0 / 3.0) * D[z, active] + D[y, active] / 3.0
        D[active, v] = D[v, active]
        D[u, u] = 0.0
        D[v, v] = 0.0

    @property
    def nbytes(self) -> int:
        return self.D.nbytes
