"""
_agglomerate.py
===============
The agglomeration phase of NeighborNet (Bryant & Moulton 2004).

Starting from one singleton cluster per taxon, each round either pairs two
singleton nodes (a 2-way merge) or collapses three or four nodes into two new
ones (3-way and 4-way merges), until at most three active nodes remain.
Every 3-way amalgamation pushes its first new node onto a stack that the
expansion phase later unwinds in reverse.

Selection criterion
-------------------
Clusters hold one or two nodes.  With Dbar(p, q) the distance between two
clusters averaged over their 1, 2 or 4 node combinations, and
Sx[p] = sum over other clusters q of Dbar(p, q), the pair of clusters
minimising

    Q(p, q) = (num_clusters - 2) * Dbar(p, q) - Sx[p] - Sx[q]

is merged.  Inside the winning clusters (Cx, Cy) the specific nodes (x, y)
minimise (m - 2) * D[x, y] - Rx[x] - Rx[y], where m counts Cx and Cy by their
nodes rather than as clusters.

Backends
--------
The O(n^2) kernels (cluster sums, cluster selection, Rx) exist as pure
Python static methods on ``AgglomerationEngine`` and as numba kernels in
``_cpu_kernels``; both share argument order and arithmetic.  The list and
matrix bookkeeping of a merge is always done here, in Python/numpy.
"""

import logging
from typing import List, Optional

from neighbornet._nodes import ActiveNodeList, NIL, HEAD
from neighbornet._buffer import DistanceBuffer
from neighbornet._cancel import Checkpoint
from neighbornet._backend import import_cpu_kernels


logger = logging.getLogger(__name__)


class AgglomerationEngine:
    """
    Reduce the active node list to three nodes, recording amalgamations.

    Parameters
    ----------
    nodes : ActiveNodeList
        List holding the taxa, as built by ``ActiveNodeList.for_taxa``.
    buffer : DistanceBuffer
        Working distances for the same taxa.
    backend : str, default 'python'
        Resolved backend name, 'python' or 'cpu'.
    checkpoint : Checkpoint, optional
        Cancellation checkpoint, polled once per cluster representative while
        accumulating sums ('python') or once per round ('cpu').

    Attributes
    ----------
    amalgs       : list[int]        Stack of u-node IDs, in creation order.
    num_active   : int              Active nodes.
    num_clusters : int              Active clusters.
    rounds       : int              Loop iterations performed by ``run``.
    merge_counts : dict[str, int]   Merges performed, by kind.
    special_case : bool             Whether the two-pair shortcut ran.
    """

    def __init__(
        self,
        nodes: ActiveNodeList,
        buffer: DistanceBuffer,
        backend: str = "python",
        checkpoint: Optional[Checkpoint] = None,
    ) -> None:
        self.nodes = nodes
        self.buffer = buffer
        self.backend = backend
        self.checkpoint = checkpoint if checkpoint is not None else Checkpoint()

        self.amalgs: List[int] = []
        self.num_active: int = nodes.num_active
        self.num_clusters: int = nodes.num_clusters()
        self.rounds = 0
        self.merge_counts = {"2-way": 0, "3-way": 0, "4-way": 0}
        self.special_case = False

        if backend == "python":
            self._sums_kernel = AgglomerationEngine._cluster_sums
            self._select_kernel = AgglomerationEngine._select_clusters
            self._rx_kernel = AgglomerationEngine._compute_rx
        elif backend == "cpu":
            ok, sums_nb, select_nb, rx_nb = import_cpu_kernels()
            if not ok:
                raise RuntimeError("cpu backend requested but numba kernels are unavailable")
            self._sums_kernel = sums_nb
            self._select_kernel = select_nb
            self._rx_kernel = rx_nb
        else:
            raise ValueError(f"Unknown backend {backend!r}")

    # ================================================================== #
    # Main loop                                                           #
    # ================================================================== #

    def run(self) -> List[int]:
        """
        Agglomerate until no more than three active nodes remain.

        Returns
        -------
        list[int]
            The amalgamation stack (u-node IDs in creation order).

        Raises
        ------
        CanceledError
            If the checkpoint requests cancellation.
        """
        self.checkpoint.stage = "agglomeration"
        nodes = self.nodes
        D = self.buffer.D

        while self.num_active > 3:
            self.rounds += 1

            # Two paired clusters left: the Q-criterion would divide by
            # (num_clusters - 2) == 0.
            if self.num_active == 4 and self.num_clusters == 2:
                self._resolve_two_pairs()
                break

            self._accumulate_sums()

            cx, cy = self._select_kernel(
                nodes.next, nodes.nbr, nodes.sx, D, self.num_clusters
            )
            cx, cy = int(cx), int(cy)
            if cx == NIL:
                raise RuntimeError(
                    "Internal error: no cluster pair found with "
                    f"{self.num_active} active nodes"
                )

            x, y = self._select_nodes(cx, cy)
            self._merge(x, y)

        return self.amalgs

    def _accumulate_sums(self) -> None:
        nodes = self.nodes
        if self.backend == "python":
            self._sums_kernel(
                nodes.next, nodes.nbr, nodes.sx, self.buffer.D, self.checkpoint
            )
        else:
            self.checkpoint()
            self._sums_kernel(nodes.next, nodes.nbr, nodes.sx, self.buffer.D)

    def _resolve_two_pairs(self) -> None:
        """
        Collapse two paired clusters {p, p'} and {q, q'} into three nodes,
        interleaving them the way that gives the smaller pair-sum.
        """
        nodes = self.nodes
        D = self.buffer.D
        p = nodes.first
        p_nbr = int(nodes.nbr[p])
        if int(nodes.next[p]) != p_nbr:
            q = int(nodes.next[p])
        else:
            q = int(nodes.next[nodes.next[p]])
        q_nbr = int(nodes.nbr[q])

        if D[p, q] + D[p_nbr, q_nbr] < D[p, q_nbr] + D[p_nbr, q]:
            self._agg3way(p, q, q_nbr)
        else:
            self._agg3way(p, q_nbr, q)
        self.special_case = True
        self.merge_counts["3-way"] += 1
        self.num_active -= 1
        self.num_clusters -= 1

    def _select_nodes(self, cx: int, cy: int):
        """Choose the node in each of the clusters Cx, Cy to merge."""
        nodes = self.nodes
        D = self.buffer.D
        nbr = nodes.nbr
        rx = nodes.rx
        cx_nbr = int(nbr[cx])
        cy_nbr = int(nbr[cy])

        if cx_nbr != NIL or cy_nbr != NIL:
            for z in (cx, cx_nbr, cy, cy_nbr):
                if z != NIL:
                    rx[z] = self._rx_kernel(z, cx, cy, nodes.next, nbr, D)

        m = self.num_clusters
        if cx_nbr != NIL:
            m += 1
        if cy_nbr != NIL:
            m += 1

        x, y = cx, cy
        best = (m - 2.0) * D[cx, cy] - rx[cx] - rx[cy]
        if cx_nbr != NIL:
            qpq = (m - 2.0) * D[cx_nbr, cy] - rx[cx_nbr] - rx[cy]
            if qpq < best:
                x, y = cx_nbr, cy
                best = qpq
        if cy_nbr != NIL:
            qpq = (m - 2.0) * D[cx, cy_nbr] - rx[cx] - rx[cy_nbr]
            if qpq < best:
                x, y = cx, cy_nbr
                best = qpq
        if cx_nbr != NIL and cy_nbr != NIL:
            qpq = (m - 2.0) * D[cx_nbr, cy_nbr] - rx[cx_nbr] - rx[cy_nbr]
            if qpq < best:
                x, y = cx_nbr, cy_nbr
        return x, y

    def _merge(self, x: int, y: int) -> None:
        """Apply the 2-, 3- or 4-way merge implied by the pairing of x and y."""
        nodes = self.nodes
        x_nbr = int(nodes.nbr[x])
        y_nbr = int(nodes.nbr[y])

        if x_nbr == NIL and y_nbr == NIL:
            nodes.pair(x, y)
            self.merge_counts["2-way"] += 1
            self.num_clusters -= 1
            logger.debug("2-way merge: %d, %d", x, y)
        elif x_nbr == NIL:
            self._agg3way(x, y, y_nbr)
            self.merge_counts["3-way"] += 1
            self.num_active -= 1
            self.num_clusters -= 1
        elif y_nbr == NIL or self.num_active == 4:
            self._agg3way(y, x, x_nbr)
            self.merge_counts["3-way"] += 1
            self.num_active -= 1
            self.num_clusters -= 1
        else:
            self._agg4way(x_nbr, x, y, y_nbr)
            self.merge_counts["4-way"] += 1
            self.num_active -= 2
            self.num_clusters -= 1

    # ================================================================== #
    # Amalgamations                                                       #
    # ================================================================== #

    def _agg3way(self, x: int, y: int, z: int) -> int:
        """
        Replace x, y, z by two new nodes u = (x, y) and v = (y, z).

        u takes x's place in the list, v takes z's place, y is unlinked;
        u and v are paired and u is pushed on the amalgamation stack.

        Returns
        -------
        int   The ID of u.
        """
        nodes = self.nodes
        u = nodes.new_node(x, y)
        v = nodes.new_node(y, z)

        nodes.replace(x, u)
        nodes.replace(z, v)
        nodes.unlink(y)
        nodes.pair(u, v)

        self.buffer.update_three_way(x, y, z, u, v, nodes.active_ids())
        self.amalgs.append(u)
        logger.debug("3-way merge: (%d, %d, %d) -> %d, %d", x, y, z, u, v)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("  u %s", nodes.describe(u))
            logger.debug("  v %s", nodes.describe(v))
        return u

    def _agg4way(self, x2: int, x: int, y: int, y2: int) -> None:
        """Merge x2, x, y, y2 into two nodes via two chained 3-way merges."""
        u = self._agg3way(x2, x, y)
        self._agg3way(u, int(self.nodes.nbr[u]), y2)

    # ================================================================== #
    # Pure Python kernels                                                 #
    # ================================================================== #

    @staticmethod
    def _cluster_distance(p, q, nbr, D) -> float:
        """Average of D over (p or nbr[p]) x (q or nbr[q])."""
        np_ = nbr[p]
        nq = nbr[q]
        if np_ == NIL and nq == NIL:
            return D[p, q]
        elif np_ != NIL and nq == NIL:
            return (D[p, q] + D[np_, q]) / 2.0
        elif np_ == NIL and nq != NIL:
            return (D[p, q] + D[p, nq]) / 2.0
        else:
            return (D[p, q] + D[p, nq] + D[np_, q] + D[np_, nq]) / 4.0

    @staticmethod
    def _cluster_sums(nxt, nbr, sx, D, checkpoint=None) -> None:
        """
        Reference implementation of ``_cluster_sums_nb``.

        *checkpoint*, if given, is called once per cluster representative.
        """
        cluster_distance = AgglomerationEngine._cluster_distance

        p = nxt[HEAD]
        while p != NIL:
            sx[p] = 0.0
            p = nxt[p]

        p = nxt[HEAD]
        while p != NIL:
            if nbr[p] == NIL or nbr[p] > p:
                q = nxt[p]
                while q != NIL:
                    if nbr[q] == NIL or (nbr[q] > q and nbr[q] != p):
                        dpq = cluster_distance(p, q, nbr, D)
                        sx[p] += dpq
                        if nbr[p] != NIL:
                            sx[nbr[p]] += dpq
                        sx[q] += dpq
                        if nbr[q] != NIL:
                            sx[nbr[q]] += dpq
                    q = nxt[q]
                if checkpoint is not None:
                    checkpoint()
            p = nxt[p]

    @staticmethod
    def _select_clusters(nxt, nbr, sx, D, num_clusters):
        """Reference implementation of ``_select_clusters_nb``."""
        cluster_distance = AgglomerationEngine._cluster_distance

        cx = NIL
        cy = NIL
        best = 0.0
        p = nxt[HEAD]
        while p != NIL:
            if nbr[p] != NIL and nbr[p] < p:
                p = nxt[p]
                continue
            q = nxt[HEAD]
            while q != p:
                if (nbr[q] != NIL and nbr[q] < q) or nbr[q] == p:
                    q = nxt[q]
                    continue
                dpq = cluster_distance(p, q, nbr, D)
                qpq = (num_clusters - 2.0) * dpq - sx[p] - sx[q]
                if (cx == NIL or qpq < best) and nbr[p] != q:
                    cx = p
                    cy = q
                    best = qpq
                q = nxt[q]
            p = nxt[p]
        return cx, cy

    @staticmethod
    def _compute_rx(z, cx, cy, nxt, nbr, D) -> float:
        """Reference implementation of ``_compute_rx_nb``."""
        rx = 0.0
        p = nxt[HEAD]
        while p != NIL:
            if p == cx or p == nbr[cx] or p == cy or p == nbr[cy] or nbr[p] == NIL:
                rx += D[z, p]
            else:
                rx += D[z, p] / 2.0
            p = nxt[p]
        return rx
