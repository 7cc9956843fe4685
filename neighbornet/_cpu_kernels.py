"""
_cpu_kernels.py
===============
Numba-compiled kernels for the O(n^2) part of each NeighborNet agglomeration
round.

This module contains ONLY numba-accelerated code and does not import other
project modules, so that importing it never drags in logging or backend
detection.  If numba cannot be imported, importing this module fails and
``_backend.import_cpu_kernels`` reports the ``cpu`` backend as unavailable.

Every kernel mirrors a pure Python reference implementation on
``AgglomerationEngine`` with the same argument order, and performs the same
floating-point operations in the same order, so both backends select the
same merges bit for bit.

Exported Functions
------------------
_cluster_distance_nb : njit function
    Averaged distance between the clusters represented by two nodes.

_cluster_sums_nb : njit function
    Fills ``sx`` with each cluster's summed averaged distance to every other
    cluster.

_select_clusters_nb : njit function
    Returns the representative pair (Cx, Cy) minimising the Q-criterion.

_compute_rx_nb : njit function
    Row sum used to pick the node pair inside the winning clusters.

Notes
-----
- Arrays follow the layout of ``ActiveNodeList``: int64 link arrays with -1
  as null, node 0 as the list header, float64 ``D`` indexed by node ID.
- cache=True persists compiled binaries to disk for faster later runs.
- Cancellation cannot be polled from inside a kernel; the engine checks its
  checkpoint once per round before calling ``_cluster_sums_nb``.
"""

from numba import njit


_NIL = -1
_HEAD = 0


@njit(cache=True)
def _cluster_distance_nb(p, q, nbr, D):
    """
    Average of D over (p or nbr[p]) x (q or nbr[q]).

    Parameters
    ----------
    p, q : int        Cluster representatives.
    nbr  : int64[:]   Pairing array.
    D    : float64[:, :]

    Returns
    -------
    float
    """
    np_ = nbr[p]
    nq = nbr[q]
    if np_ == _NIL and nq == _NIL:
        return D[p, q]
    elif np_ != _NIL and nq == _NIL:
        return (D[p, q] + D[np_, q]) / 2.0
    elif np_ == _NIL and nq != _NIL:
        return (D[p, q] + D[p, nq]) / 2.0
    else:
        return (D[p, q] + D[p, nq] + D[np_, q] + D[np_, nq]) / 4.0


@njit(cache=True)
def _cluster_sums_nb(nxt, nbr, sx, D):
    """
    Accumulate the averaged distance from every cluster to every other.

    Each unordered pair of clusters is visited once, from the representative
    that comes first in the list; both nodes of a paired cluster receive the
    same sum.

    Parameters
    ----------
    nxt : int64[:]        Active-list forward links.
    nbr : int64[:]        Pairing array.
    sx  : float64[:]      Output accumulator (overwritten for active nodes).
    D   : float64[:, :]   Working distance matrix.
    """
    p = nxt[_HEAD]
    while p != _NIL:
        sx[p] = 0.0
        p = nxt[p]

    p = nxt[_HEAD]
    while p != _NIL:
        if nbr[p] == _NIL or nbr[p] > p:
            q = nxt[p]
            while q != _NIL:
                if nbr[q] == _NIL or (nbr[q] > q and nbr[q] != p):
                    dpq = _cluster_distance_nb(p, q, nbr, D)
                    sx[p] += dpq
                    if nbr[p] != _NIL:
                        sx[nbr[p]] += dpq
                    sx[q] += dpq
                    if nbr[q] != _NIL:
                        sx[nbr[q]] += dpq
                q = nxt[q]
        p = nxt[p]


@njit(cache=True)
def _select_clusters_nb(nxt, nbr, sx, D, num_clusters):
    """
    Find the pair of clusters minimising

        Q(p, q) = (num_clusters - 2) * Dbar(p, q) - sx[p] - sx[q]

    over representatives p, q of different clusters.  The first strict
    minimum in list order wins.

    Returns
    -------
    (int, int)   Representatives (Cx, Cy); (-1, -1) if no pair exists.
    """
    cx = _NIL
    cy = _NIL
    best = 0.0
    p = nxt[_HEAD]
    while p != _NIL:
        if nbr[p] != _NIL and nbr[p] < p:
            p = nxt[p]
            continue
        q = nxt[_HEAD]
        while q != p:
            if (nbr[q] != _NIL and nbr[q] < q) or nbr[q] == p:
                q = nxt[q]
                continue
            dpq = _cluster_distance_nb(p, q, nbr, D)
            qpq = (num_clusters - 2.0) * dpq - sx[p] - sx[q]
            if (cx == _NIL or qpq < best) and nbr[p] != q:
                cx = p
                cy = q
                best = qpq
            q = nxt[q]
        p = nxt[p]
    return cx, cy


@njit(cache=True)
def _compute_rx_nb(z, cx, cy, nxt, nbr, D):
    """
    Sum of D[z, p] over active p, halving the contribution of nodes that
    belong to a paired cluster other than Cx or Cy.
    """
    rx = 0.0
    p = nxt[_HEAD]
    while p != _NIL:
        if p == cx or p == nbr[cx] or p == cy or p == nbr[cy] or nbr[p] == _NIL:
            rx += D[z, p]
        else:
            rx += D[z, p] / 2.0
        p = nxt[p]
    return rx
