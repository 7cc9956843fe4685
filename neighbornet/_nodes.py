"""
_nodes.py
=========
The active-node list used by the NeighborNet agglomeration, stored as an
arena of parallel numpy arrays indexed by node ID.

Layout
------
Node IDs double as array indices.  Slot 0 is the list header (it is never a
taxon, so taxon IDs 1..n map directly onto their own slots); slots
n+1 .. 3n-6 are filled by the internal nodes created during 3-way merges.

  next, prev : int64[capacity]   Active-list links; -1 at the list ends.
  nbr        : int64[capacity]   Paired node forming a 2-node cluster; -1 if
                                 the node is a singleton cluster.
  ch1, ch2   : int64[capacity]   The two nodes a merge node was built from;
                                 -1 for taxa.
  rx, sx     : float64[capacity] Per-round accumulators, recomputed by the
                                 agglomeration engine.

Keeping links as integer IDs (rather than object references) means a node
that has been unlinked from the active list but is still referenced as a
child of a newer node stays addressable, and the arrays can be handed to
numba kernels unchanged.
"""

import numpy as np


NIL = -1
HEAD = 0


class ActiveNodeList:
    """
    Doubly linked list of active clustering nodes plus the pairing relation.

    Parameters
    ----------
    n_taxa : int
        Number of taxa.  Nodes 1..n_taxa are allocated immediately but not
        linked; call ``insert_after_head`` to activate them.
    capacity : int, optional
        Number of slots, including the header.  Defaults to ``3n - 5``, the
        largest ID a full agglomeration can reach plus one.
    """

    def __init__(self, n_taxa: int, capacity: int = None) -> None:
        if capacity is None:
            capacity = max(3 * n_taxa - 5, n_taxa + 1)
        if capacity < n_taxa + 1:
            raise ValueError(
                f"capacity {capacity} too small for {n_taxa} taxa plus header"
            )

        self.n_taxa: int = n_taxa
        self.capacity: int = capacity
        self.num_nodes: int = n_taxa

        self.next = np.full(capacity, NIL, dtype=np.int64)
        self.prev = np.full(capacity, NIL, dtype=np.int64)
        self.nbr = np.full(capacity, NIL, dtype=np.int64)
        self.ch1 = np.full(capacity, NIL, dtype=np.int64)
        self.ch2 = np.full(capacity, NIL, dtype=np.int64)
        self.rx = np.zeros(capacity, dtype=np.float64)
        self.sx = np.zeros(capacity, dtype=np.float64)

    @classmethod
    def for_taxa(cls, n_taxa: int) -> "ActiveNodeList":
        """
        Build a list holding every taxon, walking 1..n from the head.

        Taxa are inserted in decreasing ID order, each directly after the
        header, so the forward walk comes out in increasing order.
        """
        nodes = cls(n_taxa)
        for taxon in range(n_taxa, 0, -1):
            nodes.insert_after_head(taxon)
        return nodes

    # ================================================================== #
    # Structural operations                                               #
    # ================================================================== #

    def insert_after_head(self, node: int) -> None:
        """Link *node* directly after the header."""
        first = int(self.next[HEAD])
        self.next[node] = first
        self.prev[node] = HEAD
        if first != NIL:
            self.prev[first] = node
        self.next[HEAD] = node

    def unlink(self, node: int) -> None:
        """
        Remove *node* from the chain.

        The node's own ``next``/``prev`` entries and its pairing and child
        links are left as they were.
        """
        nxt = int(self.next[node])
        prv = int(self.prev[node])
        if nxt != NIL:
            self.prev[nxt] = prv
        if prv != NIL:
            self.next[prv] = nxt

    def replace(self, old: int, new: int) -> None:
        """Put *new* in the list position currently held by *old*."""
        nxt = int(self.next[old])
        prv = int(self.prev[old])
        self.next[new] = nxt
        self.prev[new] = prv
        if nxt != NIL:
            self.prev[nxt] = new
        if prv != NIL:
            self.next[prv] = new

    def pair(self, a: int, b: int) -> None:
        """Join *a* and *b* into one cluster.  Both stay in the list."""
        self.nbr[a] = b
        self.nbr[b] = a

    def new_node(self, ch1: int, ch2: int) -> int:
        """
        Allocate the next node ID with the given children.

        Raises
        ------
        IndexError
            If the arena is full.
        """
        node = self.num_nodes + 1
        if node >= self.capacity:
            raise IndexError(
                f"node arena exhausted: id {node} >= capacity {self.capacity}"
            )
        self.ch1[node] = ch1
        self.ch2[node] = ch2
        self.num_nodes = node
        return node

    # ================================================================== #
    # Queries                                                             #
    # ================================================================== #

    def __iter__(self):
        node = int(self.next[HEAD])
        while node != NIL:
            yield node
            node = int(self.next[node])

    def active_ids(self) -> np.ndarray:
        """Active node IDs in list order."""
        return np.fromiter(iter(self), dtype=np.int64)

    @property
    def first(self) -> int:
        return int(self.next[HEAD])

    @property
    def num_active(self) -> int:
        return sum(1 for _ in self)

    def num_clusters(self) -> int:
        """Number of clusters: paired nodes count once, singletons once each."""
        return sum(1 for node in self if self.nbr[node] == NIL or self.nbr[node] > node)

    def is_paired(self, node: int) -> bool:
        return self.nbr[node] != NIL

    def describe(self, node: int) -> str:
        """One-line summary of a node's links, for debug logging."""

        def fmt(value):
            return "null" if value == NIL else str(int(value))

        return (
            f"[id={node} nbr={fmt(self.nbr[node])} ch1={fmt(self.ch1[node])} "
            f"ch2={fmt(self.ch2[node])} prev={fmt(self.prev[node])} "
            f"next={fmt(self.next[node])}]"
        )
