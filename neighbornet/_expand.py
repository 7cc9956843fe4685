"""
_expand.py
==========
The expansion phase of NeighborNet: rebuild a circular ordering of the taxa
from the amalgamation stack left by the agglomeration.

The three nodes still active are closed into a 3-cycle.  Amalgamations are
then undone last-first: each popped node u and its partner v = nbr[u] sit
next to each other in the cycle, and the edge u - v is replaced by the path
x - y - z of the three nodes they were built from.  When the stack is empty
the cycle holds only taxa.
"""

import logging
from typing import List, Optional

import numpy as np

from neighbornet._nodes import ActiveNodeList
from neighbornet._cancel import Checkpoint


logger = logging.getLogger(__name__)


class CycleExpander:
    """
    Turn an agglomerated node list plus its amalgamation stack into an
    ordering.

    Parameters
    ----------
    nodes : ActiveNodeList
        The list after agglomeration (exactly three active nodes).
    checkpoint : Checkpoint, optional
        Polled once per undone amalgamation.

    Attributes
    ----------
    n_expansions : int   Amalgamations undone by the last ``expand`` call.
    """

    def __init__(
        self, nodes: ActiveNodeList, checkpoint: Optional[Checkpoint] = None
    ) -> None:
        self.nodes = nodes
        self.checkpoint = checkpoint if checkpoint is not None else Checkpoint()
        self.n_expansions = 0

    def expand(self, amalgs: List[int]) -> np.ndarray:
        """
        Undo every amalgamation on *amalgs* and extract the ordering.

        The stack is consumed (popped until empty).

        Returns
        -------
        int64[n_taxa + 1]
            ``ordering[1..n]`` is the cycle read from taxon 1; index 0 is 0.

        Raises
        ------
        CanceledError
            If the checkpoint requests cancellation.
        """
        self.checkpoint.stage = "expansion"
        nodes = self.nodes
        nxt = nodes.next
        prv = nodes.prev

        x = nodes.first
        y = int(nxt[x])
        z = int(nxt[y])
        assert int(nxt[z]) == -1, "expansion needs exactly three active nodes"
        nxt[z] = x
        prv[x] = z

        self.n_expansions = 0
        while amalgs:
            u = amalgs.pop()
            v = int(nodes.nbr[u])
            x = int(nodes.ch1[u])
            y = int(nodes.ch2[u])
            z = int(nodes.ch2[v])
            # Orient the merge so that v follows u in the cycle.
            if v != int(nxt[u]):
                u, v = v, u
                x, z = z, x

            a = int(prv[u])
            b = int(nxt[v])
            prv[x] = a
            nxt[a] = x
            nxt[x] = y
            prv[y] = x
            nxt[y] = z
            prv[z] = y
            nxt[z] = b
            prv[b] = z

            self.n_expansions += 1
            self.checkpoint()

        return self.extract(x)

    def extract(self, start: int) -> np.ndarray:
        """
        Read the cycle through *start* into a 1-indexed ordering that begins
        at taxon 1.
        """
        nxt = self.nodes.next
        n = self.nodes.n_taxa

        node = start
        while node != 1:
            node = int(nxt[node])

        ordering = np.zeros(n + 1, dtype=np.int64)
        a = node
        t = 0
        while True:
            t += 1
            if t > n:
                raise RuntimeError(
                    f"Internal error: cycle through taxon 1 is longer than {n}"
                )
            ordering[t] = a
            a = int(nxt[a])
            if a == node:
                break

        if t != n:
            raise RuntimeError(
                f"Internal error: cycle through taxon 1 has {t} nodes, expected {n}"
            )
        return ordering
