"""
_neighbornet.py
===============
Entry points for computing NeighborNet circular orderings.

Public API
----------
  compute_ordering(distances, cancel=None, backend='best') -> ndarray
      1-indexed circular ordering of the taxa of a distance matrix.
      Raises CanceledError if *cancel* requests it.

  try_compute_ordering(distances, cancel=None, backend='best') -> ndarray | None
      Same, but returns None instead of raising CanceledError when the
      computation is canceled.

  NeighborNet(distances, names=None)
      Validated, labelled distance matrix with cached orderings, name-level
      cycles and circular splits.

Pipeline
--------
  1. validate_distances      n x n float64, symmetric, zero diagonal
  2. n < 4                   identity ordering [0, 1, ..., n], done
  3. DistanceBuffer          (3n-5) x (3n-5) working matrix
  4. ActiveNodeList          taxa 1..n linked in increasing order
  5. AgglomerationEngine     merge until three nodes remain
  6. CycleExpander           unwind the merges into a cycle, read from 1

Logging
-------
The module uses Python's standard logging framework; every module logs to
``logging.getLogger(__name__)`` below the ``neighbornet`` package logger.

  INFO level:    System and numba status (once, at import), available
                 backends, problem size and buffer memory, selected backend,
                 first-call kernel compilation, agglomeration and expansion
                 summaries.
  DEBUG level:   Every individual merge.
  WARNING level: Negative distances, unavailable backend fallback.

    import logging
    # Silence INFO messages, keep warnings:
    logging.getLogger('neighbornet').setLevel(logging.WARNING)

or use the ``quiet()`` context manager.
"""

import logging
from typing import Any, List, Optional, Sequence, FrozenSet

import numpy as np

from neighbornet._nodes import ActiveNodeList
from neighbornet._buffer import DistanceBuffer
from neighbornet._agglomerate import AgglomerationEngine
from neighbornet._expand import CycleExpander
from neighbornet._cancel import CanceledError, Checkpoint
from neighbornet._utils import validate_distances, circular_splits

from neighbornet._logging import (
    log_optimization_status,
    log_backend_availability,
    log_input_summary,
    log_negative_distances,
    log_agglomeration_summary,
    log_expansion_summary,
    log_trivial_ordering,
)

from neighbornet._backend import (
    check_numba_available,
    get_available_backends,
    get_best_backend,
    resolve_backend,
)

from neighbornet._context import get_backend_override


logger = logging.getLogger(__name__)


_NUMBA_AVAILABLE = check_numba_available()
_BACKENDS_AVAILABLE = get_available_backends()

# Track first calls to kernels for compilation logging
_kernel_first_call = {"cpu": True}


# Log system info and backend availability on module import
log_optimization_status(_NUMBA_AVAILABLE)
log_backend_availability(_BACKENDS_AVAILABLE)


# ======================================================================== #
# Functional API                                                            #
# ======================================================================== #


def compute_ordering(distances, cancel: Optional[Any] = None, backend: str = "best") -> np.ndarray:
    """
    Compute the NeighborNet circular ordering of the taxa in *distances*.

    Parameters
    ----------
    distances : array-like
        n x n symmetric distance matrix with zero diagonal (row i is taxon
        i + 1), or its condensed upper-triangle vector.
    cancel : callable, object with ``is_set()``, Checkpoint, or None
        Cancel hook.  A truthy result aborts the computation.  On the
        'python' backend it is polled once per cluster representative in
        every agglomeration round.  On the 'cpu' backend, which is what
        'best' selects whenever numba is installed, it is polled only once
        per round, before the compiled kernels run, since they cannot call
        back into Python.  Both backends also poll once per expansion step.
    backend : str, default 'best'
        'python', 'cpu', or 'best'.  A ``use_backend`` override takes
        precedence.

    Returns
    -------
    int64[n + 1]
        ``ordering[1..n]`` is a permutation of 1..n listing the taxa around
        the circle, starting at taxon 1; ``ordering[0]`` is 0.  For n < 4
        this is the identity ``[0, 1, ..., n]``.

    Raises
    ------
    CanceledError
        If *cancel* requests cancellation.  No partial result is produced.
    ValueError, TypeError
        If *distances* is not a valid distance matrix.

    Examples
    --------
    >>> D = [[0, 2, 5, 5],
    ...      [2, 0, 5, 5],
    ...      [5, 5, 0, 2],
    ...      [5, 5, 2, 0]]
    >>> compute_ordering(D)
    array([0, 1, 3, 4, 2])
    """
    D = validate_distances(distances)
    return _order_validated(D, cancel=cancel, backend=backend)


def try_compute_ordering(
    distances, cancel: Optional[Any] = None, backend: str = "best"
) -> Optional[np.ndarray]:
    """
    Like ``compute_ordering``, but return None instead of raising
    ``CanceledError`` when the computation is canceled.

    Input validation errors still raise.
    """
    D = validate_distances(distances)
    try:
        return _order_validated(D, cancel=cancel, backend=backend)
    except CanceledError as e:
        logger.info("Ordering canceled: %s", e)
        return None


def _resolve_backend_logged(backend: str) -> str:
    backend_override = get_backend_override()
    if backend_override is not None:
        backend = backend_override

    try:
        resolved_backend = resolve_backend(backend)
    except ValueError as e:
        # Backend not available, fall back to best available
        logger.warning(str(e))
        resolved_backend = get_best_backend()
    return resolved_backend


def _order_validated(D: np.ndarray, cancel=None, backend: str = "best") -> np.ndarray:
    """Run the pipeline on an already validated float64 matrix."""
    n = int(D.shape[0])

    if n < 4:
        log_trivial_ordering(n)
        return np.arange(n + 1, dtype=np.int64)

    iu = np.triu_indices(n, k=1)
    upper = D[iu]
    n_negative = int(np.count_nonzero(upper < 0.0))
    if n_negative:
        log_negative_distances(n_negative, float(upper.min()))

    resolved_backend = _resolve_backend_logged(backend)
    checkpoint = cancel if isinstance(cancel, Checkpoint) else Checkpoint(cancel)

    buffer = DistanceBuffer.from_distances(D)
    log_input_summary(n, buffer.size, buffer.nbytes)
    logger.info(f"compute_ordering(backend={resolved_backend!r})")

    if resolved_backend == "cpu" and _kernel_first_call.get("cpu", False):
        logger.info("  Compiling cpu kernels (cached for future calls)")
        _kernel_first_call["cpu"] = False

    nodes = ActiveNodeList.for_taxa(n)

    engine = AgglomerationEngine(nodes, buffer, resolved_backend, checkpoint)
    amalgs = engine.run()
    log_agglomeration_summary(
        n, engine.rounds, engine.merge_counts, engine.special_case
    )

    expander = CycleExpander(nodes, checkpoint)
    ordering = expander.expand(amalgs)
    log_expansion_summary(expander.n_expansions, n)

    return ordering


# ======================================================================== #
# Labelled wrapper                                                          #
# ======================================================================== #


class NeighborNet:
    """
    A validated distance matrix over named taxa, with NeighborNet orderings.

    Parameters
    ----------
    distances : array-like
        n x n distance matrix or condensed vector (see ``validate_distances``).
    names : sequence of str, optional
        Taxon names in matrix row order.  Defaults to '1', '2', ..., 'n'.

    Attributes (read-only after construction)
    -----------------------------------------
    n_taxa    : int
    names     : list[str]        names[i] labels taxon i + 1
    distances : float64[n, n]

    Examples
    --------
    >>> nn = NeighborNet(D, names=['a', 'b', 'c', 'd'])
    >>> nn.ordering()
    array([0, 1, 3, 4, 2])
    >>> nn.cycle()
    ['a', 'c', 'd', 'b']
    """

    def __init__(self, distances, names: Optional[Sequence[str]] = None) -> None:
        self.distances = validate_distances(distances)
        self.n_taxa: int = int(self.distances.shape[0])

        if names is None:
            names = [str(i) for i in range(1, self.n_taxa + 1)]
        names = [str(name) for name in names]
        if len(names) != self.n_taxa:
            raise ValueError(
                f"got {len(names)} names for a {self.n_taxa}x{self.n_taxa} matrix"
            )
        if len(set(names)) != len(names):
            seen = set()
            dupes = sorted({name for name in names if name in seen or seen.add(name)})
            raise ValueError(f"duplicate taxon names: {', '.join(dupes)}")
        self.names: List[str] = names

        self._name_index = {name: i + 1 for i, name in enumerate(names)}
        self._orderings = {}

    def __len__(self) -> int:
        return self.n_taxa

    def __repr__(self) -> str:
        return f"NeighborNet(n_taxa={self.n_taxa})"

    def taxon_id(self, name: str) -> int:
        """
        1-based taxon ID of *name*.

        Raises
        ------
        KeyError   if the name is unknown.
        """
        try:
            return self._name_index[name]
        except KeyError:
            raise KeyError(f"Taxon '{name}' not found") from None

    def ordering(self, cancel: Optional[Any] = None, backend: str = "best") -> np.ndarray:
        """
        The 1-indexed circular ordering (see ``compute_ordering``).

        Successful results are cached per resolved backend; a copy is
        returned each time.
        """
        resolved_backend = _resolve_backend_logged(backend)
        cached = self._orderings.get(resolved_backend)
        if cached is None:
            cached = _order_validated(
                self.distances, cancel=cancel, backend=resolved_backend
            )
            self._orderings[resolved_backend] = cached
        return cached.copy()

    def cycle(self, cancel: Optional[Any] = None, backend: str = "best") -> List[str]:
        """Taxon names around the circle, starting at the first taxon."""
        ordering = self.ordering(cancel=cancel, backend=backend)
        return [self.names[int(t) - 1] for t in ordering[1:]]

    def splits(
        self, cancel: Optional[Any] = None, backend: str = "best"
    ) -> List[FrozenSet[str]]:
        """
        Circular splits of the ordering, as sets of taxon names.

        Each entry is the contiguous block side of a split (see
        ``circular_splits``); the complementary side is implied.
        """
        ordering = self.ordering(cancel=cancel, backend=backend)
        return [
            frozenset(self.names[t - 1] for t in block)
            for block in circular_splits(ordering)
        ]
