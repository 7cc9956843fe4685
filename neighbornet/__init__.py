"""
neighbornet
===========

Circular orderings of taxa from distance matrices, using the agglomeration
and expansion phases of NeighborNet (Bryant & Moulton 2004).

A circular ordering places the taxa around a circle so that closely related
taxa sit next to each other.  It is the first step in building a split
network: every split that cuts the circle into two arcs is compatible with
the ordering.

Main Entry Points
-----------------
compute_ordering : 1-indexed circular ordering of a distance matrix
try_compute_ordering : Same, returning None on cancellation
NeighborNet : Labelled distance matrix with cached orderings and splits

Cancellation
------------
CanceledError : Raised when a cancel hook requests cancellation
Checkpoint : Wrapper turning a cancel hook into a checkpoint callable

Context Managers
----------------
quiet : Suppress logging during operations
suppress_logger : Suppress specific logger
suppress_warnings : Suppress specific warnings
use_backend : Force specific computational backend
silent_benchmark : Combine quiet + backend selection + warning suppression

Utilities
---------
validate_distances : Check and normalise a distance matrix
is_circular_ordering : Check that an array is a 1-indexed ordering
same_cycle : Compare two cycles up to rotation and reflection
cycle_neighbours : Cyclic neighbours of each taxon
circular_splits : Splits compatible with an ordering

Backend Information
-------------------
get_available_backends : Query available computational backends
get_backend_info : Get comprehensive backend status
check_numba_available : Check if numba is available

Examples
--------
Basic usage:

>>> from neighbornet import compute_ordering
>>> D = [[0, 2, 5, 5],
...      [2, 0, 5, 5],
...      [5, 5, 0, 2],
...      [5, 5, 2, 0]]
>>> compute_ordering(D)
array([0, 1, 3, 4, 2])

Cancellation from another thread:

>>> import threading
>>> from neighbornet import compute_ordering, CanceledError
>>> stop = threading.Event()
>>> try:
...     ordering = compute_ordering(big_matrix, cancel=stop)
... except CanceledError:
...     ordering = None

With context managers:

>>> from neighbornet import NeighborNet, quiet, use_backend
>>> with quiet(), use_backend('python'):
...     cycle = NeighborNet(D, names=['a', 'b', 'c', 'd']).cycle()
"""

__version__ = "0.1.0"
__license__ = "MIT"

# Main entry points
from ._neighbornet import compute_ordering, try_compute_ordering, NeighborNet

# Cancellation
from ._cancel import CanceledError, Checkpoint

# Building blocks
from ._nodes import ActiveNodeList
from ._buffer import DistanceBuffer
from ._agglomerate import AgglomerationEngine
from ._expand import CycleExpander

# Context managers (user-facing utilities)
from ._context import (
    suppress_logger,
    quiet,
    suppress_warnings,
    use_backend,
    silent_benchmark,
)

# Utilities (generally useful functions)
from ._utils import (
    validate_distances,
    is_circular_ordering,
    same_cycle,
    cycle_neighbours,
    circular_splits,
)

# Backend information (useful for checking capabilities)
from ._backend import (
    get_available_backends,
    get_backend_info,
    check_numba_available,
)

# Public API
__all__ = [
    # Main entry points
    "compute_ordering",
    "try_compute_ordering",
    "NeighborNet",
    # Cancellation
    "CanceledError",
    "Checkpoint",
    # Building blocks
    "ActiveNodeList",
    "DistanceBuffer",
    "AgglomerationEngine",
    "CycleExpander",
    # Context managers
    "suppress_logger",
    "quiet",
    "suppress_warnings",
    "use_backend",
    "silent_benchmark",
    # Utilities
    "validate_distances",
    "is_circular_ordering",
    "same_cycle",
    "cycle_neighbours",
    "circular_splits",
    # Backend information
    "get_available_backends",
    "get_backend_info",
    "check_numba_available",
    # Version info
    "__version__",
]
