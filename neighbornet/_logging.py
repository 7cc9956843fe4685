"""
_logging.py
===========
Logging functions for neighbornet.

All functions in this module have NO side effects except logging. They take
computed data as parameters and format/emit log messages.

This separation ensures:
- Logging can be easily disabled/mocked in tests
- Computation is separate from presentation
- Clear boundaries between the algorithm and reporting
"""

import logging
from typing import List, Dict


logger = logging.getLogger(__name__)


# ============================================================================ #
# System and Backend Logging (called at module import time)
# ============================================================================ #


def log_optimization_status(numba_available: bool) -> None:
    """
    Log system capabilities and optimization library availability at INFO level.

    Called once at module import time. Reports CPU count, Python version,
    and the numba / llvmlite versions if numba is available.

    Parameters
    ----------
    numba_available : bool
        Whether numba was successfully imported.
    """
    import os
    import platform

    cpu_count = os.cpu_count() or 1
    logger.info(
        f"System: {platform.machine()} ({platform.system()}), "
        f"{cpu_count} CPU cores, Python {platform.python_version()}"
    )

    if numba_available:
        import numba

        logger.info(f"Numba {numba.__version__} loaded successfully")

        try:
            import llvmlite

            logger.info(f"LLVM backend: llvmlite {llvmlite.__version__}")
        except (ImportError, AttributeError):
            pass  # LLVM version unavailable
    else:
        logger.info("Numba not installed; agglomeration kernels will run as pure Python")
        logger.info("Install numba for a large speedup on big matrices: pip install numba")


def log_backend_availability(backends_available: List[str]) -> None:
    """
    Log which execution backends are available for the agglomeration kernels.

    Parameters
    ----------
    backends_available : List[str]
        List of available backends (e.g., ['python', 'cpu'])
    """
    logger.info(f"Available backends: {', '.join(backends_available)}")

    if "cpu" in backends_available:
        logger.info("  cpu: LLVM-compiled kernels (numba.njit)")
    if "python" in backends_available:
        logger.info("  python: unoptimized reference implementation")

    best = backends_available[-1]
    logger.info(f"Default backend='best' will use: {best}")


# ============================================================================ #
# Per-call Logging
# ============================================================================ #


def log_input_summary(n_taxa: int, buffer_size: int, buffer_bytes: int) -> None:
    """
    Log the size of an ordering problem before it runs.

    Parameters
    ----------
    n_taxa : int
        Number of taxa.
    buffer_size : int
        Side length of the working distance buffer (3n - 5).
    buffer_bytes : int
        Memory held by the working distance buffer.
    """
    mem_mb = buffer_bytes / (1024**2)
    if mem_mb >= 1.0:
        mem_str = f"{mem_mb:.1f} MB"
    else:
        mem_str = f"{buffer_bytes / 1024:.1f} KB"
    logger.info(
        "NeighborNet ordering: %d taxa, working buffer %dx%d (%s)",
        n_taxa,
        buffer_size,
        buffer_size,
        mem_str,
    )


def log_negative_distances(n_negative: int, min_value: float) -> None:
    """
    Warn that a distance matrix contains negative entries.

    Parameters
    ----------
    n_negative : int
        Number of negative off-diagonal entries (each pair counted once).
    min_value : float
        Most negative entry.
    """
    if n_negative > 0:
        logger.warning(
            "Distance matrix contains %d negative distance(s) (min %.6g). "
            "The ordering is still computed but may not be meaningful.",
            n_negative,
            min_value,
        )


def log_agglomeration_summary(
    n_taxa: int, rounds: int, merge_counts: Dict[str, int], special_case: bool
) -> None:
    """
    Log what the agglomeration phase did.

    Parameters
    ----------
    n_taxa : int
        Number of taxa.
    rounds : int
        Number of loop iterations.
    merge_counts : Dict[str, int]
        Counts keyed by '2-way', '3-way' and '4-way'.
    special_case : bool
        Whether the final round took the two-paired-clusters shortcut.
    """
    logger.info(
        "Agglomeration: %d taxa in %d rounds "
        "(%d 2-way, %d 3-way, %d 4-way merges)",
        n_taxa,
        rounds,
        merge_counts.get("2-way", 0),
        merge_counts.get("3-way", 0),
        merge_counts.get("4-way", 0),
    )
    if special_case:
        logger.info("  Final round resolved two paired clusters by the four-point sum")


def log_expansion_summary(n_expansions: int, n_taxa: int) -> None:
    """
    Log the expansion phase.

    Parameters
    ----------
    n_expansions : int
        Number of amalgamations undone.
    n_taxa : int
        Length of the resulting cycle.
    """
    logger.info(
        "Expansion: undid %d amalgamation(s), cycle of %d taxa",
        n_expansions,
        n_taxa,
    )


def log_trivial_ordering(n_taxa: int) -> None:
    """Log that a small input skipped the agglomeration."""
    logger.info(
        "NeighborNet ordering: %d taxa (< 4), returning identity ordering",
        n_taxa,
    )
