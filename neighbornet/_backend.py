"""
_backend.py
===========
Backend detection and selection for the agglomeration kernels.

Two backends run the per-round kernels of the NeighborNet agglomeration:

- 'python': pure Python reference kernels (always available).
- 'cpu'   : numba-compiled kernels from ``_cpu_kernels`` (requires numba).

Functions in this module have NO side effects - they only query system state.
Logging is done by the calling code, not here.
"""

from typing import List, Tuple, Optional


BACKENDS = ("python", "cpu")


# ============================================================================ #
# Backend Detection (No Side Effects)
# ============================================================================ #


def check_numba_available() -> bool:
    """
    Check if numba is available for kernel compilation.

    Returns
    -------
    bool
        True if numba can be imported, False otherwise.
    """
    try:
        import numba  # noqa: F401

        return True
    except ImportError:
        return False


def get_available_backends() -> List[str]:
    """
    Get list of available execution backends.

    Returns
    -------
    list[str]
        Available backends in preference order, least optimized first.
        Always includes 'python'; includes 'cpu' if the numba kernels import.

    Examples
    --------
    >>> get_available_backends()
    ['python', 'cpu']
    """
    backends = ["python"]

    cpu_ok, _, _, _ = import_cpu_kernels()
    if cpu_ok:
        backends.append("cpu")

    return backends


def get_best_backend() -> str:
    """
    Get the most optimized available backend.

    Returns
    -------
    str
        'cpu' if the numba kernels are available, otherwise 'python'.
    """
    return get_available_backends()[-1]


def resolve_backend(backend: str) -> str:
    """
    Resolve a backend specification to an actual backend.

    Parameters
    ----------
    backend : str
        'best', 'python' or 'cpu'.

    Returns
    -------
    str
        Resolved backend name.

    Raises
    ------
    ValueError
        If the backend name is unknown or not available.

    Examples
    --------
    >>> resolve_backend('best')
    'cpu'
    >>> resolve_backend('python')
    'python'
    """
    if backend == "best":
        return get_best_backend()

    if backend not in BACKENDS:
        raise ValueError(
            f"Unknown backend '{backend}'. "
            f"Valid backends: best, {', '.join(BACKENDS)}"
        )

    available = get_available_backends()
    if backend not in available:
        raise ValueError(
            f"Backend '{backend}' not available. "
            f"Available backends: {', '.join(available)}"
        )

    return backend


# ============================================================================ #
# Kernel Import Helpers
# ============================================================================ #


def import_cpu_kernels() -> Tuple[
    bool, Optional[object], Optional[object], Optional[object]
]:
    """
    Try to import the numba kernels from the _cpu_kernels module.

    Returns
    -------
    tuple
        (success, sums_kernel, select_kernel, rx_kernel)
        - success: Whether import succeeded
        - sums_kernel: _cluster_sums_nb or None
        - select_kernel: _select_clusters_nb or None
        - rx_kernel: _compute_rx_nb or None

    ``_cluster_distance_nb`` is only called from inside the other kernels.
    """
    try:
        from neighbornet._cpu_kernels import (
            _cluster_sums_nb,
            _select_clusters_nb,
            _compute_rx_nb,
        )

        return (True, _cluster_sums_nb, _select_clusters_nb, _compute_rx_nb)
    except ImportError:
        return (False, None, None, None)


# ============================================================================ #
# Module-Level State Query (Read-Only)
# ============================================================================ #


def get_backend_info() -> dict:
    """
    Get comprehensive backend information.

    Returns
    -------
    dict
        Dictionary with keys:
        - 'numba_available': bool
        - 'numba_version': str or None
        - 'backends': list[str]
        - 'best_backend': str
        - 'cpu_kernels_available': bool

    Examples
    --------
    >>> info = get_backend_info()
    >>> info['backends']
    ['python', 'cpu']
    """
    numba_available = check_numba_available()
    numba_version = None
    if numba_available:
        import numba

        numba_version = numba.__version__

    cpu_kernels_ok = import_cpu_kernels()[0]
    backends = get_available_backends()

    return {
        "numba_available": numba_available,
        "numba_version": numba_version,
        "backends": backends,
        "best_backend": backends[-1],
        "cpu_kernels_available": cpu_kernels_ok,
    }
