"""
_context.py
===========
Context managers for neighbornet.

Provides clean, Pythonic context managers for temporarily changing state:
- Logging control (suppress/change levels)
- Warning control (suppress specific warnings)
- Backend selection (force specific backend)

All context managers properly restore state on exit, even if exceptions occur.
"""

import logging
import warnings
from contextlib import contextmanager
from typing import Optional, Type


# Module-level state for backend override
_backend_override = None

PACKAGE_LOGGER = "neighbornet"


# ============================================================================ #
# Logging Context Managers
# ============================================================================ #


@contextmanager
def suppress_logger(logger_name: str, level: int = logging.CRITICAL):
    """
    Temporarily change a logger's level.

    Parameters
    ----------
    logger_name : str
        Name of the logger to suppress (e.g., 'neighbornet._agglomerate').
    level : int, default logging.CRITICAL
        Temporary logging level.

    Yields
    ------
    None
        Control is yielded back to the with-block.

    Examples
    --------
    >>> # Hide per-call summaries but keep the agglomeration log
    >>> with suppress_logger('neighbornet._neighbornet'):
    ...     ordering = compute_ordering(D)

    Notes
    -----
    - Exception-safe: Logger level restored even if exception raised
    - Nesting-safe: Can nest multiple suppress_logger contexts
    """
    logger = logging.getLogger(logger_name)
    original_level = logger.level

    try:
        logger.setLevel(level)
        yield
    finally:
        logger.setLevel(original_level)


@contextmanager
def quiet(level: int = logging.CRITICAL):
    """
    Temporarily suppress all neighbornet logging.

    Sets the level of the package logger; module loggers inherit it unless
    they have been given a level of their own.

    Parameters
    ----------
    level : int, default logging.CRITICAL
        Temporary logging level for the package logger.

    Examples
    --------
    >>> with quiet():
    ...     ordering = compute_ordering(D)

    >>> # Show only warnings (e.g. negative distances)
    >>> with quiet(logging.WARNING):
    ...     ordering = compute_ordering(D)
    """
    with suppress_logger(PACKAGE_LOGGER, level):
        yield


# ============================================================================ #
# Warning Context Managers
# ============================================================================ #


@contextmanager
def suppress_warnings(category: Optional[Type[Warning]] = None):
    """
    Temporarily suppress warnings.

    Parameters
    ----------
    category : Type[Warning] or None, default None
        Warning category to suppress. If None, suppresses all warnings.
        For example ``NumbaPerformanceWarning`` from
        ``numba.core.errors``.

    Examples
    --------
    >>> with suppress_warnings():
    ...     ordering = compute_ordering(D, backend='cpu')

    Notes
    -----
    - Uses Python's warnings.catch_warnings() internally
    - Fully restores warning state on exit
    """
    with warnings.catch_warnings():
        if category is None:
            warnings.simplefilter("ignore")
        else:
            warnings.filterwarnings("ignore", category=category)
        yield


# ============================================================================ #
# Backend Context Managers
# ============================================================================ #


@contextmanager
def use_backend(backend: str):
    """
    Temporarily force a specific backend for ordering computations.

    Parameters
    ----------
    backend : str
        'python', 'cpu', or 'best'.

    Raises
    ------
    ValueError
        If requested backend is not available.

    Examples
    --------
    >>> with use_backend('python'):
    ...     # No JIT compilation, easier to debug
    ...     ordering = compute_ordering(D)

    Notes
    -----
    - **Not thread-safe**: Uses module-level state
    - Backend availability checked when context entered
    - The override takes precedence over the ``backend`` argument of
      ``compute_ordering`` and ``NeighborNet.ordering``

    Thread Safety Warning
    ---------------------
    If you need thread-safe backend selection, pass the backend parameter
    directly instead:

        ordering = compute_ordering(D, backend='python')
    """
    global _backend_override

    from ._backend import get_available_backends

    available = get_available_backends()

    if backend != "best" and backend not in available:
        raise ValueError(
            f"Backend '{backend}' not available. "
            f"Available backends: {', '.join(available)}"
        )

    original_override = _backend_override

    try:
        _backend_override = backend
        yield
    finally:
        _backend_override = original_override


def get_backend_override() -> Optional[str]:
    """
    Get the current backend override, if any.

    Returns
    -------
    str or None
        Current backend override, or None if no override active.

    Examples
    --------
    >>> get_backend_override()
    None

    >>> with use_backend('python'):
    ...     print(get_backend_override())
    python
    """
    return _backend_override


# ============================================================================ #
# Combined Context Managers
# ============================================================================ #


@contextmanager
def silent_benchmark(backend: str = "best"):
    """
    Suppress logging and warnings while forcing a specific backend.

    Examples
    --------
    >>> for backend in ['python', 'cpu']:
    ...     with silent_benchmark(backend):
    ...         start = time.time()
    ...         ordering = compute_ordering(D)
    ...         print(f"{backend}: {time.time() - start:.3f}s")
    """
    with quiet():
        with use_backend(backend):
            with suppress_warnings():
                yield
