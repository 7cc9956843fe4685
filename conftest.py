"""
conftest.py
===========
Session-level pytest configuration for the test suite.

Custom marks
------------
large_scale
    Applied to randomized tests over many or large distance matrices, which
    take noticeably longer on the pure Python backend.  Opt out with
    ``-m "not large_scale"``.

    Registration here suppresses PytestUnknownMarkWarning and makes the mark
    visible in ``pytest --markers``.

Warning filters
---------------
NumbaPerformanceWarning messages are filtered out during tests.  They carry
no information about correctness for the small matrices used here.
"""

import pytest
import warnings


def pytest_configure(config):
    """
    Configure pytest before test collection begins.

    Runs before any test module is imported, so the filter is in place before
    the numba kernels compile.
    """
    config.addinivalue_line(
        "markers",
        "large_scale: randomized tests over many or large matrices "
        "(slow on the python backend)",
    )

    from numba.core.errors import NumbaPerformanceWarning
    warnings.filterwarnings('ignore', category=NumbaPerformanceWarning)


def pytest_unconfigure(config):
    """Restore default warning behavior."""
    warnings.resetwarnings()
