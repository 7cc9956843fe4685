"""
_utils.py
=========
General-purpose utility functions for neighbornet.

These are standalone functions that don't depend on the main classes:
distance-matrix validation and helpers for working with circular orderings.
"""

from typing import List, Sequence, FrozenSet

import numpy as np


def validate_distances(matrix, atol: float = 1e-9) -> np.ndarray:
    """
    Check a distance matrix and return it as a square float64 array.

    Parameters
    ----------
    matrix : array-like
        Either an n x n matrix (nested sequences or ndarray) or a condensed
        1-D vector holding the upper triangle row by row, of length
        n(n-1)/2.
    atol : float, default 1e-9
        Absolute tolerance for the symmetry and zero-diagonal checks.

    Returns
    -------
    float64[n, n]
        A new array (the input is never modified).  Entry [i, j] is the
        distance between taxa i+1 and j+1.

    Raises
    ------
    TypeError
        If the entries cannot be converted to float (e.g. None).
    ValueError
        If the input is ragged or holds non-numeric strings, or the matrix
        is empty, not square, contains NaN/inf, is not symmetric, or has a
        non-zero diagonal.

    Examples
    --------
    >>> validate_distances([[0, 1], [1, 0]])
    array([[0., 1.],
           [1., 0.]])

    >>> validate_distances([1.0, 2.0, 3.0])   # condensed form, n = 3
    array([[0., 1., 2.],
           [1., 0., 3.],
           [2., 3., 0.]])
    """
    try:
        raw = np.asarray(matrix)
    except ValueError as e:
        raise ValueError(f"distance matrix could not be read as numbers: {e}") from e

    # float64 conversion would silently turn None into NaN
    if raw.dtype == object:
        for item in raw.flat:
            if item is None:
                raise TypeError("distance matrix must be numeric: found None")

    try:
        arr = np.array(raw, dtype=np.float64)
    except TypeError as e:
        raise TypeError(f"distance matrix must be numeric: {e}") from e
    except ValueError as e:
        raise ValueError(f"distance matrix could not be read as numbers: {e}") from e

    if arr.ndim == 1:
        arr = _expand_condensed(arr)
    elif arr.ndim != 2:
        raise ValueError(f"distance matrix must be 1-D or 2-D, got {arr.ndim}-D")

    n_rows, n_cols = arr.shape
    if n_rows != n_cols:
        raise ValueError(
            f"distance matrix is not square: {n_rows} rows x {n_cols} columns"
        )
    if n_rows == 0:
        raise ValueError("distance matrix is empty")
    if not np.all(np.isfinite(arr)):
        raise ValueError("distance matrix contains NaN or infinite values")

    if not np.allclose(arr, arr.T, rtol=0.0, atol=atol):
        i, j = np.unravel_index(np.argmax(np.abs(arr - arr.T)), arr.shape)
        raise ValueError(
            f"distance matrix is not symmetric: d({i + 1},{j + 1})={arr[i, j]!r} "
            f"but d({j + 1},{i + 1})={arr[j, i]!r}"
        )
    diag = np.abs(np.diag(arr))
    if np.any(diag > atol):
        i = int(np.argmax(diag))
        raise ValueError(
            f"distance matrix has a non-zero diagonal: d({i + 1},{i + 1})={arr[i, i]!r}"
        )

    np.fill_diagonal(arr, 0.0)
    return arr


def _expand_condensed(vec: np.ndarray) -> np.ndarray:
    """Expand an upper-triangle vector of length n(n-1)/2 to n x n."""
    m = vec.shape[0]
    # m = n(n-1)/2  =>  n = (1 + sqrt(1 + 8m)) / 2
    n = int(round((1.0 + np.sqrt(1.0 + 8.0 * m)) / 2.0))
    if n * (n - 1) // 2 != m or m == 0:
        raise ValueError(
            f"condensed distance vector has length {m}, "
            "which is not n(n-1)/2 for any n >= 2"
        )
    arr = np.zeros((n, n), dtype=np.float64)
    iu = np.triu_indices(n, k=1)
    arr[iu] = vec
    arr.T[iu] = vec
    return arr


def is_circular_ordering(ordering: Sequence[int], n_taxa: int) -> bool:
    """
    Check that *ordering* is a 1-indexed ordering of taxa 1..n_taxa.

    The array must have length n_taxa + 1, hold 0 at index 0, and hold each
    of 1..n_taxa exactly once in positions 1..n_taxa.

    Examples
    --------
    >>> is_circular_ordering([0, 1, 3, 2], 3)
    True

    >>> is_circular_ordering([0, 1, 1, 2], 3)
    False
    """
    if len(ordering) != n_taxa + 1:
        return False
    if ordering[0] != 0:
        return False
    return sorted(int(t) for t in ordering[1:]) == list(range(1, n_taxa + 1))


def same_cycle(a: Sequence[int], b: Sequence[int]) -> bool:
    """
    Whether two sequences describe the same cycle up to rotation and
    reflection.

    Both arguments are plain sequences of taxa (no leading 0).

    Examples
    --------
    >>> same_cycle([1, 2, 3, 4], [3, 4, 1, 2])
    True

    >>> same_cycle([1, 2, 3, 4], [1, 4, 3, 2])
    True

    >>> same_cycle([1, 2, 3, 4], [1, 3, 2, 4])
    False
    """
    a = [int(t) for t in a]
    b = [int(t) for t in b]
    if len(a) != len(b) or sorted(a) != sorted(b):
        return False
    if not a:
        return True
    doubled = b + b
    n = len(a)
    for candidate in (a, a[::-1]):
        for i in range(n):
            if doubled[i : i + n] == candidate:
                return True
    return False


def cycle_neighbours(ordering: Sequence[int]) -> dict:
    """
    Map each taxon of a 1-indexed ordering to its two cyclic neighbours.

    Examples
    --------
    >>> cycle_neighbours([0, 1, 2, 3, 4])[1]
    frozenset({2, 4})
    """
    seq = [int(t) for t in ordering[1:]]
    n = len(seq)
    return {
        seq[i]: frozenset((seq[i - 1], seq[(i + 1) % n])) for i in range(n)
    }


def circular_splits(ordering: Sequence[int]) -> List[FrozenSet[int]]:
    """
    Enumerate the splits compatible with a circular ordering.

    For a 1-indexed ordering of n taxa, split (i, j) with 0 <= i < j < n has
    the contiguous block ``ordering[i+1..j]`` on one side and the remaining
    taxa on the other.  The block never contains ``ordering[n]``, so every
    split is listed exactly once.

    Parameters
    ----------
    ordering : sequence of int
        1-indexed ordering (index 0 ignored).

    Returns
    -------
    list[frozenset[int]]
        n(n-1)/2 blocks, in (i, j) lexicographic order.

    Examples
    --------
    >>> circular_splits([0, 1, 2, 3])
    [frozenset({1}), frozenset({1, 2}), frozenset({2})]
    """
    seq = [int(t) for t in ordering]
    n = len(seq) - 1
    splits = []
    for i in range(n):
        block = set()
        for j in range(i + 1, n):
            block.add(seq[j])
            splits.append(frozenset(block))
    return splits
