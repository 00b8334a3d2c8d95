"""Numerical helpers: matrix coercion and magnitude scans."""

from typing import Any

import numpy as np
import numpy.typing as npt
from scipy import sparse

from .exceptions import ConfigurationError, DimensionMismatchError


def _to_array(block: Any, name: str) -> npt.NDArray[np.float64]:
    """Copy a block into a fresh float64 array, whatever its input type."""
    try:
        if sparse.issparse(block):
            return np.asarray(block.toarray(), dtype=np.float64)
        return np.array(block, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} is not a numeric array: {e}") from e


def as_matrix(block: Any, name: str) -> npt.NDArray[np.float64]:
    """Copy a block into a dense, two-dimensional float64 array.

    Parameters
    ----------
     block : array_like or scipy.sparse matrix
        The block supplied by the modeling layer.
     name : str
        Name of the block, used in error messages.

    Returns
    -------
     A : npt.NDArray[np.float64]
        A fresh array. The caller's object is never aliased, so later changes to it
        don't leak into the assembled problem (and vice versa).

    """
    A = _to_array(block, name)

    if A.ndim != 2:
        raise DimensionMismatchError(
            "Coefficient blocks must be two-dimensional", name, A.shape, (None, None)
        )
    return A


def as_column(block: Any, name: str) -> npt.NDArray[np.float64]:
    """Copy a right-hand side or linear objective into an (m, 1) float64 array.

    One-dimensional inputs are treated as column vectors. Two-dimensional inputs are
    copied as-is; the validator checks that they have a single column.

    """
    b = _to_array(block, name)

    if b.ndim == 1:
        return b.reshape((-1, 1))
    elif b.ndim == 2:
        return b
    else:
        raise DimensionMismatchError(
            "Vectors must be one- or two-dimensional", name, b.shape, (None, 1)
        )


def as_vector(values: Any, name: str) -> npt.NDArray[np.float64]:
    """Copy values into a one-dimensional float64 array."""
    v = _to_array(values, name)
    if v.ndim == 2 and v.shape[1] == 1:
        v = v[:, 0]
    if v.ndim != 1:
        raise DimensionMismatchError("Expected a vector", name, v.shape, (None,))
    return v


def read_only(A: npt.NDArray[np.float64] | None) -> npt.NDArray[np.float64] | None:
    """Mark an array as immutable and return it."""
    if A is not None:
        A.flags.writeable = False
    return A


def zeros_column(m: int) -> npt.NDArray[np.float64]:
    """Column vector of zeros."""
    return np.zeros((m, 1))


def magnitude_range(
    *arrays: npt.NDArray[np.float64] | None,
) -> tuple[float, float]:
    """Smallest and largest nonzero magnitude across arrays.

    Zeros and non-finite entries are skipped; `None` arrays are ignored.

    Returns
    -------
     smallest, largest : float
        Both are 0.0 when no array has a finite nonzero entry.

    """
    magnitudes = []
    for a in arrays:
        if a is None:
            continue
        a = np.abs(np.ravel(a))
        magnitudes.append(a[np.isfinite(a) & (a > 0)])

    if len(magnitudes) == 0:
        return 0.0, 0.0

    nonzero = np.concatenate(magnitudes)
    if nonzero.size == 0:
        return 0.0, 0.0
    return float(np.min(nonzero)), float(np.max(nonzero))


def adjustment_exponent(value: float) -> int:
    """Power of ten that brings `value` closest to one.

    Returns -round(log10(value)), or 0 when value is zero.

    """
    if value == 0.0:
        return 0
    return -int(np.round(np.log10(value)))


def adjustment_factor_exponent(smallest: float, largest: float) -> int:
    """Exponent used to balance a row or matrix.

    Each magnitude is mapped to the power of ten that would bring it closest to one
    (see `adjustment_exponent`), and the exponent is the mean of the two, truncated
    toward zero. Scaling by 10**exponent thus centers the geometric mean of the
    magnitudes near one.

    Parameters
    ----------
     smallest, largest : float
        Output of `magnitude_range`.

    Returns
    -------
     exponent : int
        Multiply by 10**exponent to balance.

    """
    return int((adjustment_exponent(largest) + adjustment_exponent(smallest)) / 2)
