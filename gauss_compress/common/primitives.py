"""
Numeric primitives for Gaussian summary maintenance.

Small dense-matrix helpers shared by the summary combine rule and the
merge acceptance test. All inputs are promoted to float64.
"""

from __future__ import annotations

import numpy as np


def as_vector(x: np.ndarray) -> np.ndarray:
    """
    Normalize any (n,), (n,1), (1,n) into a flat (n,) float vector.

    This prevents silent NumPy broadcasting bugs when mixing column vectors
    and 1D arrays in the combine formulas.
    """
    x = np.asarray(x, dtype=np.float64)
    return x.reshape(-1)


def symmetrize(M: np.ndarray) -> np.ndarray:
    """0.5 * (M + M') of a square matrix (always computed)."""
    M = np.asarray(M, dtype=np.float64)
    return 0.5 * (M + M.T)


def quadratic_form_distance(delta: np.ndarray, metric: np.ndarray) -> float:
    """
    sqrt(delta' M delta).

    Returns NaN when the quadratic form is negative or not finite
    (indefinite or degenerate metric). Callers treat NaN as "reject".
    """
    delta = as_vector(delta)
    metric = np.asarray(metric, dtype=np.float64)
    with np.errstate(invalid="ignore", over="ignore"):
        q = float(delta @ metric @ delta)
    if not np.isfinite(q) or q < 0.0:
        return float("nan")
    return float(np.sqrt(q))


def inverse_or_nan(M: np.ndarray) -> np.ndarray:
    """Matrix inverse, or an all-NaN matrix if M is singular."""
    M = np.asarray(M, dtype=np.float64)
    try:
        return np.linalg.inv(M)
    except np.linalg.LinAlgError:
        return np.full_like(M, np.nan)
