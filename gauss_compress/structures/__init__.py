"""
Data structures: columnar PointSet and per-point GaussianSummary.
"""

from gauss_compress.structures.point_set import (
    PointSet,
    flatten_matrices,
    unflatten_matrices,
)
from gauss_compress.structures.gaussian_summary import GaussianSummary, combine_all

__all__ = [
    "PointSet",
    "flatten_matrices",
    "unflatten_matrices",
    "GaussianSummary",
    "combine_all",
]
