"""
gauss_compress: lossy point cloud compression with Gaussian summaries.

Spatially close points are merged greedily; every surviving point carries
the mean, covariance, weight sum and sample count of what it absorbed.
"""

from gauss_compress.config import CompressionConfig, load_config
from gauss_compress.structures.point_set import PointSet
from gauss_compress.structures.gaussian_summary import GaussianSummary
from gauss_compress.operators.compression import (
    CompressionFilter,
    CompressionResult,
    compress_point_set,
)

__all__ = [
    "CompressionConfig",
    "load_config",
    "PointSet",
    "GaussianSummary",
    "CompressionFilter",
    "CompressionResult",
    "compress_point_set",
]
