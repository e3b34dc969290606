"""
Operators: neighbor index and the compression filter.
"""

from gauss_compress.operators.neighbor_index import KDTreeNeighborIndex, NeighborMatches
from gauss_compress.operators.compression import (
    CompressionFilter,
    CompressionResult,
    MergeState,
    MergeStats,
    compress_point_set,
    load_summaries,
    merge_pass,
    merge_until_fixed_point,
    write_back_and_compact,
)

__all__ = [
    "KDTreeNeighborIndex",
    "NeighborMatches",
    "CompressionFilter",
    "CompressionResult",
    "MergeState",
    "MergeStats",
    "compress_point_set",
    "load_summaries",
    "merge_pass",
    "merge_until_fixed_point",
    "write_back_and_compact",
]
