"""
Shared helpers: numeric primitives and the operation report.
"""

from gauss_compress.common.op_report import OpReport
from gauss_compress.common.primitives import (
    as_vector,
    symmetrize,
    quadratic_form_distance,
    inverse_or_nan,
)

__all__ = [
    "OpReport",
    "as_vector",
    "symmetrize",
    "quadratic_form_distance",
    "inverse_or_nan",
]
