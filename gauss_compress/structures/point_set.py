"""
PointSet: columnar point cloud container.

Each point i has:
- Coordinates: points[i] (D,)
- Named attributes: attributes[name][i] (w,) for a fixed per-attribute width w

All attribute arrays and the coordinate array have exactly N rows in
lock-step order. Moving a point moves all of its columns together
(copy_column), and compaction is done by copying survivors forward and
shrinking (shrink_to).

Matrix-valued attributes (covariance, weightSum) are stored flattened
row-major by dimension index: row i holds M_i.reshape(D * D).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

import numpy as np


# =============================================================================
# Matrix Attribute Encoding
# =============================================================================


def flatten_matrices(matrices: np.ndarray) -> np.ndarray:
    """(N, D, D) -> (N, D*D), row-major by dimension index."""
    matrices = np.asarray(matrices)
    if matrices.ndim != 3 or matrices.shape[1] != matrices.shape[2]:
        raise ValueError(f"Expected (N, D, D) matrices, got shape {matrices.shape}")
    n, d, _ = matrices.shape
    return matrices.reshape(n, d * d)


def unflatten_matrices(rows: np.ndarray, dim: int) -> np.ndarray:
    """(N, D*D) -> (N, D, D), inverse of flatten_matrices."""
    rows = np.asarray(rows)
    if rows.ndim != 2 or rows.shape[1] != dim * dim:
        raise ValueError(
            f"Expected matrix attribute of width {dim * dim} for dimension {dim}, "
            f"got shape {rows.shape}"
        )
    return rows.reshape(rows.shape[0], dim, dim)


# =============================================================================
# PointSet
# =============================================================================


@dataclass
class PointSet:
    """
    Point coordinates plus named per-point attribute columns.

    Attributes:
        points: (N, D) coordinates (float32 or float64)
        attributes: Dict mapping name -> (N, w) array
    """
    points: np.ndarray
    attributes: Dict[str, np.ndarray] = field(default_factory=dict)

    def __post_init__(self):
        points = np.asarray(self.points)
        if points.ndim != 2:
            raise ValueError(f"Expected (N, D) points, got shape {points.shape}")
        if not np.issubdtype(points.dtype, np.floating):
            points = points.astype(np.float64)
        self.points = points

        attributes = {}
        for name, values in self.attributes.items():
            attributes[name] = self._as_column(name, values)
        self.attributes = attributes

    def _as_column(self, name: str, values: np.ndarray) -> np.ndarray:
        values = np.asarray(values)
        if values.ndim == 1:
            values = values.reshape(-1, 1)
        if values.ndim != 2:
            raise ValueError(f"Attribute {name!r} must be (N,) or (N, w), got shape {values.shape}")
        if values.shape[0] != self.n_points:
            raise ValueError(
                f"Attribute {name!r} has {values.shape[0]} rows, expected {self.n_points}"
            )
        return values

    # -------------------------------------------------------------------------
    # Shape
    # -------------------------------------------------------------------------

    @property
    def n_points(self) -> int:
        return int(self.points.shape[0])

    @property
    def dimension(self) -> int:
        return int(self.points.shape[1])

    @property
    def attribute_names(self) -> List[str]:
        return list(self.attributes.keys())

    def __len__(self) -> int:
        return self.n_points

    # -------------------------------------------------------------------------
    # Attributes
    # -------------------------------------------------------------------------

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def get_attribute(self, name: str) -> np.ndarray:
        """Mutable (N, w) view of an attribute column."""
        try:
            return self.attributes[name]
        except KeyError:
            raise KeyError(f"PointSet has no attribute {name!r}") from None

    def attribute_width(self, name: str) -> int:
        return int(self.get_attribute(name).shape[1])

    def add_attribute(self, name: str, values: np.ndarray) -> None:
        """Add a new attribute column; it must not already exist."""
        if name in self.attributes:
            raise ValueError(f"Attribute {name!r} already exists")
        self.attributes[name] = self._as_column(name, values)

    def set_attribute(self, name: str, values: np.ndarray) -> None:
        """Add or replace an attribute column."""
        self.attributes[name] = self._as_column(name, values)

    # -------------------------------------------------------------------------
    # Column moves
    # -------------------------------------------------------------------------

    def copy_column(self, src: int, dst: int) -> None:
        """Copy point src (coordinates and every attribute) into slot dst."""
        if src == dst:
            return
        self.points[dst] = self.points[src]
        for values in self.attributes.values():
            values[dst] = values[src]

    def shrink_to(self, n: int) -> None:
        """Keep the first n points and release the rest."""
        if n < 0 or n > self.n_points:
            raise ValueError(f"shrink_to: n must be in [0, {self.n_points}], got {n}")
        if n == self.n_points:
            return
        self.points = self.points[:n].copy()
        for name in list(self.attributes.keys()):
            self.attributes[name] = self.attributes[name][:n].copy()

    def copy(self) -> "PointSet":
        return PointSet(
            points=self.points.copy(),
            attributes={name: values.copy() for name, values in self.attributes.items()},
        )
