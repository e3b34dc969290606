"""
PointSet file I/O.

Formats:
- .npz: "points" (N, D) plus one array per attribute (N, w). Lossless,
  the only format that carries the Gaussian summary columns between runs.
- .xyz / .txt / .csv: one point per line, whitespace (comma for .csv)
  separated coordinates; lines starting with '#' are ignored. Attributes
  are not stored.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

import numpy as np

from gauss_compress.structures.point_set import PointSet

logger = logging.getLogger(__name__)

POINTS_KEY = "points"
TEXT_SUFFIXES = (".xyz", ".txt", ".csv")


def _delimiter(path: Path):
    return "," if path.suffix.lower() == ".csv" else None


def load_point_set(path: Union[str, Path]) -> PointSet:
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".npz":
        with np.load(path, allow_pickle=False) as data:
            if POINTS_KEY not in data.files:
                raise ValueError(f"{path}: missing {POINTS_KEY!r} array")
            points = data[POINTS_KEY]
            attributes = {name: data[name] for name in data.files if name != POINTS_KEY}
        return PointSet(points=points, attributes=attributes)
    if suffix in TEXT_SUFFIXES:
        points = np.loadtxt(path, delimiter=_delimiter(path), comments="#", ndmin=2)
        return PointSet(points=points)
    raise ValueError(f"Unsupported point cloud format: {path.suffix!r} ({path})")


def save_point_set(point_set: PointSet, path: Union[str, Path]) -> None:
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".npz":
        if POINTS_KEY in point_set.attributes:
            raise ValueError(f"Attribute name {POINTS_KEY!r} is reserved")
        np.savez(path, **{POINTS_KEY: point_set.points}, **point_set.attributes)
        return
    if suffix in TEXT_SUFFIXES:
        if point_set.attributes:
            logger.warning(
                "%s: text format drops attributes %s", path, sorted(point_set.attributes)
            )
        np.savetxt(path, point_set.points, delimiter="," if suffix == ".csv" else " ")
        return
    raise ValueError(f"Unsupported point cloud format: {path.suffix!r} ({path})")
