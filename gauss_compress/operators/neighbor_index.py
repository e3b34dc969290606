"""
KD-tree neighbor index over a PointSet (scipy cKDTree).

configure -> build -> query, once per compression invocation. The query
returns, for every point, k neighbor ids in non-decreasing distance order.
Missing neighbors (outside maxDist, or k > N) are padded with the
sentinel id N and distance inf, following the cKDTree convention.

With include_self (default) each row is normalized so that the query point
itself sits at rank 0 with distance 0. Coincident points otherwise tie at
distance 0 in an unspecified order.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import numpy as np
from scipy.spatial import cKDTree

from gauss_compress import constants
from gauss_compress.structures.point_set import PointSet

logger = logging.getLogger(__name__)


@dataclass
class NeighborMatches:
    """
    Fixed k-NN table.

    ids: (N, k) int64, sentinel = N
    dists: (N, k) float64, inf for sentinels
    """
    ids: np.ndarray
    dists: np.ndarray

    @property
    def n_points(self) -> int:
        return int(self.ids.shape[0])

    @property
    def knn(self) -> int:
        return int(self.ids.shape[1])

    @property
    def sentinel(self) -> int:
        return self.n_points

    def is_sentinel(self, neighbor_id: int) -> bool:
        return neighbor_id < 0 or neighbor_id >= self.n_points


class KDTreeNeighborIndex:
    """
    k-nearest-neighbor search with an optional radius cutoff.

    Parameters (configure):
        knn: neighbors per query (>= 1)
        maxDist: radius cutoff (inf = unbounded)
        epsilon: approximate search tolerance; the k-th returned neighbor
            is at most (1 + epsilon) times farther than the true k-th
    """

    def __init__(
        self,
        params: Optional[Mapping[str, Any]] = None,
        include_self: bool = True,
        workers: int = constants.QUERY_WORKERS_DEFAULT,
    ):
        self.knn = constants.KNN_DEFAULT
        self.max_dist = constants.MAX_DIST_DEFAULT
        self.epsilon = constants.EPSILON_DEFAULT
        self.include_self = bool(include_self)
        self.workers = int(workers)
        self._tree: Optional[cKDTree] = None
        self._n_ref = 0
        if params is not None:
            self.configure(params)

    def configure(self, params: Mapping[str, Any]) -> None:
        knn = int(params.get("knn", self.knn))
        max_dist = params.get("maxDist", self.max_dist)
        max_dist = math.inf if max_dist is None else float(max_dist)
        epsilon = float(params.get("epsilon", self.epsilon))
        if knn < 1:
            raise ValueError(f"knn must be >= 1, got {knn}")
        if math.isnan(max_dist) or max_dist <= 0.0:
            raise ValueError(f"maxDist must be > 0, got {max_dist}")
        if not math.isfinite(epsilon) or epsilon < 0.0:
            raise ValueError(f"epsilon must be >= 0, got {epsilon}")
        self.knn = knn
        self.max_dist = max_dist
        self.epsilon = epsilon

    def build(self, reference: PointSet) -> None:
        """Build the tree over the reference geometry."""
        points = np.asarray(reference.points, dtype=np.float64)
        if not np.all(np.isfinite(points)):
            raise ValueError("Neighbor index requires finite point coordinates")
        self._tree = cKDTree(points)
        self._n_ref = int(points.shape[0])

    def query(self, queries: PointSet) -> NeighborMatches:
        """
        k-NN of every query point against the built reference.

        Self-normalization assumes the queries are the reference set
        (row i of the result is point i of the reference).
        """
        if self._tree is None:
            raise ValueError("Neighbor index queried before build()")
        points = np.asarray(queries.points, dtype=np.float64)
        n_query = int(points.shape[0])
        k = self.knn
        if n_query == 0 or self._n_ref == 0:
            ids = np.full((n_query, k), self._n_ref, dtype=np.int64)
            dists = np.full((n_query, k), np.inf, dtype=np.float64)
            return NeighborMatches(ids=ids, dists=dists)

        dists, ids = self._tree.query(
            points,
            k=k,
            eps=self.epsilon,
            distance_upper_bound=self.max_dist,
            workers=self.workers,
        )
        # k == 1 yields flat arrays
        dists = np.asarray(dists, dtype=np.float64).reshape(n_query, k)
        ids = np.asarray(ids, dtype=np.int64).reshape(n_query, k)

        if self.include_self and n_query == self._n_ref:
            ids, dists = _self_first(ids, dists, sentinel=self._n_ref)

        logger.debug(
            "k-NN query: %d points, k=%d, %d sentinel slots",
            n_query,
            k,
            int(np.sum(ids >= self._n_ref)),
        )
        return NeighborMatches(ids=ids, dists=dists)


def _self_first(ids: np.ndarray, dists: np.ndarray, sentinel: int):
    """Move each row's own index to rank 0, keeping the other ranks in order."""
    n, k = ids.shape
    out_ids = np.full_like(ids, sentinel)
    out_dists = np.full_like(dists, np.inf)
    for i in range(n):
        row_ids = ids[i]
        if row_ids[0] == i:
            out_ids[i] = row_ids
            out_dists[i] = dists[i]
            continue
        keep = row_ids != i
        others = row_ids[keep][: k - 1]
        other_dists = dists[i][keep][: k - 1]
        out_ids[i, 0] = i
        out_dists[i, 0] = 0.0
        out_ids[i, 1 : 1 + others.shape[0]] = others
        out_dists[i, 1 : 1 + others.shape[0]] = other_dists
    return out_ids, out_dists
