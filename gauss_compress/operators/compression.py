"""
GaussianSummaryCompression operator.

Reduces the number of points in a PointSet by greedily merging each point
with its live nearest neighbors whenever the merged mean stays within
maxDeviation of the point, measured with the point's own covariance:

    d_i = sqrt(delta' Sigma_i delta),  delta = mu_merged - x_i

Pipeline (one invocation):
1. load_summaries: per-point GaussianSummary from the covariance /
   weightSum / nbPoints columns, or fresh singletons if absent
2. KDTreeNeighborIndex: k-NN table on the pre-merge geometry, fixed for
   the whole loop
3. merge_until_fixed_point: index-ordered passes until the live count
   stops changing; deaths are visible to later points of the same pass
4. write_back_and_compact: flatten summaries into the columns, move
   survivors forward, shrink

Everything up to step 4 runs on working copies, so a failure leaves the
input PointSet untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from gauss_compress import constants
from gauss_compress.common.op_report import OpReport
from gauss_compress.common.primitives import inverse_or_nan, quadratic_form_distance
from gauss_compress.config import CompressionConfig
from gauss_compress.operators.neighbor_index import KDTreeNeighborIndex, NeighborMatches
from gauss_compress.structures.gaussian_summary import GaussianSummary
from gauss_compress.structures.point_set import (
    PointSet,
    flatten_matrices,
    unflatten_matrices,
)

logger = logging.getLogger(__name__)

OPERATOR_NAME = "GaussianSummaryCompression"


# =============================================================================
# Data Structures
# =============================================================================


@dataclass
class MergeState:
    """Working state of the merge loop (scoped to one invocation)."""
    coords: np.ndarray  # (N, D) float64, moved to merged means
    summaries: List[GaussianSummary]
    nb_points: np.ndarray  # (N,) float64 working sample counts
    mask: np.ndarray  # (N,) bool, True = live
    n_live: int


@dataclass
class MergeStats:
    """Counters of one merge loop run."""
    n_passes: int
    n_accepted: int  # accepted merges that absorbed at least one neighbor
    n_rejected: int  # rejected acceptance tests (incl. NaN distances)
    n_absorbed: int  # points marked dead
    hit_pass_cap: bool


@dataclass
class CompressionResult:
    """Result of GaussianSummaryCompression operator."""
    point_set: PointSet
    n_input: int
    n_output: int
    nb_points_in: float
    nb_points_out: float
    stats: MergeStats


# =============================================================================
# Step 1: Summary construction
# =============================================================================


def load_summaries(
    point_set: PointSet,
    initial_variance: float,
) -> Tuple[List[GaussianSummary], np.ndarray]:
    """
    Per-point summaries and working nbPoints for a PointSet.

    Fresh singletons when none of the summary columns exist; reconstruction
    from the columns when all three exist. Anything in between is an error.

    Returns:
        (summaries, nb_points) with nb_points a (N,) float64 array
    """
    d = point_set.dimension
    n = point_set.n_points
    coords = np.asarray(point_set.points, dtype=np.float64)
    present = [name for name in constants.SUMMARY_ATTRIBUTES if point_set.has_attribute(name)]

    if not present:
        summaries = [GaussianSummary.singleton(coords[i], initial_variance) for i in range(n)]
        return summaries, np.ones(n, dtype=np.float64)

    if len(present) != len(constants.SUMMARY_ATTRIBUTES):
        missing = [name for name in constants.SUMMARY_ATTRIBUTES if name not in present]
        raise ValueError(
            f"Incomplete Gaussian summary attributes: have {present}, missing {missing}"
        )

    for name in (constants.COVARIANCE_ATTRIBUTE, constants.WEIGHT_SUM_ATTRIBUTE):
        width = point_set.attribute_width(name)
        if width != d * d:
            raise ValueError(
                f"Attribute {name!r} has width {width}, expected {d * d} for dimension {d}"
            )
    nb_width = point_set.attribute_width(constants.NB_POINTS_ATTRIBUTE)
    if nb_width != 1:
        raise ValueError(
            f"Attribute {constants.NB_POINTS_ATTRIBUTE!r} has width {nb_width}, expected 1"
        )

    nb_points = np.asarray(
        point_set.get_attribute(constants.NB_POINTS_ATTRIBUTE), dtype=np.float64
    ).reshape(-1)
    if not np.all(np.isfinite(nb_points)) or np.any(nb_points < 1.0):
        raise ValueError(f"Attribute {constants.NB_POINTS_ATTRIBUTE!r} must be finite and >= 1")

    covariances = unflatten_matrices(
        np.asarray(point_set.get_attribute(constants.COVARIANCE_ATTRIBUTE), dtype=np.float64), d
    )
    weight_sums = unflatten_matrices(
        np.asarray(point_set.get_attribute(constants.WEIGHT_SUM_ATTRIBUTE), dtype=np.float64), d
    )
    summaries = [
        GaussianSummary(
            mean=coords[i].copy(),
            covariance=covariances[i].copy(),
            weight_sum=weight_sums[i].copy(),
            count=int(round(nb_points[i])),
        )
        for i in range(n)
    ]
    return summaries, nb_points.copy()


# =============================================================================
# Step 3: Greedy merge loop
# =============================================================================


def _acceptance_distance(delta: np.ndarray, covariance: np.ndarray, metric: str) -> float:
    if metric == constants.ACCEPTANCE_METRIC_MAHALANOBIS:
        return quadratic_form_distance(delta, inverse_or_nan(covariance))
    return quadratic_form_distance(delta, covariance)


def merge_pass(
    state: MergeState,
    matches: NeighborMatches,
    max_deviation: float,
    metric: str = constants.ACCEPTANCE_METRIC_DEFAULT,
) -> Tuple[int, int, int]:
    """
    One index-ordered pass over all live points (mutates state).

    Returns:
        (n_accepted, n_rejected, n_absorbed) for this pass
    """
    n_accepted = 0
    n_rejected = 0
    n_absorbed = 0
    mask = state.mask
    knn = matches.knn

    for i in range(matches.n_points):
        if not mask[i]:
            continue

        row = matches.ids[i]
        anchor = int(row[0])
        if matches.is_sentinel(anchor) or not mask[anchor]:
            continue

        neighborhood = state.summaries[anchor]
        for rank in range(1, knn):
            j = int(row[rank])
            if matches.is_sentinel(j) or not mask[j]:
                continue
            neighborhood = neighborhood.combine(state.summaries[j])

        delta = neighborhood.mean - state.coords[i]
        distance = _acceptance_distance(delta, state.summaries[i].covariance, metric)

        # NaN compares False: degenerate metrics reject
        if not distance <= max_deviation:
            n_rejected += 1
            continue

        state.coords[i] = neighborhood.mean
        state.summaries[i] = neighborhood
        absorbed_here = 0
        for rank in range(1, knn):
            j = int(row[rank])
            if j == i or matches.is_sentinel(j) or not mask[j]:
                continue
            state.nb_points[i] += state.nb_points[j]
            mask[j] = False
            state.n_live -= 1
            absorbed_here += 1
        if absorbed_here:
            n_accepted += 1
            n_absorbed += absorbed_here

    return n_accepted, n_rejected, n_absorbed


def merge_until_fixed_point(
    state: MergeState,
    matches: NeighborMatches,
    max_deviation: float,
    metric: str = constants.ACCEPTANCE_METRIC_DEFAULT,
    max_passes: Optional[int] = None,
) -> MergeStats:
    """
    Repeat merge passes until a pass leaves the live count unchanged.

    Terminates: every pass that changes the count removes at least one
    point, so there are at most N + 1 passes.
    """
    n_passes = 0
    n_accepted = 0
    n_rejected = 0
    n_absorbed = 0
    hit_pass_cap = False
    last_live = -1

    while state.n_live != last_live:
        if max_passes is not None and n_passes >= max_passes:
            hit_pass_cap = True
            break
        last_live = state.n_live
        accepted, rejected, absorbed = merge_pass(state, matches, max_deviation, metric)
        n_passes += 1
        n_accepted += accepted
        n_rejected += rejected
        n_absorbed += absorbed
        logger.debug(
            "merge pass %d: live %d -> %d (%d merges)",
            n_passes,
            last_live,
            state.n_live,
            accepted,
        )

    return MergeStats(
        n_passes=n_passes,
        n_accepted=n_accepted,
        n_rejected=n_rejected,
        n_absorbed=n_absorbed,
        hit_pass_cap=hit_pass_cap,
    )


# =============================================================================
# Step 4: Write-back and compaction
# =============================================================================


def _ensure_attribute(point_set: PointSet, name: str, width: int) -> None:
    if not point_set.has_attribute(name):
        point_set.add_attribute(name, np.zeros((point_set.n_points, width), dtype=np.float64))


def write_back_and_compact(point_set: PointSet, state: MergeState) -> int:
    """
    Write live summaries into the columns and compact survivors forward.

    Returns:
        Number of surviving points (the new PointSet size)
    """
    d = point_set.dimension
    _ensure_attribute(point_set, constants.COVARIANCE_ATTRIBUTE, d * d)
    _ensure_attribute(point_set, constants.WEIGHT_SUM_ATTRIBUTE, d * d)
    _ensure_attribute(point_set, constants.NB_POINTS_ATTRIBUTE, 1)

    nb_points_column = point_set.get_attribute(constants.NB_POINTS_ATTRIBUTE)
    nb_points_column[:, 0] = state.nb_points

    covariance_column = point_set.get_attribute(constants.COVARIANCE_ATTRIBUTE)
    weight_sum_column = point_set.get_attribute(constants.WEIGHT_SUM_ATTRIBUTE)
    n_out = 0
    for i in range(point_set.n_points):
        if not state.mask[i]:
            continue
        summary = state.summaries[i]
        covariance_column[i] = flatten_matrices(summary.covariance[None])[0]
        weight_sum_column[i] = flatten_matrices(summary.weight_sum[None])[0]
        point_set.points[i] = state.coords[i]
        point_set.copy_column(i, n_out)
        n_out += 1

    point_set.shrink_to(n_out)
    return n_out


# =============================================================================
# Main Operator
# =============================================================================


def compress_point_set(
    point_set: PointSet,
    config: CompressionConfig,
) -> Tuple[CompressionResult, OpReport]:
    """
    Compress a PointSet in place by greedy Gaussian-summary merging.

    Args:
        point_set: Cloud to compress (compacted in place on success)
        config: Filter parameters

    Returns:
        (CompressionResult, OpReport)
    """
    n_input = point_set.n_points
    summaries, nb_points = load_summaries(point_set, config.initial_variance)
    nb_points_in = float(np.sum(nb_points))

    if n_input > 0:
        index = KDTreeNeighborIndex(config.neighbor_params(), workers=config.workers)
        index.build(point_set)
        matches = index.query(point_set)
    else:
        matches = NeighborMatches(
            ids=np.zeros((0, config.knn), dtype=np.int64),
            dists=np.zeros((0, config.knn), dtype=np.float64),
        )

    state = MergeState(
        coords=np.array(point_set.points, dtype=np.float64),
        summaries=summaries,
        nb_points=nb_points,
        mask=np.ones(n_input, dtype=bool),
        n_live=n_input,
    )
    stats = merge_until_fixed_point(
        state,
        matches,
        max_deviation=config.max_deviation,
        metric=config.acceptance_metric,
        max_passes=config.max_passes,
    )

    n_output = write_back_and_compact(point_set, state)
    nb_points_out = float(np.sum(point_set.get_attribute(constants.NB_POINTS_ATTRIBUTE)))

    result = CompressionResult(
        point_set=point_set,
        n_input=n_input,
        n_output=n_output,
        nb_points_in=nb_points_in,
        nb_points_out=nb_points_out,
        stats=stats,
    )

    triggers = ["greedy_merge"] if stats.n_absorbed > 0 else []
    if stats.hit_pass_cap:
        triggers.append("pass_cap")
    report = OpReport(
        name=OPERATOR_NAME,
        exact=not triggers,
        approximation_triggers=triggers,
        family_in="PointSet",
        family_out="PointSet+GaussianSummary",
        closed_form=False,
        solver_used="greedy_knn_fixed_point",
        parameters=config.to_dict(),
        metrics={
            "n_input": n_input,
            "n_output": n_output,
            "nb_points_in": nb_points_in,
            "nb_points_out": nb_points_out,
            "n_passes": stats.n_passes,
            "n_accepted": stats.n_accepted,
            "n_rejected": stats.n_rejected,
            "n_absorbed": stats.n_absorbed,
        },
        notes=(
            "Acceptance distance uses the candidate's own covariance as metric."
            if config.acceptance_metric == constants.ACCEPTANCE_METRIC_COVARIANCE
            else "Acceptance distance uses the inverse of the candidate's covariance."
        ),
    )
    report.validate()

    logger.info(
        "%s: %d -> %d points in %d passes (%d merges, %d absorbed)",
        OPERATOR_NAME,
        n_input,
        n_output,
        stats.n_passes,
        stats.n_accepted,
        stats.n_absorbed,
    )
    return result, report


class CompressionFilter:
    """
    Compression filter with parameters fixed at construction.

    filter() returns a compressed copy and leaves the input untouched;
    in_place_filter() compacts the given PointSet.
    """

    def __init__(self, config: Optional[CompressionConfig] = None):
        self.config = config if config is not None else CompressionConfig()
        self.last_report: Optional[OpReport] = None

    @classmethod
    def from_params(cls, **params) -> "CompressionFilter":
        return cls(CompressionConfig.from_dict(params))

    def filter(self, point_set: PointSet) -> PointSet:
        output = point_set.copy()
        self.in_place_filter(output)
        return output

    def in_place_filter(self, point_set: PointSet) -> CompressionResult:
        result, report = compress_point_set(point_set, self.config)
        self.last_report = report
        return result
