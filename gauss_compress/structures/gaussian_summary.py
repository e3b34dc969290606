"""
GaussianSummary: sufficient statistics of a (possibly merged) point cluster.

Each summary has:
- mean: (D,) sample mean
- covariance: (D, D) covariance of the summarized samples (incl. prior)
- weight_sum: (D, D) accumulated weight matrix
- count: number of original samples summarized (>= 1)

Combine rule (weighted parallel moment combination):
    w   = count + tr(weight_sum) / D                 (effective weight)
    mu  = (w_A mu_A + w_B mu_B) / (w_A + w_B)
    Sig = (w_A Sig_A + w_B Sig_B) / (w_A + w_B) + w_A w_B / (w_A + w_B)^2 d d'
    d   = mu_A - mu_B

count and tr(weight_sum) both add under combine, so the effective weight is
additive too. That makes the rule the exact pooled first and second moments
of the weighted samples behind each operand:
- associative and commutative for any mix of weights, including the zero
  weight_sum of fresh singletons and rank-deficient accumulated weights
- covariance is a convex combination of PSD matrices plus a PSD rank-one
  term, so it stays symmetric PSD
- with zero weight_sum the weights are the sample counts, and a union of
  singletons reproduces prior + population covariance
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import numpy as np

from gauss_compress.common.primitives import as_vector, symmetrize


@dataclass
class GaussianSummary:
    """
    Gaussian sufficient statistics for one point.

    mean: (D,) float64
    covariance: (D, D) float64
    weight_sum: (D, D) float64, trace >= 0
    count: int
    """
    mean: np.ndarray
    covariance: np.ndarray
    weight_sum: np.ndarray
    count: int = 1

    def __post_init__(self):
        self.mean = as_vector(self.mean)
        d = self.mean.shape[0]
        self.covariance = np.asarray(self.covariance, dtype=np.float64)
        self.weight_sum = np.asarray(self.weight_sum, dtype=np.float64)
        if self.covariance.shape != (d, d):
            raise ValueError(f"Expected ({d}, {d}) covariance, got shape {self.covariance.shape}")
        if self.weight_sum.shape != (d, d):
            raise ValueError(f"Expected ({d}, {d}) weight_sum, got shape {self.weight_sum.shape}")
        if self.count < 1:
            raise ValueError(f"count must be >= 1, got {self.count}")
        trace = float(np.trace(self.weight_sum))
        if not np.isfinite(trace) or trace < 0.0:
            raise ValueError(f"weight_sum must have a finite non-negative trace, got {trace}")
        self.count = int(self.count)

    @classmethod
    def singleton(cls, point: np.ndarray, initial_variance: float) -> "GaussianSummary":
        """Fresh summary for one sample: prior covariance, zero weight."""
        point = as_vector(point)
        d = point.shape[0]
        return cls(
            mean=point.copy(),
            covariance=float(initial_variance) * np.eye(d, dtype=np.float64),
            weight_sum=np.zeros((d, d), dtype=np.float64),
            count=1,
        )

    @property
    def dimension(self) -> int:
        return int(self.mean.shape[0])

    @property
    def effective_weight(self) -> float:
        """Scalar weight of this summary in combine (always >= count)."""
        return float(self.count) + float(np.trace(self.weight_sum)) / self.dimension

    def combine(self, other: "GaussianSummary") -> "GaussianSummary":
        """
        Summary of the union of the samples behind self and other.

        Neither operand is modified.
        """
        if other.dimension != self.dimension:
            raise ValueError(
                f"Cannot combine summaries of dimension {self.dimension} and {other.dimension}"
            )
        w_a = self.effective_weight
        w_b = other.effective_weight
        w = w_a + w_b
        delta = self.mean - other.mean
        mean = (w_a * self.mean + w_b * other.mean) / w
        covariance = (
            (w_a * self.covariance + w_b * other.covariance) / w
            + (w_a * w_b / (w * w)) * np.outer(delta, delta)
        )
        return GaussianSummary(
            mean=mean,
            covariance=symmetrize(covariance),
            weight_sum=self.weight_sum + other.weight_sum,
            count=self.count + other.count,
        )


def combine_all(summaries: Iterable[GaussianSummary]) -> GaussianSummary:
    """Left fold of combine over a non-empty sequence of summaries."""
    iterator = iter(summaries)
    try:
        combined = next(iterator)
    except StopIteration:
        raise ValueError("Need at least one summary") from None
    for summary in iterator:
        combined = combined.combine(summary)
    return combined
