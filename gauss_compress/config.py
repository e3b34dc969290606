"""
Configuration for the compression filter.

Parameters are validated by a pydantic model and fixed at construction: the
filter holds an immutable CompressionConfig and never reads process-wide
state. YAML files use the filter parameter names (knn, maxDist, epsilon,
initialVariance, maxDeviation), which are field aliases.
"""

from __future__ import annotations

import math
import os
from typing import Any, Dict, Literal, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from gauss_compress import constants


AcceptanceMetric = Literal["covariance", "mahalanobis"]


class CompressionConfig(BaseModel):
    """
    Compression filter parameters.

    Attributes:
        knn: Neighbors per query, including the query point itself (>= 1)
        max_dist: Search radius cutoff (> 0, inf = unbounded)
        epsilon: Approximate neighbor search tolerance (>= 0)
        initial_variance: Prior covariance scale for fresh points (> 0)
        max_deviation: Acceptance threshold on the merge distance (>= 0)
        acceptance_metric: "covariance" (default) or "mahalanobis"
        max_passes: Optional cap on merge passes (None = until fixed point)
        workers: Neighbor query threads (scipy convention, -1 = all cores)
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    knn: int = Field(constants.KNN_DEFAULT, ge=1)
    max_dist: float = Field(constants.MAX_DIST_DEFAULT, gt=0.0, alias="maxDist")
    epsilon: float = Field(constants.EPSILON_DEFAULT, ge=0.0, allow_inf_nan=False)
    initial_variance: float = Field(
        constants.INITIAL_VARIANCE_DEFAULT, gt=0.0, allow_inf_nan=False, alias="initialVariance"
    )
    max_deviation: float = Field(constants.MAX_DEVIATION_DEFAULT, ge=0.0, alias="maxDeviation")
    acceptance_metric: AcceptanceMetric = Field(
        constants.ACCEPTANCE_METRIC_DEFAULT, alias="acceptanceMetric"
    )
    max_passes: Optional[int] = Field(None, ge=1, alias="maxPasses")
    workers: int = Field(constants.QUERY_WORKERS_DEFAULT, ge=-1)

    @field_validator("knn", "max_passes", "workers", mode="before")
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError(f"must be an integer, got {value!r}")
        return value

    @field_validator("max_dist", mode="before")
    @classmethod
    def _unbounded_max_dist(cls, value: Any) -> Any:
        if value is None:
            return math.inf
        if isinstance(value, str) and value.strip().lower() in constants.UNBOUNDED_TOKENS:
            return math.inf
        return value

    @field_validator("max_dist", "max_deviation")
    @classmethod
    def _reject_nan(cls, value: float) -> float:
        if math.isnan(value):
            raise ValueError("must not be NaN")
        return value

    @field_validator("workers")
    @classmethod
    def _nonzero_workers(cls, value: int) -> int:
        if value == 0:
            raise ValueError("must be -1 or a positive integer")
        return value

    @classmethod
    def from_dict(cls, params: Mapping[str, Any]) -> "CompressionConfig":
        """
        Create configuration from a parameter mapping.

        Accepts the filter parameter names as well as the field names, but
        not both spellings of one parameter.
        """
        seen: Dict[str, str] = {}
        for key in params:
            name = _field_name(key)
            if name in seen:
                raise ValueError(f"Compression parameter given twice: {seen[name]!r} and {key!r}")
            seen[name] = key
        return cls.model_validate(dict(params))

    def with_overrides(self, **overrides: Any) -> "CompressionConfig":
        """Return a copy with the non-None overrides applied (re-validated)."""
        values = self.model_dump()
        for key, value in overrides.items():
            if value is not None:
                values[_field_name(key)] = value
        return type(self).model_validate(values)

    def neighbor_params(self) -> Dict[str, Any]:
        """Parameters forwarded to the neighbor index."""
        return {"knn": self.knn, "maxDist": self.max_dist, "epsilon": self.epsilon}

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


def _field_name(key: str) -> str:
    """Field name for a parameter name or alias (unknown keys pass through)."""
    for name, field in CompressionConfig.model_fields.items():
        if key == name or key == field.alias:
            return name
    return key


def _load_yaml_file(path: str) -> Dict[str, Any]:
    """Load a YAML parameter file, handling the ros__parameters wrapper."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")

    # Parameter files may wrap parameters in /**:/ros__parameters:
    if "/**" in data and "ros__parameters" in data.get("/**", {}):
        data = data["/**"]["ros__parameters"]
    if "compression" in data and isinstance(data["compression"], dict):
        data = data["compression"]
    return data


def load_config(
    path: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> CompressionConfig:
    """
    Build a CompressionConfig from an optional YAML file plus overrides.

    Args:
        path: YAML parameter file (None = defaults only)
        overrides: Parameters taking precedence over the file (None values ignored)

    Returns:
        Validated CompressionConfig

    Raises:
        ValueError: Missing file, or parameters rejected by the model
            (pydantic.ValidationError is a ValueError)
    """
    params: Dict[str, Any] = {}
    if path is not None:
        if not os.path.exists(path):
            raise ValueError(f"Config file not found: {path}")
        params.update(_load_yaml_file(path))
    if overrides:
        for key, value in overrides.items():
            if value is None:
                continue
            # Drop the other spelling of an overridden key
            name = _field_name(key)
            for other in [k for k in params if _field_name(k) == name]:
                del params[other]
            params[key] = value
    return CompressionConfig.from_dict(params)
