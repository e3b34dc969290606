"""
gauss_compress constants and default parameter values.

All magic numbers are centralized here with clear documentation.
"""

# =============================================================================
# Attribute Column Names
# =============================================================================

# Per-point D*D flattened covariance of the summarized samples
COVARIANCE_ATTRIBUTE = "covariance"

# Per-point D*D flattened accumulated weight matrix
WEIGHT_SUM_ATTRIBUTE = "weightSum"

# Per-point count of original samples summarized by the point
NB_POINTS_ATTRIBUTE = "nbPoints"

SUMMARY_ATTRIBUTES = (COVARIANCE_ATTRIBUTE, WEIGHT_SUM_ATTRIBUTE, NB_POINTS_ATTRIBUTE)

# =============================================================================
# Filter Parameter Defaults
# =============================================================================

# Neighbors per query (includes the query point itself)
KNN_DEFAULT = 7

# Search radius cutoff; inf = unbounded
MAX_DIST_DEFAULT = float("inf")

# Approximate search tolerance (0 = exact k-NN)
EPSILON_DEFAULT = 0.0

# Prior covariance scale for points without a stored summary (m^2)
INITIAL_VARIANCE_DEFAULT = 9e-4  # 3cm standard deviation

# Acceptance threshold on the merge distance
MAX_DEVIATION_DEFAULT = 0.3

# Metric tensor used in the acceptance test
ACCEPTANCE_METRIC_COVARIANCE = "covariance"  # delta' Sigma_i delta
ACCEPTANCE_METRIC_MAHALANOBIS = "mahalanobis"  # delta' Sigma_i^{-1} delta
ACCEPTANCE_METRICS = (ACCEPTANCE_METRIC_COVARIANCE, ACCEPTANCE_METRIC_MAHALANOBIS)
ACCEPTANCE_METRIC_DEFAULT = ACCEPTANCE_METRIC_COVARIANCE

# Neighbor query worker threads (scipy cKDTree convention, -1 = all cores)
QUERY_WORKERS_DEFAULT = 1

# Names accepted as "no search radius" in configuration files
UNBOUNDED_TOKENS = ("inf", "+inf", "infinity", "unbounded", "none")
