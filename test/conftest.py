import os
import pytest
from typing import Dict, Any

# =============================================================================
# Config Fixtures
# =============================================================================
# These fixtures load the shipped default parameter file, ensuring tests
# validate the same code paths as the command line tool.


@pytest.fixture
def default_config_path() -> str:
    """Path of the shipped default parameter file."""
    test_dir = os.path.dirname(__file__)
    pkg_root = os.path.dirname(test_dir)
    path = os.path.join(pkg_root, "config", "compression_default.yaml")
    if not os.path.exists(path):
        pytest.skip("compression_default.yaml not found")
    return path


@pytest.fixture
def default_params(default_config_path) -> Dict[str, Any]:
    """Raw parameter mapping of the default parameter file."""
    import yaml
    with open(default_config_path) as f:
        data = yaml.safe_load(f) or {}
    return data["compression"]


# =============================================================================
# Test Utility Fixtures
# =============================================================================

@pytest.fixture
def small_pointcloud():
    """Generate a small 3D test point cloud."""
    import numpy as np
    rng = np.random.default_rng(42)
    return rng.normal(size=(100, 3))


@pytest.fixture
def clustered_pointcloud():
    """Four tight 3D clusters, 25 points each, 10m apart."""
    import numpy as np
    rng = np.random.default_rng(7)
    centers = np.array(
        [
            [0.0, 0.0, 0.0],
            [10.0, 0.0, 0.0],
            [0.0, 10.0, 0.0],
            [0.0, 0.0, 10.0],
        ]
    )
    return np.concatenate([c + 0.01 * rng.normal(size=(25, 3)) for c in centers], axis=0)


@pytest.fixture
def scenario_b_points():
    """Two close 2D points and one far away."""
    import numpy as np
    return np.array([[0.0, 0.0], [0.01, 0.0], [10.0, 10.0]], dtype=np.float64)
