import numpy as np
import pytest

from gauss_compress.structures.point_set import PointSet, flatten_matrices, unflatten_matrices


def _point_set(n=4, d=3):
    points = np.arange(n * d, dtype=np.float64).reshape(n, d)
    return PointSet(
        points=points,
        attributes={
            "intensity": np.arange(n, dtype=np.float64),
            "normals": np.tile(np.arange(d, dtype=np.float64), (n, 1)) + np.arange(n)[:, None],
        },
    )


class TestMatrixEncoding:
    def test_flatten_is_row_major(self):
        M = np.array([[[1.0, 2.0], [3.0, 4.0]]])
        assert np.allclose(flatten_matrices(M), [[1.0, 2.0, 3.0, 4.0]])

    def test_unflatten_inverts_flatten(self):
        rng = np.random.default_rng(0)
        M = rng.normal(size=(5, 3, 3))
        assert np.allclose(unflatten_matrices(flatten_matrices(M), 3), M)

    def test_unflatten_wrong_width_raises(self):
        with pytest.raises(ValueError):
            unflatten_matrices(np.zeros((2, 3)), 2)

    def test_flatten_non_square_raises(self):
        with pytest.raises(ValueError):
            flatten_matrices(np.zeros((2, 2, 3)))


class TestPointSet:
    def test_shape(self):
        ps = _point_set()
        assert ps.n_points == 4
        assert ps.dimension == 3
        assert len(ps) == 4
        assert ps.attribute_width("intensity") == 1
        assert ps.attribute_width("normals") == 3

    def test_integer_points_promoted(self):
        ps = PointSet(points=np.array([[1, 2], [3, 4]]))
        assert np.issubdtype(ps.points.dtype, np.floating)

    def test_float32_points_kept(self):
        ps = PointSet(points=np.zeros((2, 3), dtype=np.float32))
        assert ps.points.dtype == np.float32

    def test_rejects_bad_points(self):
        with pytest.raises(ValueError):
            PointSet(points=np.zeros(3))

    def test_rejects_attribute_row_mismatch(self):
        with pytest.raises(ValueError):
            PointSet(points=np.zeros((3, 2)), attributes={"a": np.zeros(2)})

    def test_add_attribute(self):
        ps = _point_set()
        ps.add_attribute("nbPoints", np.ones(4))
        assert ps.has_attribute("nbPoints")
        assert ps.get_attribute("nbPoints").shape == (4, 1)
        with pytest.raises(ValueError):
            ps.add_attribute("nbPoints", np.ones(4))

    def test_set_attribute_replaces(self):
        ps = _point_set()
        ps.set_attribute("intensity", np.full(4, 7.0))
        assert np.allclose(ps.get_attribute("intensity"), 7.0)

    def test_get_missing_attribute_raises(self):
        with pytest.raises(KeyError):
            _point_set().get_attribute("covariance")

    def test_get_attribute_is_mutable_view(self):
        ps = _point_set()
        ps.get_attribute("intensity")[2, 0] = -1.0
        assert ps.get_attribute("intensity")[2, 0] == -1.0

    def test_copy_column_moves_all_columns(self):
        ps = _point_set()
        ps.copy_column(3, 0)
        assert np.allclose(ps.points[0], ps.points[3])
        assert ps.get_attribute("intensity")[0, 0] == 3.0
        assert np.allclose(ps.get_attribute("normals")[0], ps.get_attribute("normals")[3])

    def test_shrink_to(self):
        ps = _point_set()
        ps.shrink_to(2)
        assert ps.n_points == 2
        assert ps.get_attribute("normals").shape == (2, 3)
        assert np.allclose(ps.get_attribute("intensity")[:, 0], [0.0, 1.0])
        with pytest.raises(ValueError):
            ps.shrink_to(3)

    def test_copy_is_independent(self):
        ps = _point_set()
        other = ps.copy()
        other.points[0, 0] = 100.0
        other.get_attribute("intensity")[0, 0] = 100.0
        assert ps.points[0, 0] == 0.0
        assert ps.get_attribute("intensity")[0, 0] == 0.0
