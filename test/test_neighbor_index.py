import numpy as np
import pytest

from gauss_compress.operators.neighbor_index import KDTreeNeighborIndex
from gauss_compress.structures.point_set import PointSet


def _query(points, **params):
    ps = PointSet(points=np.asarray(points, dtype=np.float64))
    index = KDTreeNeighborIndex(params)
    index.build(ps)
    return index.query(ps)


class TestKDTreeNeighborIndex:
    def test_self_at_rank_zero_and_sorted(self, small_pointcloud):
        matches = _query(small_pointcloud, knn=5)
        assert matches.ids.shape == (100, 5)
        assert np.array_equal(matches.ids[:, 0], np.arange(100))
        assert np.all(matches.dists[:, 0] == 0.0)
        assert np.all(np.diff(matches.dists, axis=1) >= 0.0)

    def test_matches_brute_force(self, small_pointcloud):
        matches = _query(small_pointcloud, knn=4)
        d = np.linalg.norm(small_pointcloud[:, None, :] - small_pointcloud[None, :, :], axis=-1)
        expected = np.sort(d, axis=1)[:, :4]
        assert np.allclose(matches.dists, expected)

    def test_coincident_points_put_self_first(self):
        points = np.zeros((4, 2))
        matches = _query(points, knn=3)
        assert np.array_equal(matches.ids[:, 0], np.arange(4))
        for i in range(4):
            assert len(set(matches.ids[i].tolist())) == 3

    def test_more_duplicates_than_k_still_includes_self(self):
        matches = _query(np.zeros((10, 3)), knn=2)
        assert np.array_equal(matches.ids[:, 0], np.arange(10))
        assert np.all(matches.ids[:, 1] != np.arange(10))

    def test_max_dist_pads_with_sentinel(self, scenario_b_points):
        matches = _query(scenario_b_points, knn=3, maxDist=1.0)
        assert matches.sentinel == 3
        assert matches.ids[2, 1] == 3
        assert np.isinf(matches.dists[2, 1])
        assert matches.ids[0, 1] == 1
        assert matches.is_sentinel(3)
        assert not matches.is_sentinel(2)

    def test_k_larger_than_n(self, scenario_b_points):
        matches = _query(scenario_b_points, knn=5)
        assert matches.ids.shape == (3, 5)
        assert np.all(matches.ids[:, 3:] == 3)

    def test_knn_one(self, scenario_b_points):
        matches = _query(scenario_b_points, knn=1)
        assert matches.ids.shape == (3, 1)
        assert np.array_equal(matches.ids[:, 0], [0, 1, 2])

    def test_query_before_build_raises(self, scenario_b_points):
        index = KDTreeNeighborIndex({"knn": 2})
        with pytest.raises(ValueError):
            index.query(PointSet(points=scenario_b_points))

    def test_non_finite_points_rejected(self):
        index = KDTreeNeighborIndex({"knn": 2})
        with pytest.raises(ValueError):
            index.build(PointSet(points=np.array([[0.0, np.nan], [1.0, 1.0]])))

    @pytest.mark.parametrize(
        "params",
        [{"knn": 0}, {"maxDist": 0.0}, {"maxDist": -1.0}, {"epsilon": -0.1}],
    )
    def test_configure_rejects_invalid(self, params):
        with pytest.raises(ValueError):
            KDTreeNeighborIndex(params)

    def test_deterministic(self, small_pointcloud):
        a = _query(small_pointcloud, knn=6)
        b = _query(small_pointcloud, knn=6)
        assert np.array_equal(a.ids, b.ids)
        assert np.array_equal(a.dists, b.dists)
