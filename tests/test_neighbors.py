import numpy as np
import pytest

from config import SimConfig
from neighbors import compute_neighbors, edge_count

KNN = SimConfig(neighbor_method="k_nearest", k_nearest=5)


def grid_points(rows, cols, spacing=1.0):
    return np.array([[c * spacing, r * spacing] for r in range(rows) for c in range(cols)],
                    dtype=np.float32)


def squared_distances(points):
    p = np.asarray(points, dtype=np.float64)
    return ((p[:, None, :] - p[None, :, :]) ** 2).sum(axis=-1)


@pytest.mark.parametrize("n", [1, 2, 7, 30])
@pytest.mark.parametrize("method", ["k_nearest", "distance"])
def test_no_point_is_its_own_neighbor(store, n, method):
    rng = np.random.default_rng(n)
    store.spawn(rng.uniform(0, 200, (n, 2)))
    compute_neighbors(store, SimConfig(neighbor_method=method, k_nearest=4, max_distance=90.0))
    for i, row in enumerate(store.neighbor_slots()):
        assert i not in row
        assert len(row) == len(set(row))


def test_k_nearest_exact_order_with_ties(store):
    # 3x3 unit grid, slots row-major:
    #   6 7 8
    #   3 4 5
    #   0 1 2
    store.spawn(grid_points(3, 3))
    compute_neighbors(store, SimConfig(neighbor_method="k_nearest", k_nearest=4))
    rows = store.neighbor_slots()
    assert rows[4] == [1, 3, 5, 7]
    assert rows[0] == [1, 3, 4, 2]
    assert rows[8] == [5, 7, 4, 2]


def test_k_nearest_line_ties_break_by_handle(store):
    store.spawn([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0], [3.0, 0.0], [4.0, 0.0]])
    compute_neighbors(store, SimConfig(neighbor_method="k_nearest", k_nearest=2))
    rows = store.neighbor_slots()
    assert rows[0] == [1, 2]
    assert rows[2] == [1, 3]
    assert rows[4] == [3, 2]


def test_k_nearest_matches_brute_force(store):
    rng = np.random.default_rng(7)
    pts = rng.uniform(0, 500, (40, 2)).astype(np.float32)
    store.spawn(pts)
    compute_neighbors(store, KNN)

    d = squared_distances(pts)
    for i, row in enumerate(store.neighbor_slots()):
        assert len(row) == KNN.k_nearest
        selected = d[i, row]
        others = np.delete(d[i], row + [i])
        # ascending, and nothing left out is closer than what was kept
        assert np.all(np.diff(selected) >= -1e-6 * selected.max())
        assert selected.max() <= others.min() * (1 + 1e-6)


def test_k_nearest_length_is_min_k_n_minus_1(store):
    store.spawn([[0.0, 0.0], [5.0, 0.0], [0.0, 9.0]])
    compute_neighbors(store, SimConfig(neighbor_method="k_nearest", k_nearest=10))
    assert [len(r) for r in store.neighbor_slots()] == [2, 2, 2]


def test_k_zero_gives_empty_lists(store):
    store.spawn(grid_points(2, 2))
    compute_neighbors(store, SimConfig(neighbor_method="k_nearest", k_nearest=3))
    compute_neighbors(store, SimConfig(neighbor_method="k_nearest", k_nearest=0))
    assert store.neighbor_slots() == [[], [], [], []]


def test_distance_threshold_is_strict_and_one_directional(store):
    store.spawn([[0.0, 0.0], [10.0, 0.0], [20.0, 0.0], [35.0, 0.0]])

    compute_neighbors(store, SimConfig(neighbor_method="distance", max_distance=10.0))
    assert store.neighbor_slots() == [[], [], [], []]

    compute_neighbors(store, SimConfig(neighbor_method="distance", max_distance=10.5))
    assert store.neighbor_slots() == [[1], [2], [], []]

    compute_neighbors(store, SimConfig(neighbor_method="distance", max_distance=21.0))
    assert store.neighbor_slots() == [[1, 2], [2], [3], []]


def test_distance_edges_iff_within_threshold(store):
    rng = np.random.default_rng(11)
    pts = rng.uniform(0, 300, (50, 2)).astype(np.float32)
    store.spawn(pts)
    cfg = SimConfig(neighbor_method="distance", max_distance=60.0)
    compute_neighbors(store, cfg)

    d = squared_distances(pts)
    limit = cfg.max_distance ** 2
    rows = store.neighbor_slots()
    for i in range(len(pts)):
        for j in range(i + 1, len(pts)):
            if abs(d[i, j] - limit) < 1e-2:
                continue
            assert (j in rows[i]) == (d[i, j] < limit)
            assert i not in rows[j]
    for row in rows:
        assert row == sorted(row)


@pytest.mark.parametrize("method", ["k_nearest", "distance"])
def test_recompute_is_deterministic(store, method):
    rng = np.random.default_rng(3)
    store.spawn(rng.uniform(0, 400, (60, 2)))
    cfg = SimConfig(neighbor_method=method, k_nearest=6, max_distance=80.0)
    compute_neighbors(store, cfg)
    first = store.neighbor_slots()
    compute_neighbors(store, cfg)
    assert store.neighbor_slots() == first


def test_recompute_replaces_previous_lists(store):
    handles = store.spawn(grid_points(2, 3, spacing=10.0))
    store.set_neighbors(handles[5], [handles[0]])
    compute_neighbors(store, SimConfig(neighbor_method="distance", max_distance=1.0))
    assert edge_count(store) == 0


def test_only_neighbor_fields_change(store):
    handles = store.spawn(grid_points(2, 2, spacing=20.0))
    store.set_velocity(handles[0], (1.0, 2.0))
    store.set_acceleration(handles[1], (3.0, 4.0))
    store.partner[2] = 3
    store.partner[3] = 2
    before = (store.positions().copy(), store.velocities().copy(),
              store.accelerations().copy(), store.partner_slots().copy())

    compute_neighbors(store, KNN)

    after = (store.positions(), store.velocities(), store.accelerations(),
             store.partner_slots())
    for b, a in zip(before, after):
        np.testing.assert_array_equal(b, a)
