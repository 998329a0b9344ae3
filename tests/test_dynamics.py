import math

import numpy as np
import pytest

from config import SimConfig
from dynamics import (
    apply_attraction_between_edges, apply_force_between_points, apply_force_from_walls,
    dampen_and_cap, step_physics,
)

# Everything off except what a test turns back on
QUIET = SimConfig(repel_strength=0.0, spring_coefficient=0.0, wall_repel_strength=0.0,
                  vel_dampening=1.0, vel_cap=1e9, acc_dampening=1.0, acc_cap=1e9)


def test_repulsion_is_equal_and_opposite(store):
    store.spawn([[100.0, 100.0], [103.0, 104.0]])
    apply_force_between_points(store.pos, store.acc, 2, 1000.0)

    acc = store.accelerations()
    # d = 25, magnitude 1000 / 25 = 40 along (0.6, 0.8)
    np.testing.assert_allclose(acc[0], [-24.0, -32.0], rtol=1e-5)
    np.testing.assert_allclose(acc[1], [24.0, 32.0], rtol=1e-5)
    np.testing.assert_allclose(acc[0], -acc[1])


def test_coincident_points_do_not_repel(store):
    store.spawn([[50.0, 50.0], [50.0, 50.0]])
    apply_force_between_points(store.pos, store.acc, 2, 1000.0)
    acc = store.accelerations()
    assert np.all(np.isfinite(acc))
    assert np.all(acc == 0.0)


@pytest.mark.parametrize("gap", [50.0, 30.0, 0.5])
def test_spring_is_slack_at_or_below_resting_length(store, gap):
    a, b = store.spawn([[0.0, 0.0], [gap, 0.0]])
    store.set_neighbors(a, [b])
    apply_attraction_between_edges(store.pos, store.acc, store.nbr, store.nbr_ct, 2,
                                   0.012, 50.0)
    assert np.all(store.accelerations() == 0.0)


def test_stretched_spring_pulls_both_ends(store):
    a, b = store.spawn([[0.0, 0.0], [60.0, 0.0]])
    store.set_neighbors(a, [b])
    apply_attraction_between_edges(store.pos, store.acc, store.nbr, store.nbr_ct, 2,
                                   0.012, 50.0)
    acc = store.accelerations()
    np.testing.assert_allclose(acc[0], [0.12, 0.0], rtol=1e-5)
    np.testing.assert_allclose(acc[1], [-0.12, 0.0], rtol=1e-5)


def test_coincident_spring_endpoints_are_safe(store):
    a, b = store.spawn([[10.0, 10.0], [10.0, 10.0]])
    store.set_neighbors(a, [b])
    apply_attraction_between_edges(store.pos, store.acc, store.nbr, store.nbr_ct, 2,
                                   0.012, -5.0)
    acc = store.accelerations()
    assert np.all(np.isfinite(acc))
    assert np.all(acc == 0.0)


def test_walls_push_inward(store):
    store.spawn([[1.0, 360.0]])
    apply_force_from_walls(store.pos, store.acc, 1, 1000.0, 1280.0, 720.0)
    ax, ay = store.accelerations()[0]
    assert ax == pytest.approx(1000.0 - 1000.0 / 1279.0 ** 2, rel=1e-5)
    assert ay == 0.0


def test_walls_stay_finite_outside_the_domain(store):
    store.spawn([[-5.0, 800.0], [0.0, 0.0]])
    apply_force_from_walls(store.pos, store.acc, 2, 1000.0, 1280.0, 720.0)
    acc = store.accelerations()
    assert np.all(np.isfinite(acc))
    assert acc[0, 0] > 0.0
    assert acc[0, 1] < 0.0


def test_velocity_cap_keeps_direction(store):
    (h,) = store.spawn([[0.0, 0.0]])
    store.set_velocity(h, (300.0, 400.0))
    dampen_and_cap(store.vel, 1, 0.7, 50.0)
    vx, vy = store.velocity(h)
    assert math.hypot(vx, vy) == pytest.approx(50.0, rel=1e-5)
    assert (vx, vy) == pytest.approx((30.0, 40.0), rel=1e-5)


def test_damping_below_cap(store):
    (h,) = store.spawn([[0.0, 0.0]])
    store.set_velocity(h, (3.0, 4.0))
    dampen_and_cap(store.vel, 1, 0.7, 50.0)
    assert store.velocity(h) == pytest.approx((2.1, 2.8), rel=1e-5)


def test_negative_cap_zeroes_instead_of_flipping(store):
    (h,) = store.spawn([[0.0, 0.0]])
    store.set_velocity(h, (3.0, 4.0))
    dampen_and_cap(store.vel, 1, 1.0, -2.0)
    assert store.velocity(h) == pytest.approx((0.0, 0.0))


def test_tick_integrates_then_decays_acceleration(store):
    (h,) = store.spawn([[100.0, 100.0]])
    store.set_acceleration(h, (4.0, 0.0))
    step_physics(store, QUIET.replace(acc_dampening=0.85), 0.5)

    # vel += acc * dt, then pos += vel * dt * 300
    assert store.velocity(h) == pytest.approx((2.0, 0.0))
    assert store.position(h) == pytest.approx((400.0, 100.0))
    # never reset, only decayed
    assert store.acceleration(h) == pytest.approx((3.4, 0.0), rel=1e-5)


def test_forces_reach_position_one_tick_later(store):
    a, b = store.spawn([[600.0, 300.0], [700.0, 300.0]])
    store.set_neighbors(a, [b])
    step_physics(store, SimConfig(), 1.0 / 60.0)

    np.testing.assert_allclose(store.positions(), [[600.0, 300.0], [700.0, 300.0]])
    assert np.any(store.accelerations() != 0.0)


def test_point_near_wall_stays_inside(store):
    (h,) = store.spawn([[1.0, 360.0]])
    cfg = SimConfig(repel_strength=0.0, spring_coefficient=0.0)
    width = cfg.domain_size[0]
    for _ in range(100):
        step_physics(store, cfg, 1.0 / 60.0)
        x, _ = store.position(h)
        assert 0.0 < x < width
    assert store.position(h)[0] > 1.0


def test_negative_dt_is_rejected(store):
    store.spawn([[0.0, 0.0]])
    with pytest.raises(ValueError):
        step_physics(store, SimConfig(), -0.1)


def test_empty_store_is_a_no_op(store):
    step_physics(store, SimConfig(), 1.0 / 60.0)
    assert len(store) == 0
