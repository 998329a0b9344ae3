"""
Force-integration kernels for Dot Graph.

One tick runs seven kernels in a fixed order (see step_physics):

1. apply_acceleration            vel += acc * dt
2. apply_velocity                pos += vel * dt * POSITION_SCALE
3. apply_force_between_points    mutual 1/d² repulsion (d = squared distance)
4. apply_attraction_between_edges  springs along neighbor edges, pull only
5. apply_force_from_walls        inverse-square push away from the 4 walls
6. dampen_and_cap(vel)           scale, then clamp magnitude to vel_cap
7. dampen_and_cap(acc)           scale, then clamp magnitude to acc_cap

Acceleration is an accumulator that is never zeroed: forces add into it and
step 7 decays it, so it behaves like a low-pass filtered force rather than
an instantaneous one.

Singularities never produce NaN/Inf: coincident points exert no repulsion,
coincident spring endpoints get a zero direction, and wall distances are
floored at WALL_EPS.
"""

import taichi as ti

from config import POSITION_SCALE, WALL_EPS

# ==============================================================================
# Kernel 1-2: Integration
# ==============================================================================

@ti.kernel
def apply_acceleration(vel: ti.template(), acc: ti.template(), n: ti.i32, dt: ti.f32):
    for i in range(n):
        vel[i] += acc[i] * dt


@ti.kernel
def apply_velocity(pos: ti.template(), vel: ti.template(), n: ti.i32, dt: ti.f32):
    for i in range(n):
        pos[i] += vel[i] * dt * POSITION_SCALE


# ==============================================================================
# Kernel 3: Point-point repulsion
# ==============================================================================

@ti.kernel
def apply_force_between_points(pos: ti.template(), acc: ti.template(), n: ti.i32,
                               repel_strength: ti.f32):
    """
    Every pair pushes apart with magnitude repel_strength / d, d = |pj - pi|².

    Gathered per point: point i sums the push from all others and writes
    only acc[i]. For a pair the two contributions use negated deltas of
    the same squared length, so they are exactly equal and opposite.
    """
    for i in range(n):
        push = ti.Vector([0.0, 0.0])
        for j in range(n):
            if j != i:
                delta = pos[j] - pos[i]
                d = delta.dot(delta)
                if d > 0.0:
                    push += delta / ti.sqrt(d) * (repel_strength / d)
        acc[i] -= push


# ==============================================================================
# Kernel 4: Edge springs
# ==============================================================================

@ti.kernel
def apply_attraction_between_edges(pos: ti.template(), acc: ti.template(),
                                   nbr: ti.template(), nbr_ct: ti.template(),
                                   n: ti.i32, spring_coefficient: ti.f32,
                                   spring_resting_length: ti.f32):
    """
    Each recorded edge i -> j is one spring acting on both endpoints.

    stretch = max(|pj - pi| - rest, 0), so a spring at or below its resting
    length does nothing. Writes land on both i and j, hence the serialized
    loop.
    """
    ti.loop_config(serialize=True)
    for i in range(n):
        for s in range(nbr_ct[i]):
            j = nbr[i, s]
            delta = pos[j] - pos[i]
            dist = delta.norm()
            if dist > 0.0:
                stretch = ti.max(dist - spring_resting_length, 0.0)
                pull = delta / dist * (spring_coefficient * stretch)
                acc[i] += pull
                acc[j] -= pull


# ==============================================================================
# Kernel 5: Walls
# ==============================================================================

@ti.kernel
def apply_force_from_walls(pos: ti.template(), acc: ti.template(), n: ti.i32,
                           wall_repel_strength: ti.f32, width: ti.f32, height: ti.f32):
    """Inverse-square push from the walls of [0, width] x [0, height]."""
    for i in range(n):
        x = pos[i][0]
        y = pos[i][1]

        d_left = ti.max(x, WALL_EPS)
        d_right = ti.max(width - x, WALL_EPS)
        d_top = ti.max(y, WALL_EPS)
        d_bottom = ti.max(height - y, WALL_EPS)

        left_force = wall_repel_strength / (d_left * d_left)
        right_force = wall_repel_strength / (d_right * d_right)
        top_force = wall_repel_strength / (d_top * d_top)
        bottom_force = wall_repel_strength / (d_bottom * d_bottom)

        acc[i][0] += left_force - right_force
        acc[i][1] += top_force - bottom_force


# ==============================================================================
# Kernel 6-7: Damping + cap
# ==============================================================================

@ti.kernel
def dampen_and_cap(v: ti.template(), n: ti.i32, dampening: ti.f32, cap: ti.f32):
    """
    v *= dampening, then rescale to exactly `cap` if |v| > cap.

    Used for both velocity and acceleration. A negative cap acts as 0.
    """
    for i in range(n):
        vi = v[i] * dampening
        c = ti.max(cap, 0.0)
        m2 = vi.dot(vi)
        if m2 > c * c:
            vi = vi * (c / ti.sqrt(m2))
        v[i] = vi


# ==============================================================================
# Host entry point
# ==============================================================================

def step_physics(store, config, dt):
    """Advance every live point by one tick of `dt` seconds."""
    if dt < 0:
        raise ValueError(f"dt must be non-negative, got {dt}")
    n = store.n
    if n == 0:
        return
    width, height = config.domain_size

    apply_acceleration(store.vel, store.acc, n, dt)
    apply_velocity(store.pos, store.vel, n, dt)
    apply_force_between_points(store.pos, store.acc, n, config.repel_strength)
    apply_attraction_between_edges(store.pos, store.acc, store.nbr, store.nbr_ct, n,
                                   config.spring_coefficient, config.spring_resting_length)
    apply_force_from_walls(store.pos, store.acc, n, config.wall_repel_strength,
                           width, height)
    dampen_and_cap(store.vel, n, config.vel_dampening, config.vel_cap)
    dampen_and_cap(store.acc, n, config.acc_dampening, config.acc_cap)
