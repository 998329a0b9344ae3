"""
Configuration parameters for Dot Graph.

This module defines all simulation parameters:
- Neighbor graph (method, distance threshold, k)
- Physics coefficients (repulsion, springs, walls, damping/caps)
- Spawning (count, method, domain, seed)
- Rendering (window, dot radius, telemetry cadence)

Module-level constants are the defaults. The runtime copy lives in a
SimConfig instance owned by the simulation; the tuning panel edits it only
through Simulation.update_config().

Units: positions are in screen pixels, the domain is [0, W] x [0, H].
"""

from dataclasses import dataclass, fields, replace as _dc_replace

# ==============================================================================
# Neighbor graph
# ==============================================================================

NEIGHBOR_METHODS = ("k_nearest", "distance")

NEIGHBOR_METHOD = "k_nearest"   # "k_nearest" | "distance"
MAX_DISTANCE = 80.0             # Distance method: neighbors iff dist < MAX_DISTANCE
K_NEAREST = 5                   # K-nearest method: neighbors per point
                                # k <= 0 is accepted and yields empty lists

# ==============================================================================
# Physics coefficients
# ==============================================================================

REPEL_STRENGTH = 1000.0         # Point-point push: REPEL_STRENGTH / dist²
SPRING_COEFFICIENT = 0.012      # Edge pull per pixel of stretch
SPRING_RESTING_LENGTH = 50.0    # Springs only pull beyond this length
WALL_REPEL_STRENGTH = 1000.0    # Wall push: WALL_REPEL_STRENGTH / dist_to_wall²
VEL_DAMPENING = 0.7             # Velocity multiplier per tick
VEL_CAP = 50.0                  # Max speed after damping
ACC_DAMPENING = 0.85            # Acceleration multiplier per tick (acc is never reset)
ACC_CAP = 10.0                  # Max acceleration magnitude after damping

POSITION_SCALE = 300.0          # pos += vel * dt * POSITION_SCALE
                                # Decouples simulation units from screen pixels
WALL_EPS = 1e-4                 # Floor on wall distance (no singularity at/beyond a wall)

# ==============================================================================
# Spawning
# ==============================================================================

SPAWN_METHODS = ("random", "grid")

SPAWN_METHOD = "random"         # "random" | "grid"
NUMBER_OF_POINTS = 200          # Points per spawn batch
DOMAIN_SIZE = (1280.0, 720.0)   # (W, H) of the walled rectangle
SPAWN_MARGIN = 100.0            # Random spawn keeps this far from every wall
SEPARATION_ON_GRID = 40.0       # Grid spawn spacing
SEED = 69                       # Default seed for the injected numpy Generator

# ==============================================================================
# Capacity
# ==============================================================================

MAX_POINTS = 1024               # Arena capacity (fields are allocated once)
                                # Neighbor table is MAX_POINTS x MAX_POINTS i32

# ==============================================================================
# Phase timing
# ==============================================================================

# (elapsed seconds, phase) pairs, evaluated in order every frame.
# Later entries win once their time has passed.
PHASE_SCHEDULE = (
    (0.0, "just_dots"),
    (0.1, "graph"),
)

# ==============================================================================
# Rendering
# ==============================================================================

WINDOW_TITLE = "Dot Graph"
DOT_RADIUS = 4.0                # Pixels
LINE_WIDTH = 1.0                # Pixels
MAX_RENDER_EDGES_PER_POINT = 32 # Edge buffer = MAX_POINTS * this (overflow is truncated)
TELEMETRY_EVERY = 120           # Print [PERF] every N frames

# Tuning panel slider ranges (min, max)
CONFIG_RANGES = {
    "k_nearest": (1, 10),
    "max_distance": (0.0, 150.0),
    "repel_strength": (0.0, 2000.0),
    "spring_coefficient": (0.0, 0.1),
    "spring_resting_length": (0.0, 200.0),
    "wall_repel_strength": (0.0, 2000.0),
    "vel_dampening": (0.0, 1.0),
    "vel_cap": (0.0, 200.0),
    "acc_dampening": (0.0, 1.0),
    "acc_cap": (0.0, 200.0),
}


# ==============================================================================
# Runtime configuration
# ==============================================================================

@dataclass(frozen=True)
class SimConfig:
    """
    Runtime copy of the tunables above.

    Frozen: a change produces a new instance (see replace()), so the
    builder and integrator always read one consistent set of values for
    a whole invocation.
    """
    neighbor_method: str = NEIGHBOR_METHOD
    max_distance: float = MAX_DISTANCE
    k_nearest: int = K_NEAREST

    repel_strength: float = REPEL_STRENGTH
    spring_coefficient: float = SPRING_COEFFICIENT
    spring_resting_length: float = SPRING_RESTING_LENGTH
    wall_repel_strength: float = WALL_REPEL_STRENGTH
    vel_dampening: float = VEL_DAMPENING
    vel_cap: float = VEL_CAP
    acc_dampening: float = ACC_DAMPENING
    acc_cap: float = ACC_CAP

    spawn_method: str = SPAWN_METHOD
    num_points: int = NUMBER_OF_POINTS
    domain_size: tuple = DOMAIN_SIZE
    seed: int = SEED

    def __post_init__(self):
        if self.neighbor_method not in NEIGHBOR_METHODS:
            raise ValueError(f"neighbor_method must be one of {NEIGHBOR_METHODS}, "
                             f"got {self.neighbor_method!r}")
        if self.spawn_method not in SPAWN_METHODS:
            raise ValueError(f"spawn_method must be one of {SPAWN_METHODS}, "
                             f"got {self.spawn_method!r}")

        # Kernels take plain scalars; coerce here so a bad value never reaches one
        for name in INT_PARAMETERS:
            object.__setattr__(self, name, _coerce(name, getattr(self, name), int))
        for name in FLOAT_PARAMETERS:
            object.__setattr__(self, name, _coerce(name, getattr(self, name), float))
        try:
            width, height = self.domain_size
        except (TypeError, ValueError):
            raise ValueError(f"domain_size must be a (width, height) pair, "
                             f"got {self.domain_size!r}") from None
        object.__setattr__(self, "domain_size", (_coerce("domain_size", width, float),
                                                 _coerce("domain_size", height, float)))

    def replace(self, **changes):
        """Return a copy with `changes` applied (unknown names or bad values raise ValueError)."""
        check_names(changes)
        return _dc_replace(self, **changes)


def parameter_names():
    return tuple(f.name for f in fields(SimConfig))


def check_names(changes):
    unknown = sorted(set(changes) - set(parameter_names()))
    if unknown:
        raise ValueError(f"Unknown config parameter(s): {', '.join(unknown)}")


INT_PARAMETERS = ("k_nearest", "num_points", "seed")
FLOAT_PARAMETERS = ("max_distance", "repel_strength", "spring_coefficient",
                    "spring_resting_length", "wall_repel_strength", "vel_dampening",
                    "vel_cap", "acc_dampening", "acc_cap")


def _coerce(name, value, kind):
    if isinstance(value, (str, bytes)):
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"{name} must be a number, got {value!r}") from None
