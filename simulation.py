"""
Simulation context for Dot Graph.

Owns the point arena, the active SimConfig, pending config updates, the
seeded random generator and the clock. Every operation takes its inputs
from here, so nothing reads module-level mutable state.

Config updates are staged by update_config() and land at the start of the
next tick / recompute / spawn, never while a kernel sequence is running.
"""

import numpy as np

from config import MAX_POINTS, SimConfig, check_names
from dynamics import step_physics
from neighbors import compute_neighbors, edge_count
from pairing import compute_matching, matching_pairs
from phases import spawn_positions
from points import PointStore


class Simulation:
    def __init__(self, config=None, capacity=MAX_POINTS, rng=None):
        self.config = config if config is not None else SimConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.store = PointStore(capacity)
        self.pending = {}
        self.frame = 0
        self.elapsed = 0.0
        self.graph_built = False

    # --------------------------------------------------------------------------
    # Config
    # --------------------------------------------------------------------------

    def update_config(self, **changes):
        """
        Stage config changes; they apply together at the next boundary.

        Names and values are checked now, by building a trial SimConfig from
        the merged changes, so a bad update fails at the call site rather
        than mid-tick.
        """
        check_names(changes)
        merged = dict(self.pending)
        merged.update(changes)
        self.config.replace(**merged)
        self.pending = merged

    def apply_pending(self):
        if not self.pending:
            return
        self.config = self.config.replace(**self.pending)
        print(f"[Config] Applied {', '.join(f'{k}={v}' for k, v in sorted(self.pending.items()))}")
        self.pending = {}

    # --------------------------------------------------------------------------
    # Lifecycle
    # --------------------------------------------------------------------------

    def spawn(self, positions=None):
        """Spawn a batch at `positions`, or by the configured strategy and count."""
        self.apply_pending()
        method = "explicit"
        if positions is None:
            method = self.config.spawn_method
            positions = spawn_positions(self.config, self.rng)
        handles = self.store.spawn(positions)
        self.graph_built = False
        print(f"[Init] Spawned {len(handles)} points ({len(self.store)} live, method={method})")
        return handles

    def clear(self):
        self.store.clear()
        self.graph_built = False

    # --------------------------------------------------------------------------
    # Recompute triggers
    # --------------------------------------------------------------------------

    def recompute_graph(self):
        self.apply_pending()
        compute_neighbors(self.store, self.config)
        self.graph_built = True
        n = len(self.store)
        edges = edge_count(self.store)
        print(f"[Graph] method={self.config.neighbor_method} points={n} edges={edges} "
              f"mean_degree={edges / n if n else 0.0:.2f}")

    def recompute_partners(self):
        self.apply_pending()
        compute_matching(self.store)
        pairs = len(matching_pairs(self.store))
        print(f"[Pairs] pairs={pairs} unpaired={len(self.store) - 2 * pairs}")

    def recompute(self):
        """Rebuild the neighbor graph, then the matching."""
        self.recompute_graph()
        self.recompute_partners()

    # --------------------------------------------------------------------------
    # Tick
    # --------------------------------------------------------------------------

    def tick(self, dt):
        if dt < 0:
            raise ValueError(f"dt must be non-negative, got {dt}")
        self.apply_pending()
        step_physics(self.store, self.config, dt)
        self.frame += 1
        self.elapsed += dt

    # --------------------------------------------------------------------------
    # Views
    # --------------------------------------------------------------------------

    def snapshot(self):
        return self.store.snapshot()

    def stats(self):
        n = len(self.store)
        edges = edge_count(self.store)
        pairs = len(matching_pairs(self.store))
        speeds = np.linalg.norm(self.store.velocities(), axis=1) if n else np.zeros(0)
        return {
            "points": n,
            "edges": edges,
            "mean_degree": edges / n if n else 0.0,
            "paired_points": 2 * pairs,
            "mean_speed": float(speeds.mean()) if n else 0.0,
            "max_speed": float(speeds.max()) if n else 0.0,
        }
