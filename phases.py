"""
Spawn strategies and the phase sequencer.

Phases:
  init                -> clear + spawn a fresh batch, then go to just_dots
  just_dots           -> dots only
  graph               -> neighbor graph recomputed on entry, edges drawn
  disconnected_edges  -> matching recomputed on entry, partner segments drawn

Every on-enter hook runs exactly once per entry. Physics keeps running in
every phase; the sequencer only decides *when* the graph and matching are
rebuilt.
"""

import math

import numpy as np

from config import PHASE_SCHEDULE, SEPARATION_ON_GRID, SPAWN_MARGIN

INIT = "init"
JUST_DOTS = "just_dots"
GRAPH = "graph"
DISCONNECTED_EDGES = "disconnected_edges"

PHASES = (INIT, JUST_DOTS, GRAPH, DISCONNECTED_EDGES)


# ==============================================================================
# Spawn strategies
# ==============================================================================

def spawn_positions_random(n, domain_size, rng, margin=SPAWN_MARGIN):
    """Uniform in [margin, W - margin) x [margin, H - margin)."""
    width, height = domain_size
    xs = rng.uniform(margin, width - margin, n)
    ys = rng.uniform(margin, height - margin, n)
    return np.stack([xs, ys], axis=1).astype(np.float32)


def spawn_positions_grid(n, domain_size, separation=SEPARATION_ON_GRID):
    """
    Row-major grid with floor(sqrt(n)) columns, centred on the domain.

    When n is not a perfect square the extra points start new rows below,
    so the block hangs slightly lower than centre.
    """
    width, height = domain_size
    cols = max(1, int(math.sqrt(n)))
    start_x = width / 2.0 - cols * separation / 2.0
    start_y = height / 2.0 - cols * separation / 2.0
    idx = np.arange(n)
    xs = start_x + (idx % cols) * separation
    ys = start_y + (idx // cols) * separation
    return np.stack([xs, ys], axis=1).astype(np.float32)


def spawn_positions(config, rng):
    if config.spawn_method == "grid":
        return spawn_positions_grid(config.num_points, config.domain_size)
    return spawn_positions_random(config.num_points, config.domain_size, rng)


# ==============================================================================
# Rendering layers per phase
# ==============================================================================

def render_layers(phase):
    """(dots, edges, partners) flags for the renderer."""
    check_phase(phase)
    if phase == GRAPH:
        return (True, True, False)
    if phase == DISCONNECTED_EDGES:
        return (False, False, True)
    if phase == JUST_DOTS:
        return (True, False, False)
    return (False, False, False)


def check_phase(phase):
    if phase not in PHASES:
        raise ValueError(f"Unknown phase {phase!r}, expected one of {PHASES}")


# ==============================================================================
# Sequencer
# ==============================================================================

class PhaseSequencer:
    """
    Finite-state trigger around a Simulation.

    request() only queues a transition; advance() applies it between ticks.
    Requesting the phase that is already active is a no-op (no re-entry,
    and whatever is already queued stays queued), except init, which
    always re-spawns.

    Schedule entries are (seconds since init, phase) and each fires once
    per init. A manual request retires every entry not yet fired, so the
    schedule never undoes a manual jump; the next init re-arms it.
    """

    def __init__(self, schedule=PHASE_SCHEDULE):
        for _, phase in schedule:
            check_phase(phase)
        self.schedule = tuple(sorted(schedule, key=lambda entry: entry[0]))
        self.phase = None
        self.pending = INIT
        self.next_entry = 0

    def request(self, phase):
        """Queue a manual transition to `phase`."""
        if self._queue(phase):
            self.next_entry = len(self.schedule)

    def _queue(self, phase):
        check_phase(phase)
        if phase == self.phase and phase != INIT:
            return False
        self.pending = phase
        return True

    def schedule_tick(self, elapsed):
        """Queue the latest schedule entry that came due at `elapsed` seconds."""
        target = None
        while (self.next_entry < len(self.schedule)
               and elapsed > self.schedule[self.next_entry][0]):
            target = self.schedule[self.next_entry][1]
            self.next_entry += 1
        if target is not None:
            self._queue(target)

    def advance(self, sim):
        """Apply the pending transition (and any it chains into). Returns the phase."""
        while self.pending is not None:
            phase, self.pending = self.pending, None
            self.phase = phase
            print(f"[Phase] -> {phase}")
            self._enter(phase, sim)
        return self.phase

    def _enter(self, phase, sim):
        if phase == INIT:
            sim.clear()
            sim.spawn()
            sim.elapsed = 0.0
            self.next_entry = 0
            self.pending = JUST_DOTS
        elif phase == GRAPH:
            sim.recompute_graph()
        elif phase == DISCONNECTED_EDGES:
            if not sim.graph_built:
                sim.recompute_graph()
            sim.recompute_partners()
