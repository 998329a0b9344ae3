"""
Main entry point for Dot Graph.

This script:
1. Initializes Taichi and the simulation context
2. Spawns points (phase: init -> just_dots)
3. Runs the main loop: phase schedule -> physics tick -> render -> panel

Controls:
  - SPACE: Pause/Resume physics
  - 1 / 2 / 3: Jump to dots / graph / disconnected edges
  - R: Reset (clear + respawn)
  - ESC: Exit

Usage:
    python run.py [--points N] [--seed S] [--method k_nearest|distance]
                  [--spawn random|grid] [--arch cpu|gpu]
"""

import argparse
import math
import time

import taichi as ti

from config import (
    CONFIG_RANGES, DOT_RADIUS, LINE_WIDTH, MAX_POINTS, MAX_RENDER_EDGES_PER_POINT,
    NEIGHBOR_METHODS, SPAWN_METHODS, TELEMETRY_EVERY, WINDOW_TITLE, SimConfig,
)
from phases import (
    DISCONNECTED_EDGES, GRAPH, INIT, JUST_DOTS, PhaseSequencer, render_layers,
)
from simulation import Simulation

MAX_FRAME_DT = 1.0 / 20.0  # Clamp long frames (window drags, JIT compiles)
HIDDEN = -1.0               # Normalized coordinate outside the canvas


# ==============================================================================
# Render kernels (screen pixels -> normalized canvas, y flipped)
# ==============================================================================

@ti.kernel
def gather_dots(pos: ti.template(), render_pos: ti.template(), n: ti.i32,
                capacity: ti.i32, width: ti.f32, height: ti.f32):
    for i in range(capacity):
        if i < n:
            render_pos[i] = ti.Vector([pos[i][0] / width, 1.0 - pos[i][1] / height])
        else:
            render_pos[i] = ti.Vector([HIDDEN, HIDDEN])


@ti.kernel
def gather_edges(pos: ti.template(), nbr: ti.template(), nbr_ct: ti.template(),
                 verts: ti.template(), used: ti.template(), n: ti.i32,
                 max_edges: ti.i32, width: ti.f32, height: ti.f32):
    for v in range(2 * max_edges):
        verts[v] = ti.Vector([HIDDEN, HIDDEN])
    used[None] = 0

    for i in range(n):
        for s in range(nbr_ct[i]):
            e = ti.atomic_add(used[None], 1)
            if e < max_edges:
                j = nbr[i, s]
                verts[2 * e] = ti.Vector([pos[i][0] / width, 1.0 - pos[i][1] / height])
                verts[2 * e + 1] = ti.Vector([pos[j][0] / width, 1.0 - pos[j][1] / height])


@ti.kernel
def gather_partners(pos: ti.template(), partner: ti.template(), verts: ti.template(),
                    used: ti.template(), n: ti.i32, max_edges: ti.i32,
                    width: ti.f32, height: ti.f32):
    for v in range(2 * max_edges):
        verts[v] = ti.Vector([HIDDEN, HIDDEN])
    used[None] = 0

    for i in range(n):
        j = partner[i]
        if j > i:
            e = ti.atomic_add(used[None], 1)
            if e < max_edges:
                verts[2 * e] = ti.Vector([pos[i][0] / width, 1.0 - pos[i][1] / height])
                verts[2 * e + 1] = ti.Vector([pos[j][0] / width, 1.0 - pos[j][1] / height])


# ==============================================================================
# Tuning panel
# ==============================================================================

FLOAT_SLIDERS = (
    ("max_distance", "Max Distance"),
    ("repel_strength", "Repel Strength"),
    ("spring_coefficient", "Spring Coefficient"),
    ("spring_resting_length", "Spring Resting Length"),
    ("wall_repel_strength", "Wall Repel Strength"),
    ("vel_dampening", "Velocity Dampening"),
    ("vel_cap", "Velocity Cap"),
    ("acc_dampening", "Acceleration Dampening"),
    ("acc_cap", "Acceleration Cap"),
)


def draw_panel(gui, sim, sequencer, stats):
    """Draw the imgui panel. Returns (config changes, requested phase or None)."""
    cfg = sim.config
    changes = {}
    requested = None

    gui.begin("Tweaks", 0.01, 0.01, 0.30, 0.62)
    gui.text(f"Phase: {sequencer.phase}")
    gui.text(f"Points: {stats['points']}  Edges: {stats['edges']}  Paired: {stats['paired_points']}")
    gui.text("")

    use_grid = gui.checkbox("Grid spawn", cfg.spawn_method == "grid")
    spawn_method = SPAWN_METHODS[1] if use_grid else SPAWN_METHODS[0]
    if spawn_method != cfg.spawn_method:
        changes["spawn_method"] = spawn_method

    use_distance = gui.checkbox("Neighbors by distance", cfg.neighbor_method == "distance")
    method = NEIGHBOR_METHODS[1] if use_distance else NEIGHBOR_METHODS[0]
    if method != cfg.neighbor_method:
        changes["neighbor_method"] = method

    if method == "k_nearest":
        lo, hi = CONFIG_RANGES["k_nearest"]
        k = gui.slider_int("K Nearest", cfg.k_nearest, lo, hi)
        if k != cfg.k_nearest:
            changes["k_nearest"] = k

    for name, label in FLOAT_SLIDERS:
        if name == "max_distance" and method != "distance":
            continue
        lo, hi = CONFIG_RANGES[name]
        value = gui.slider_float(label, getattr(cfg, name), lo, hi)
        # imgui hands back f32; ignore round-off so idle sliders stage nothing
        if not math.isclose(value, getattr(cfg, name), rel_tol=1e-6):
            changes[name] = value

    gui.text("")
    if gui.button("Reset"):
        requested = INIT
    if gui.button("Dots"):
        requested = JUST_DOTS
    if gui.button("Graph"):
        requested = GRAPH
    if gui.button("Disconnected edges"):
        requested = DISCONNECTED_EDGES
    gui.end()
    return changes, requested


# ==============================================================================
# Main loop
# ==============================================================================

KEY_PHASES = {"1": JUST_DOTS, "2": GRAPH, "3": DISCONNECTED_EDGES}


def parse_args():
    parser = argparse.ArgumentParser(description="Dot Graph interactive simulation")
    parser.add_argument("--points", type=int, default=SimConfig.num_points,
                        help=f"Points per spawn (default: {SimConfig.num_points})")
    parser.add_argument("--seed", type=int, default=SimConfig.seed,
                        help=f"Random seed (default: {SimConfig.seed})")
    parser.add_argument("--method", choices=NEIGHBOR_METHODS, default=SimConfig.neighbor_method,
                        help="Neighbor method")
    parser.add_argument("--spawn", choices=SPAWN_METHODS, default=SimConfig.spawn_method,
                        help="Spawn method")
    parser.add_argument("--arch", choices=("cpu", "gpu"), default="cpu",
                        help="Taichi backend (default: cpu)")
    return parser.parse_args()


def main():
    args = parse_args()
    ti.init(arch=ti.gpu if args.arch == "gpu" else ti.cpu)
    print(f"[Taichi] Initialized with backend: {ti.cfg.arch}")

    config = SimConfig(num_points=min(args.points, MAX_POINTS), seed=args.seed,
                       neighbor_method=args.method, spawn_method=args.spawn)
    sim = Simulation(config)
    sequencer = PhaseSequencer()
    width, height = config.domain_size
    print(f"[Config] N={config.num_points}, Domain={width:.0f}x{height:.0f}, "
          f"method={config.neighbor_method}, spawn={config.spawn_method}")

    capacity = sim.store.capacity
    max_edges = capacity * MAX_RENDER_EDGES_PER_POINT
    render_pos = ti.Vector.field(2, dtype=ti.f32, shape=capacity)
    edge_verts = ti.Vector.field(2, dtype=ti.f32, shape=2 * max_edges)
    edges_used = ti.field(dtype=ti.i32, shape=())

    window = ti.ui.Window(WINDOW_TITLE, (int(width), int(height)), vsync=True)
    canvas = window.get_canvas()
    gui = window.GUI
    dot_radius = DOT_RADIUS / height
    line_width = LINE_WIDTH / height

    print("\n" + "=" * 70)
    print("DOT GRAPH")
    print("=" * 70)
    print("Controls:")
    print("  - SPACE: Pause/Resume")
    print("  - 1 / 2 / 3: Dots / Graph / Disconnected edges")
    print("  - R: Reset")
    print("  - ESC: Exit")
    print("=" * 70 + "\n")

    sequencer.advance(sim)
    paused = False
    last = time.perf_counter()
    truncated_warned = False

    while window.running:
        if window.get_event(ti.ui.PRESS):
            key = window.event.key
            if key == ti.ui.SPACE:
                paused = not paused
                print(f"[Control] {'Paused' if paused else 'Resumed'}")
            elif key in KEY_PHASES:
                sequencer.request(KEY_PHASES[key])
            elif key in ("r", "R"):
                sequencer.request(INIT)
            elif key == ti.ui.ESCAPE:
                print("[Control] Exiting...")
                break

        now = time.perf_counter()
        dt = min(now - last, MAX_FRAME_DT)
        last = now

        t_start = time.perf_counter()
        sequencer.schedule_tick(sim.elapsed)
        sequencer.advance(sim)
        if not paused:
            sim.tick(dt)
        ti.sync()
        t_sim = time.perf_counter()

        # === Render ===
        n = len(sim.store)
        show_dots, show_edges, show_partners = render_layers(sequencer.phase)
        canvas.set_background_color((0.0, 0.0, 0.0))
        if show_dots:
            gather_dots(sim.store.pos, render_pos, n, capacity, width, height)
            canvas.circles(render_pos, radius=dot_radius, color=(1.0, 1.0, 1.0))
        if show_edges or show_partners:
            if show_edges:
                gather_edges(sim.store.pos, sim.store.nbr, sim.store.nbr_ct, edge_verts,
                             edges_used, n, max_edges, width, height)
            else:
                gather_partners(sim.store.pos, sim.store.partner, edge_verts, edges_used,
                                n, max_edges, width, height)
            if edges_used[None] > max_edges and not truncated_warned:
                print(f"[Render][WARN] {edges_used[None]} lines > buffer of {max_edges}, truncating")
                truncated_warned = True
            canvas.lines(edge_verts, width=line_width, color=(1.0, 1.0, 1.0))

        stats = sim.stats()
        changes, requested = draw_panel(gui, sim, sequencer, stats)
        if changes:
            sim.update_config(**changes)
        if requested is not None:
            sequencer.request(requested)

        window.show()
        t_render = time.perf_counter()

        if not paused and sim.frame % TELEMETRY_EVERY == 0:
            dt_sim = t_sim - t_start
            dt_render = t_render - t_sim
            dt_total = t_render - t_start
            fps_estimate = 1.0 / dt_total if dt_total > 0 else 0.0
            print(f"[PERF] Frame {sim.frame}: sim={dt_sim:.4f}s  render={dt_render:.4f}s  | FPS≈{fps_estimate:.1f}"
                  f"  | mean_speed={stats['mean_speed']:.3f}  max_speed={stats['max_speed']:.3f}")

    print("\n[Exit] Simulation ended.")
    print(f"       Total frames: {sim.frame}")
    print(f"       Active points: {len(sim.store)}")
    print(f"       Final phase: {sequencer.phase}")


if __name__ == "__main__":
    main()
