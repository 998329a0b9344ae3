#!/usr/bin/env python3
"""
Benchmark script for Dot Graph - Reproducible Performance Testing
==================================================================

Runs a fixed number of physics ticks with a deterministic seed and reports:
- Ticks per second
- Time breakdown (graph rebuild, pairing, physics)
- Graph / matching summary
- Configuration used

The graph and matching are rebuilt every --recompute-every ticks so their
cost shows up next to the per-tick physics cost.

Usage:
    python scripts/bench.py [--frames N] [--points N] [--method k_nearest|distance]

Example:
    python scripts/bench.py --frames 300 --points 500 --method distance
"""

import sys
import os
import time
import argparse
import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import taichi as ti

from config import MAX_POINTS, NEIGHBOR_METHODS, SPAWN_METHODS, SimConfig
from dynamics import step_physics
from neighbors import compute_neighbors
from pairing import compute_matching
from simulation import Simulation


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Benchmark Dot Graph performance')
    parser.add_argument('--frames', type=int, default=300,
                        help='Number of physics ticks to run (default: 300)')
    parser.add_argument('--points', type=int, default=200,
                        help=f'Number of points (default: 200, max: {MAX_POINTS})')
    parser.add_argument('--seed', type=int, default=42,
                        help='Random seed for reproducibility (default: 42)')
    parser.add_argument('--method', choices=NEIGHBOR_METHODS, default='k_nearest',
                        help='Neighbor method (default: k_nearest)')
    parser.add_argument('--spawn', choices=SPAWN_METHODS, default='random',
                        help='Spawn method (default: random)')
    parser.add_argument('--recompute-every', type=int, default=30,
                        help='Rebuild graph + matching every N ticks (default: 30)')
    parser.add_argument('--dt', type=float, default=1.0 / 60.0,
                        help='Tick length in seconds (default: 1/60)')
    parser.add_argument('--arch', choices=('cpu', 'gpu'), default='cpu',
                        help='Taichi backend (default: cpu)')
    return parser.parse_args()


def run_benchmark(args):
    """
    Run benchmark and collect performance statistics.

    Args:
        args: Parsed command line arguments

    Returns:
        Dictionary with benchmark results
    """
    print(f"\n{'='*70}")
    print(f"DOT GRAPH BENCHMARK")
    print(f"{'='*70}\n")

    print(f"Configuration:")
    print(f"  Points:        {args.points}")
    print(f"  Frames:        {args.frames}")
    print(f"  Seed:          {args.seed}")
    print(f"  Method:        {args.method}")
    print(f"  Spawn:         {args.spawn}")
    print(f"  Recompute:     every {args.recompute_every} ticks")
    print(f"\n")

    ti.init(arch=ti.gpu if args.arch == 'gpu' else ti.cpu)

    print("Initializing simulation...")
    config = SimConfig(num_points=args.points, seed=args.seed,
                       neighbor_method=args.method, spawn_method=args.spawn)
    sim = Simulation(config, capacity=max(args.points, 1))
    sim.spawn()
    store = sim.store

    # Warm-up (first calls JIT-compile every kernel)
    warmup_frames = 3
    for _ in range(warmup_frames):
        compute_neighbors(store, config)
        compute_matching(store)
        step_physics(store, config, args.dt)
    ti.sync()
    print(f"Warm-up complete ({warmup_frames} frames)\n")

    times_graph = []
    times_pairs = []
    times_physics = []
    times_total = []

    print(f"Running {args.frames} frames...\n")
    start_time_total = time.perf_counter()

    for frame in range(args.frames):
        t0 = time.perf_counter()
        t_graph = 0.0
        t_pairs = 0.0

        if args.recompute_every > 0 and frame % args.recompute_every == 0:
            # 1. Neighbor graph
            t_graph_start = time.perf_counter()
            compute_neighbors(store, config)
            ti.sync()
            t_graph = time.perf_counter() - t_graph_start

            # 2. Matching
            t_pairs_start = time.perf_counter()
            compute_matching(store)
            ti.sync()
            t_pairs = time.perf_counter() - t_pairs_start

        # 3. Physics
        t_physics_start = time.perf_counter()
        step_physics(store, config, args.dt)
        ti.sync()
        t_physics = time.perf_counter() - t_physics_start

        t_frame = time.perf_counter() - t0
        times_graph.append(t_graph)
        times_pairs.append(t_pairs)
        times_physics.append(t_physics)
        times_total.append(t_frame)

        if (frame + 1) % 50 == 0 or frame == args.frames - 1:
            fps_current = 1.0 / t_frame if t_frame > 0 else 0
            print(f"  Frame {frame+1:4d}/{args.frames}: {fps_current:7.1f} ticks/s")

    end_time_total = time.perf_counter()

    total_time = end_time_total - start_time_total
    avg_fps = args.frames / total_time if total_time > 0 else 0.0

    avg_graph = np.mean(times_graph)
    avg_pairs = np.mean(times_pairs)
    avg_physics = np.mean(times_physics)
    avg_total = np.mean(times_total)
    total_avg = max(avg_graph + avg_pairs + avg_physics, 1e-12)

    stats = sim.stats()

    print(f"\n{'='*70}")
    print(f"BENCHMARK RESULTS")
    print(f"{'='*70}\n")

    print(f"Overall Performance:")
    print(f"  Average ticks/s: {avg_fps:.2f}")
    print(f"  Total Time:      {total_time:.2f}s")
    print(f"  Avg Frame:       {avg_total*1000:.3f}ms")
    print(f"\n")

    print(f"Time Breakdown (averages over all frames):")
    print(f"  Graph:         {avg_graph*1000:7.3f}ms  ({100*avg_graph/total_avg:5.1f}%)")
    print(f"  Pairing:       {avg_pairs*1000:7.3f}ms  ({100*avg_pairs/total_avg:5.1f}%)")
    print(f"  Physics:       {avg_physics*1000:7.3f}ms  ({100*avg_physics/total_avg:5.1f}%)")
    print(f"\n")

    print(f"Final state:")
    print(f"  Edges:         {stats['edges']} (mean degree {stats['mean_degree']:.2f})")
    print(f"  Paired points: {stats['paired_points']}/{stats['points']}")
    print(f"  Speed:         mean={stats['mean_speed']:.4f} max={stats['max_speed']:.4f}")
    print(f"\n")

    return {
        'avg_fps': avg_fps,
        'total_time': total_time,
        'avg_frame_ms': avg_total * 1000,
        'avg_graph_ms': avg_graph * 1000,
        'avg_pairs_ms': avg_pairs * 1000,
        'avg_physics_ms': avg_physics * 1000,
        'stats': stats,
        'config': {
            'points': args.points,
            'frames': args.frames,
            'seed': args.seed,
            'method': args.method,
            'spawn': args.spawn,
            'recompute_every': args.recompute_every,
        }
    }


def main():
    """Main entry point."""
    args = parse_args()
    run_benchmark(args)

    print(f"Benchmark complete!")
    print(f"{'='*70}\n")

    return 0


if __name__ == '__main__':
    sys.exit(main())
