#!/usr/bin/env python3
"""
Benchmark script for link forces - Reproducible Performance Testing
===================================================================

Runs a fixed number of link-force evaluations with a deterministic seed and
reports:
- Launches per second
- Time breakdown (clear forces, link forces)
- Links processed per second
- Configuration used

Links are drawn between random point pairs, with a hub point shared by a
fraction of the links to stress the atomic accumulation.

Usage:
    python scripts/bench.py [--steps N] [--points N] [--links N] [--cpu]

Example:
    python scripts/bench.py --steps 100 --points 100000 --links 200000
"""

import sys
import os
import time
import argparse
import numpy as np

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import taichi as ti

from config import (
    BENCH_POINTS, BENCH_LINKS, BENCH_STEPS, BENCH_WARMUP, BENCH_SEED,
    DEFAULT_STRENGTH, BLOCK_DIM
)
from points import PointBuffer
from links import LinkStore
from force_laws import LinearForceLaw, HookeanForceLaw
from link_forces import LinkForceKernel


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Benchmark link-force kernel performance')
    parser.add_argument('--steps', type=int, default=BENCH_STEPS,
                        help=f'Number of force evaluations to time (default: {BENCH_STEPS})')
    parser.add_argument('--points', type=int, default=BENCH_POINTS,
                        help=f'Number of points (default: {BENCH_POINTS})')
    parser.add_argument('--links', type=int, default=BENCH_LINKS,
                        help=f'Link capacity (default: {BENCH_LINKS})')
    parser.add_argument('--hub-fraction', type=float, default=0.05,
                        help='Fraction of links attached to point 0 (default: 0.05)')
    parser.add_argument('--law', choices=['linear', 'hookean'], default='linear',
                        help='Force law (default: linear)')
    parser.add_argument('--seed', type=int, default=BENCH_SEED,
                        help=f'Random seed for reproducibility (default: {BENCH_SEED})')
    parser.add_argument('--cpu', action='store_true',
                        help='Run on CPU instead of GPU')
    return parser.parse_args()


def initialize_links(n_points, n_links, hub_fraction, seed):
    """
    Build random positions and links.

    Args:
        n_points: Number of points to spawn
        n_links: Number of links (all active)
        hub_fraction: Fraction of links whose `a` is point 0
        seed: Random seed for reproducibility

    Returns:
        Tuple of (points, store)
    """
    rng = np.random.default_rng(seed)

    points = PointBuffer(n_points)
    points.set_positions(rng.random((n_points, 3), dtype=np.float32))

    store = LinkStore(n_links, strength=DEFAULT_STRENGTH, seed=seed)
    pairs = rng.integers(0, n_points, size=(n_links, 2), dtype=np.int32)
    n_hub = int(hub_fraction * n_links)
    pairs[:n_hub, 0] = 0
    store.host_links[:] = pairs
    store.sync_to_accelerator()

    return points, store


def run_benchmark(args):
    """
    Run benchmark with given configuration.

    Returns:
        Dictionary with timing results
    """
    print(f"\n{'='*70}")
    print(f"LINK FORCE BENCHMARK")
    print(f"{'='*70}\n")

    print(f"Configuration:")
    print(f"  Points:        {args.points}")
    print(f"  Links:         {args.links}")
    print(f"  Hub fraction:  {args.hub_fraction}")
    print(f"  Law:           {args.law}")
    print(f"  Steps:         {args.steps}")
    print(f"  Seed:          {args.seed}")
    print(f"  Block dim:     {BLOCK_DIM}")
    print(f"\n")

    ti.init(arch=ti.cpu if args.cpu else ti.gpu)
    print(f"[Taichi] Initialized with backend: {ti.cfg.arch}")

    print("Initializing links...")
    points, store = initialize_links(args.points, args.links, args.hub_fraction, args.seed)
    law = HookeanForceLaw() if args.law == 'hookean' else LinearForceLaw()
    link_forces = LinkForceKernel(law)

    times_clear = []
    times_links = []
    times_total = []

    with store:
        # Warm-up (first launches include JIT compilation)
        for _ in range(BENCH_WARMUP):
            points.clear_forces()
            link_forces(store, points)
        ti.sync()
        print(f"Warm-up complete ({BENCH_WARMUP} launches)\n")

        print(f"Running {args.steps} steps...\n")
        start_time_total = time.perf_counter()

        for step in range(args.steps):
            t0 = time.perf_counter()

            # 1. Clear accumulators
            t_clear_start = time.perf_counter()
            points.clear_forces()
            ti.sync()
            t_clear = time.perf_counter() - t_clear_start

            # 2. Link forces
            t_links_start = time.perf_counter()
            link_forces(store, points)
            ti.sync()
            t_links = time.perf_counter() - t_links_start

            t_step = time.perf_counter() - t0
            times_clear.append(t_clear)
            times_links.append(t_links)
            times_total.append(t_step)

            if (step + 1) % 10 == 0 or step == args.steps - 1:
                print(f"  Step {step+1:4d}/{args.steps}: {t_links*1000:7.3f}ms link forces")

        end_time_total = time.perf_counter()

    total_time = end_time_total - start_time_total
    avg_clear = np.mean(times_clear)
    avg_links = np.mean(times_links)
    avg_total = np.mean(times_total)
    links_per_sec = args.links / avg_links if avg_links > 0 else 0.0

    print(f"\n{'='*70}")
    print(f"BENCHMARK RESULTS")
    print(f"{'='*70}\n")

    print(f"Overall Performance:")
    print(f"  Steps/s:       {args.steps / total_time:.2f}")
    print(f"  Total Time:    {total_time:.2f}s")
    print(f"  Avg Step:      {avg_total*1000:.3f}ms")
    print(f"  Links/s:       {links_per_sec:.3e}")
    print(f"\n")

    print(f"Time Breakdown (averages):")
    print(f"  Clear:         {avg_clear*1000:7.3f}ms  ({100*avg_clear/avg_total:5.1f}%)")
    print(f"  Link forces:   {avg_links*1000:7.3f}ms  ({100*avg_links/avg_total:5.1f}%)")
    print(f"\n")

    return {
        'steps_per_sec': args.steps / total_time,
        'total_time': total_time,
        'avg_step_ms': avg_total * 1000,
        'avg_clear_ms': avg_clear * 1000,
        'avg_links_ms': avg_links * 1000,
        'links_per_sec': links_per_sec,
        'config': {
            'points': args.points,
            'links': args.links,
            'hub_fraction': args.hub_fraction,
            'law': args.law,
            'steps': args.steps,
            'seed': args.seed,
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
