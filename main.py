"""
main.py — Command-line Runner
==============================
Runs a scene without any display and reports diagnostics.

Usage:
    python main.py                          # Headless dam break (default)
    python main.py --scene floating_box     # Pick another scene
    python main.py --mode benchmark         # Per-phase timing breakdown
"""

import argparse
import logging

import numpy as np

from liquid import LiquidSimulation
from liquid.scenes import SCENES


def make_simulation(args) -> LiquidSimulation:
    sim = LiquidSimulation(
        args.nx, args.ny, dt=args.dt,
        viscosity=args.viscosity,
        external_force_y=args.gravity,
        overvolume_correction_factor=args.overvolume,
        solver_iterations=args.iterations,
    )
    sim.load_scene(args.scene)
    return sim


def run_headless(args):
    """Run simulation without display — prints stats every 10 frames."""
    sim = make_simulation(args)
    start_volume = sim.grid.total_volume()

    print(f"\nHeadless simulation | {args.scene} | {args.nx}×{args.ny} | {args.frames} frames")
    print(f"{'─'*60}")

    for f in range(args.frames):
        metrics = sim.step()
        if f % 10 == 0:
            print(f"  Frame {f:03d} | {metrics['total_ms']:6.1f}ms | "
                  f"div_max={metrics['divergence_max']:.5f} | "
                  f"volume={metrics['total_volume']:.3f} | "
                  f"max_error={metrics['max_volume_error']:.3f}")

    sim.print_status()
    print(f"  Volume drift: {sim.grid.total_volume() - start_volume:+.6f}")


def run_benchmark(args):
    """
    Detailed performance breakdown.
    Shows how long each physics phase takes.
    """
    sim = make_simulation(args)

    print(f"\n{'='*60}")
    print(f"  BENCHMARK | {args.scene} | {args.nx}×{args.ny} | {args.frames} frames")
    print(f"{'='*60}")

    # Warm up
    for _ in range(5):
        sim.step()

    logs = [sim.step() for _ in range(args.frames)]

    keys = ["solids_ms", "volume_ms", "forces_ms", "project1_ms",
            "advect_vel_ms", "project2_ms", "total_ms"]

    print(f"\n{'Phase':<20} {'Mean':>8} {'Min':>8} {'Max':>8}")
    print(f"{'─'*50}")
    for k in keys:
        vals = [m[k] for m in logs]
        print(f"  {k:<18} {np.mean(vals):>7.2f}ms {np.min(vals):>7.2f}ms {np.max(vals):>7.2f}ms")

    total_vals = [m["total_ms"] for m in logs]
    print(f"\n{'─'*50}")
    print(f"  Steps per second: {1000/np.mean(total_vals):.1f}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="2D Free-Surface Liquid Simulation")
    parser.add_argument(
        "--mode", choices=["headless", "benchmark"],
        default="headless",
        help="Run mode (default: headless)"
    )
    parser.add_argument("--scene", choices=sorted(SCENES), default="dam_break", help="Initial scene")
    parser.add_argument("--nx",         type=int,   default=40,   help="Cells in x (default: 40)")
    parser.add_argument("--ny",         type=int,   default=30,   help="Cells in y (default: 30)")
    parser.add_argument("--frames",     type=int,   default=100,  help="Number of frames")
    parser.add_argument("--dt",         type=float, default=0.05, help="Timestep")
    parser.add_argument("--iterations", type=int,   default=20,   help="Pressure solver sweeps")
    parser.add_argument("--gravity",    type=float, default=9.8,  help="Downward external force")
    parser.add_argument("--viscosity",  type=float, default=0.0,  help="Liquid viscosity")
    parser.add_argument("--overvolume", type=float, default=0.5,  help="Overvolume correction factor")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    if args.mode == "headless":
        run_headless(args)
    elif args.mode == "benchmark":
        run_benchmark(args)
