"""
simulation.py — Simulation Driver
==================================
Ties the grid and its moving solids together and makes them safe to
share between a stepping thread and a reading (presentation) thread.

One call to `step()` advances the liquid by dt:
  1. Move solid objects (erase, integrate, rewrite into the solid mask)
  2. LiquidGrid.step(dt)

Every public method takes the same lock, so readers only ever see the
state between two complete steps.
"""

import logging
import threading
import time
from collections import deque

import numpy as np

from .grid import LiquidGrid
from .scenes import SCENES
from .solids import SolidObjectCollection

log = logging.getLogger(__name__)

PERF_LOG_LENGTH = 1000


class LiquidSimulation:
    """
    The complete 2-D liquid simulation.

    Usage:
        sim = LiquidSimulation(40, 30, dt=0.05, external_force_y=9.8)
        sim.load_scene("dam_break")
        for frame in range(100):
            sim.step()
            cells = sim.snapshot()        # Hand to a viewer
    """

    def __init__(self, x_size: int, y_size: int, dt: float = 0.05,
                 perf_log_length: int = PERF_LOG_LENGTH, **parameters):
        """
        Args:
            x_size, y_size  : Grid resolution in cells
            dt              : Default timestep for step()
            perf_log_length : Number of recent frames kept in perf_log
            **parameters    : Forwarded to LiquidGrid (viscosity, external_force_y, ...)
        """
        self.grid = LiquidGrid(x_size, y_size, **parameters)
        self.solids = SolidObjectCollection(self.grid)
        self.dt = dt
        self.frame = 0
        self.perf_log = deque(maxlen=perf_log_length)   # timing data of recent frames
        self._lock = threading.Lock()

    def load_scene(self, name: str, **kwargs):
        """Reset the grid, build a named scene and initialise it."""
        if name not in SCENES:
            raise ValueError(f"Unknown scene: {name}. Choose from {sorted(SCENES)}")
        with self._lock:
            self.solids.clear()
            self.grid.reset()
            result = SCENES[name](self.grid, **kwargs)
            if isinstance(result, SolidObjectCollection):
                self.solids = result
            self.grid.post_initialise()
            self.frame = 0
            self.perf_log.clear()
        log.info("Loaded scene %r on a %d×%d grid", name, self.grid.x_size, self.grid.y_size)

    def step(self, dt: float = None) -> dict:
        """
        Advance simulation by one timestep.

        Returns performance metrics dict for benchmarking.
        """
        dt = self.dt if dt is None else dt
        with self._lock:
            t_total_start = time.perf_counter()

            t0 = time.perf_counter()
            if len(self.solids):
                self.solids.update_all(dt)
            t_solids = (time.perf_counter() - t0) * 1000

            metrics = self.grid.step(dt)

            self.frame += 1
            t_total = (time.perf_counter() - t_total_start) * 1000

        metrics.update({
            "frame"     : self.frame,
            "solids_ms" : t_solids,
            "total_ms"  : t_total,
            "fps"       : 1000.0 / t_total if t_total > 0 else 0,
        })
        self.perf_log.append(metrics)
        return metrics

    def reset(self):
        with self._lock:
            self.solids.clear()
            self.grid.reset()
            self.frame = 0
            self.perf_log.clear()

    def snapshot(self) -> list:
        """
        Every cell's CellState, taken between two steps.

        Returns a list of rows indexed [x][y].
        """
        with self._lock:
            g = self.grid
            return [[g[x, y] for y in range(g.y_size)] for x in range(g.x_size)]

    def print_status(self):
        """Pretty-print current simulation state."""
        with self._lock:
            g = self.grid
            uc, vc = g.velocity_at_center()
            pos, neg = g.divergence_error_info()
            print(f"\n{'='*50}")
            print(f"  Frame: {self.frame}  |  Solids: {len(self.solids)}")
            print(f"  Volume    : total={g.total_volume():.3f}, max_error={g.max_volume_error:.4f}")
            print(f"  Velocity  : max_u={np.abs(uc).max():.4f}, max_v={np.abs(vc).max():.4f}")
            print(f"  Divergence: +{pos:.6f} / {neg:.6f} per full cell")
            print(f"  Pressure  : max={g.force_pressure.max():.4f}, min={g.force_pressure.min():.4f}")
            if self.perf_log:
                last = self.perf_log[-1]
                print(f"  Perf      : {last['total_ms']:.1f}ms/frame ({last['fps']:.1f} FPS)")
            print(f"{'='*50}")
