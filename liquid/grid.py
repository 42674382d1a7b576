"""
grid.py — MAC (Marker-and-Cell) Staggered Grid with Volume of Fluid
====================================================================
The foundation of the entire simulation.

Layout on an X × Y grid:
  - Volume fraction and solid flags live at CELL CENTERS → shape (X, Y)
  - Velocity `u` lives on X-FACES (left/right)           → shape (X+1, Y)
  - Velocity `v` lives on Y-FACES (top/bottom)           → shape (X, Y+1)
  - Pressure lives at cell centers plus a ghost ring     → shape (X+2, Y+2)

Why staggered? It prevents the "checkerboard" pressure instability
that appears on collocated grids, and makes the discrete divergence and
gradient exact adjoints so the projection is well-posed.

Lifecycle:
  grid = LiquidGrid(20, 20)
  grid.volume[:, 10:] = 1.0        # or set_volume / set_u / set_v / set_solid
  grid.post_initialise()
  while running:
      grid.step(dt)
"""

import logging
import time
from dataclasses import dataclass

import numpy as np

from .advect import advect_velocity, advect_volume
from .cells import CellFlag, CellFlags, CellSolidKind, classify_cells
from .diffuse import DEFAULT_DIFFUSION_ITERATIONS, diffuse_velocity
from .fields import DoubleBuffer, clear, copy, divergence, multiply_add
from .forces import apply_external_force, pressure_force_on_cell
from .solver import project

log = logging.getLogger(__name__)

DEFAULT_SOLVER_ITERATIONS = 20
VOLUME_ERROR_WARNING = 0.5


@dataclass(frozen=True)
class CellState:
    """Read-only view of one cell, as handed to presentation code."""
    volume: float
    rect_x: float
    rect_y: float
    rect_width: float
    rect_height: float
    x_velocity: float
    y_velocity: float
    pressure: float
    solid: bool


class LiquidGrid:
    """
    X × Y grid storing all simulation state.
    This is the single source of truth passed between all physics steps.

    Not re-entrant: only one thread may call `step`, `post_initialise` or
    the setters at a time (see LiquidSimulation for a locked driver).
    """

    def __init__(self, x_size: int, y_size: int, density: float = 1.0, viscosity: float = 0.0,
                 external_force_x: float = 0.0, external_force_y: float = 0.0,
                 overvolume_correction_factor: float = 0.0,
                 solver_iterations: int = DEFAULT_SOLVER_ITERATIONS,
                 diffusion_iterations: int = DEFAULT_DIFFUSION_ITERATIONS,
                 open_boundary: bool = False):
        """
        Args:
            x_size, y_size               : Grid resolution in cells (fixed)
            density                      : Liquid density (scales pressure loads on solids)
            viscosity                    : Liquid thickness (0 = inviscid)
            external_force_x/y           : Uniform body force (y points down)
            overvolume_correction_factor : How hard overfull cells push excess out
            solver_iterations            : Gauss-Seidel sweeps per pressure solve
            diffusion_iterations         : Jacobi sweeps per viscosity solve
            open_boundary                : Let free-surface liquid leave through the grid edge
        """
        if x_size <= 0 or y_size <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {x_size}×{y_size}")

        self.x_size = int(x_size)
        self.y_size = int(y_size)
        X, Y = self.x_size, self.y_size

        self.density = density
        self.viscosity = viscosity
        self.external_force_x = external_force_x
        self.external_force_y = external_force_y
        self.overvolume_correction_factor = overvolume_correction_factor
        self.solver_iterations = solver_iterations
        self.diffusion_iterations = diffusion_iterations
        self.open_boundary = open_boundary

        # ── Cell-centred state ─────────────────────────────────────────────
        self.volume_buffer = DoubleBuffer((X, Y))
        self.solid = np.full((X, Y), CellSolidKind.NONE, dtype=np.int8)
        self.flags = CellFlags.empty(X, Y)

        # ── Velocity (face-centred, staggered) ─────────────────────────────
        self.u_buffer = DoubleBuffer((X + 1, Y))
        self.v_buffer = DoubleBuffer((X, Y + 1))

        # ── Pressure (ghost-padded) and scratch ────────────────────────────
        # One warm-started buffer per projection in a step; their sum is the
        # whole pressure impulse of the step and is what solids feel.
        self.pressure = np.zeros((X + 2, Y + 2), dtype=np.float32)
        self.correction_pressure = np.zeros((X + 2, Y + 2), dtype=np.float32)
        self.force_pressure = np.zeros((X + 2, Y + 2), dtype=np.float32)
        self.div = np.zeros((X, Y), dtype=np.float32)
        self.grad_x = np.zeros((X + 1, Y), dtype=np.float32)
        self.grad_y = np.zeros((X, Y + 1), dtype=np.float32)

        self.max_volume_error = 0.0
        self.last_dt = 1.0
        self.step_count = 0
        self.initialised = False

    # ── Field access ────────────────────────────────────────────────────────

    @property
    def volume(self) -> np.ndarray:
        return self.volume_buffer.front

    @property
    def u(self) -> np.ndarray:
        return self.u_buffer.front

    @property
    def v(self) -> np.ndarray:
        return self.v_buffer.front

    @property
    def solid_mask(self) -> np.ndarray:
        return self.solid != CellSolidKind.NONE

    def _check_cell(self, x: int, y: int):
        if not (0 <= x < self.x_size and 0 <= y < self.y_size):
            raise IndexError(f"Cell ({x}, {y}) is outside the {self.x_size}×{self.y_size} grid")

    # ── Setup ───────────────────────────────────────────────────────────────

    def set_solid(self, x: int, y: int, is_solid):
        """Mark a cell solid. Accepts a bool (True → WALL) or a CellSolidKind."""
        self._check_cell(x, y)
        if isinstance(is_solid, CellSolidKind):
            kind = is_solid
        else:
            kind = CellSolidKind.WALL if is_solid else CellSolidKind.NONE
        self.solid[x, y] = kind

    def get_solid(self, x: int, y: int) -> CellSolidKind:
        self._check_cell(x, y)
        return CellSolidKind(int(self.solid[x, y]))

    def is_solid(self, x: int, y: int) -> bool:
        return self.get_solid(x, y) != CellSolidKind.NONE

    def set_volume(self, x: int, y: int, value: float):
        self._check_cell(x, y)
        self.volume[x, y] = value

    def set_u(self, x: int, y: int, value: float):
        """Set the x-velocity on the left face of cell (x, y); x may equal x_size."""
        if not (0 <= x <= self.x_size and 0 <= y < self.y_size):
            raise IndexError(f"u-face ({x}, {y}) is outside the grid")
        self.u[x, y] = value

    def set_v(self, x: int, y: int, value: float):
        """Set the y-velocity on the top face of cell (x, y); y may equal y_size."""
        if not (0 <= x < self.x_size and 0 <= y <= self.y_size):
            raise IndexError(f"v-face ({x}, {y}) is outside the grid")
        self.v[x, y] = value

    # ── Physics ─────────────────────────────────────────────────────────────

    def classify(self) -> CellFlags:
        return classify_cells(self.volume, self.solid_mask, out=self.flags)

    def enforce_non_divergence_of_velocity(self) -> dict:
        """Project the velocity field using the current cell flags."""
        return project(self)

    def post_initialise(self) -> dict:
        """
        Prepare a freshly configured grid for stepping.

        Clears the pressure warm starts, classifies cells, projects the
        initial velocity once and classifies again.
        """
        clear(self.pressure)
        clear(self.correction_pressure)
        self.classify()
        metrics = self.enforce_non_divergence_of_velocity()
        self._sum_pressures()
        self.classify()
        self.initialised = True
        log.info(
            "Grid %d×%d initialised: volume=%.3f, full cells=%d",
            self.x_size, self.y_size, self.total_volume(), int(self.flags.in_domain.sum())
        )
        return metrics

    def step(self, dt: float) -> dict:
        """
        Advance the simulation by one timestep.

        Pipeline:
          1. Classify cells
          2. Advect volume (face fluxes)
          3. External forces
          4. Diffuse velocity (viscosity)
          5. Project velocity
          6. Advect velocity (self-advection)
          7. Project again
          8. Reclassify cells for the next call

        Returns a metrics dict (per-phase timings in ms, diagnostics).
        """
        if not self.initialised:
            raise RuntimeError("post_initialise() must be called before step()")
        if not dt > 0.0:
            raise ValueError(f"Timestep must be positive, got {dt}")

        self.classify()

        t0 = time.perf_counter()
        self.max_volume_error = advect_volume(
            self.volume, self.u, self.v, self.flags, self.solid_mask, dt,
            out=self.volume_buffer.back, open_boundary=self.open_boundary
        )
        self.volume_buffer.swap()
        t_volume = (time.perf_counter() - t0) * 1000
        if self.max_volume_error > VOLUME_ERROR_WARNING:
            log.warning("Volume left [0, 1] by %.3f at step %d (dt=%g too large?)",
                        self.max_volume_error, self.step_count, dt)

        t0 = time.perf_counter()
        apply_external_force(self, dt)
        diffuse_velocity(self, dt)
        t_forces = (time.perf_counter() - t0) * 1000

        t0 = time.perf_counter()
        self.last_dt = dt
        project(self)
        t_project1 = (time.perf_counter() - t0) * 1000

        t0 = time.perf_counter()
        advect_velocity(self, dt)
        t_advect = (time.perf_counter() - t0) * 1000

        t0 = time.perf_counter()
        proj_metrics = project(self, self.correction_pressure)
        t_project2 = (time.perf_counter() - t0) * 1000
        self._sum_pressures()

        self.classify()
        self.step_count += 1
        log.debug("step %d: dt=%g volume=%.4f max_error=%.3e",
                  self.step_count, dt, self.total_volume(), self.max_volume_error)

        return {
            "step"             : self.step_count,
            "volume_ms"        : t_volume,
            "forces_ms"        : t_forces,
            "project1_ms"      : t_project1,
            "advect_vel_ms"    : t_advect,
            "project2_ms"      : t_project2,
            "max_volume_error" : self.max_volume_error,
            "divergence_max"   : proj_metrics["divergence_after_max"],
            "total_volume"     : self.total_volume(),
        }

    def _sum_pressures(self):
        copy(self.pressure, self.force_pressure)
        multiply_add(self.correction_pressure, 1.0, self.force_pressure)

    def pressure_force_on_cell(self, x: int, y: int) -> tuple:
        """
        Pressure load (fx, fy) on cell (x, y); used by moving solids.

        Reads the summed pressure of both projections of the last step, so
        the load includes the part that holds the liquid up against the
        external force.
        """
        self._check_cell(x, y)
        return pressure_force_on_cell(self.force_pressure, x, y, self.density, self.last_dt)

    # ── Queries and diagnostics ─────────────────────────────────────────────

    def __getitem__(self, index) -> CellState:
        x, y = index
        self._check_cell(x, y)
        flag = self.flags.at(x, y)
        vol = min(1.0, max(0.0, float(self.volume[x, y])))
        rect_x, rect_y, rect_w, rect_h = flag.liquid_rect(vol)
        return CellState(
            volume=vol,
            rect_x=rect_x,
            rect_y=rect_y,
            rect_width=rect_w,
            rect_height=rect_h,
            x_velocity=float(0.5 * (self.u[x, y] + self.u[x + 1, y])),
            y_velocity=float(0.5 * (self.v[x, y] + self.v[x, y + 1])),
            pressure=float(self.force_pressure[x + 1, y + 1]),
            solid=bool(self.solid[x, y] != CellSolidKind.NONE),
        )

    def cell_flag(self, x: int, y: int) -> CellFlag:
        self._check_cell(x, y)
        return self.flags.at(x, y)

    def total_volume(self) -> float:
        return float(self.volume.sum(dtype=np.float64))

    def divergence_error_info(self) -> tuple:
        """
        Average positive and average negative divergence over full cells.

        Partial cells are left out: their divergence is nonzero by
        construction while the surface moves.

        Returns: (positive_per_cell, negative_per_cell)
        """
        div = divergence(self.u, self.v)
        full = self.flags.in_domain
        n_full = int(full.sum())
        if n_full == 0:
            return 0.0, 0.0
        positive = float(div[full & (div > 0)].sum(dtype=np.float64)) / n_full
        negative = float(div[full & (div < 0)].sum(dtype=np.float64)) / n_full
        return positive, negative

    def velocity_at_center(self) -> tuple:
        """
        Interpolate staggered face velocities to cell centers.

        Returns (uc, vc) each of shape (X, Y).
        """
        uc = 0.5 * (self.u[:-1, :] + self.u[1:, :])
        vc = 0.5 * (self.v[:, :-1] + self.v[:, 1:])
        return uc, vc

    def reset(self):
        """Zero out all fields and solids. post_initialise() is needed again."""
        for arr in [self.volume, self.u, self.v, self.pressure, self.correction_pressure,
                    self.force_pressure, self.div, self.grad_x, self.grad_y]:
            clear(arr)
        self.solid[:] = CellSolidKind.NONE
        self.classify()
        self.max_volume_error = 0.0
        self.last_dt = 1.0
        self.step_count = 0
        self.initialised = False

    def __repr__(self):
        pos, neg = self.divergence_error_info()
        max_vel = max(np.abs(self.u).max(), np.abs(self.v).max())
        return (
            f"LiquidGrid({self.x_size}×{self.y_size}, step={self.step_count})\n"
            f"  volume    : total={self.total_volume():.3f}, max_error={self.max_volume_error:.4f}\n"
            f"  velocity  : max_magnitude={max_vel:.4f}\n"
            f"  divergence: +{pos:.6f} / {neg:.6f} per full cell (target: ~0)"
        )
