"""
solver.py — Pressure Projection
================================
The projection step enforces INCOMPRESSIBILITY inside the liquid:
  div(v) = 0 in every completely full cell

After forces and advection the velocity field is generally NOT
divergence-free. We fix this by:
  1. Applying velocity boundary conditions (walls, free surface)
  2. Computing divergence of the current velocity field
  3. Solving the Poisson equation for pressure: ∇²p = div(v)
     — only over full cells; the free surface is held at p = 0
  4. Subtracting the pressure gradient from velocity: v = v - ∇p
  5. Re-applying the boundary conditions

The Poisson solve is a fixed number of red-black Gauss-Seidel sweeps.
There is no convergence test: each step costs the same, and any
leftover error shows up in the divergence diagnostics instead.
"""

import logging

import numpy as np

from .cells import CellFlags
from .fields import check_shapes, divergence, gradient, multiply_add

log = logging.getLogger(__name__)


# ── Boundary conditions ───────────────────────────────────────────────────────

def _face_masks(cell_mask: np.ndarray, axis: int, fill: bool):
    """Cell mask seen from the low and high side of each face along `axis`."""
    pad = [(0, 0), (0, 0)]
    pad[axis] = (1, 1)
    padded = np.pad(cell_mask, pad, mode="constant", constant_values=fill)
    if axis == 0:
        return padded[:-1, :], padded[1:, :]
    return padded[:, :-1], padded[:, 1:]


def _extrapolate_free_surface(f: np.ndarray, next_to_full: np.ndarray, blocked: np.ndarray):
    """
    Fill faces that sit between two non-full cells.

    Such a face is not touched by the pressure solve, so it takes the
    mean of its "defined" neighbour faces (same component, 4-neighbourhood),
    where a defined face has a full cell on at least one side. Faces with
    no defined neighbour keep their value.
    """
    defined = next_to_full & ~blocked
    undefined = ~next_to_full & ~blocked
    if not undefined.any() or not defined.any():
        return

    src = np.pad(np.where(defined, f, 0.0), 1, mode="constant")
    cnt = np.pad(defined.astype(np.float32), 1, mode="constant")

    total = src[:-2, 1:-1] + src[2:, 1:-1] + src[1:-1, :-2] + src[1:-1, 2:]
    count = cnt[:-2, 1:-1] + cnt[2:, 1:-1] + cnt[1:-1, :-2] + cnt[1:-1, 2:]

    fill = undefined & (count > 0)
    f[fill] = total[fill] / count[fill]


def apply_velocity_boundary(u: np.ndarray, v: np.ndarray, flags: CellFlags, solid: np.ndarray,
                            after_projection: bool = False, open_boundary: bool = False):
    """
    Enforce velocity boundary conditions in place.

    - Faces on the grid edge and faces touching a solid cell carry no flow.
    - Faces between two non-full liquid/empty cells are extrapolated from
      the neighbouring faces that border full cells.
    - With `open_boundary`, the pass after projection lets liquid leave
      through edge faces next to non-full cells (outward motion only).

    Args:
        u, v             : staggered velocity, shapes (X+1, Y) and (X, Y+1)
        flags            : current CellFlags
        solid            : boolean solid mask, shape (X, Y)
        after_projection : True for the second pass of a projection
        open_boundary    : allow outflow through the grid edge
    """
    check_shapes(solid, u, (1, 0))
    check_shapes(solid, v, (0, 1))
    full = flags.in_domain

    full_l, full_r = _face_masks(full, axis=0, fill=False)
    full_t, full_b = _face_masks(full, axis=1, fill=False)
    solid_l, solid_r = _face_masks(solid, axis=0, fill=True)
    solid_t, solid_b = _face_masks(solid, axis=1, fill=True)
    blocked_u = solid_l | solid_r
    blocked_v = solid_t | solid_b

    _extrapolate_free_surface(u, full_l | full_r, blocked_u)
    _extrapolate_free_surface(v, full_t | full_b, blocked_v)

    if after_projection and open_boundary:
        X, Y = solid.shape
        open_cells = ~full & ~solid
        # Edge faces next to a non-full cell copy the adjacent interior face,
        # then inflow is blocked.
        if X > 1:
            left, right = open_cells[0, :], open_cells[X - 1, :]
            u[0, left] = np.minimum(u[1, left], 0.0)
            u[X, right] = np.maximum(u[X - 1, right], 0.0)
            blocked_u[0, left] = False
            blocked_u[X, right] = False
        if Y > 1:
            top, bottom = open_cells[:, 0], open_cells[:, Y - 1]
            v[top, 0] = np.minimum(v[top, 1], 0.0)
            v[bottom, Y] = np.maximum(v[bottom, Y - 1], 0.0)
            blocked_v[top, 0] = False
            blocked_v[bottom, Y] = False

    u[blocked_u] = 0.0
    v[blocked_v] = 0.0


# ── Poisson relaxation ────────────────────────────────────────────────────────

def _colour_masks(shape: tuple):
    ix, iy = np.indices(shape)
    red = (ix + iy) % 2 == 0
    return red, ~red


def solve_poisson(f: np.ndarray, phi: np.ndarray, iterations: int):
    """
    Plain Poisson relaxation: ∇²phi = f with phi = 0 on the ghost ring.

    phi has shape f.shape + (2, 2) and is cleared before solving.
    """
    check_shapes(f, phi, (2, 2))
    phi[...] = 0.0
    inner = phi[1:-1, 1:-1]

    for _ in range(iterations):
        for colour in _colour_masks(f.shape):
            neighbours = phi[:-2, 1:-1] + phi[2:, 1:-1] + phi[1:-1, :-2] + phi[1:-1, 2:]
            update = (neighbours - f) / 4.0
            inner[colour] = update[colour]


def solve_poisson_in_domain(div: np.ndarray, pressure: np.ndarray, flags: CellFlags, iterations: int):
    """
    Poisson relaxation restricted to full cells.

    Every pressure outside the domain (empty/partial/solid cells and the
    ghost ring) is reset to 0 first; in-domain values are kept as the warm
    start. Per sweep, each in-domain cell becomes

      p = (Σ neighbour terms − div) / 4

    where a wall side contributes max(0, p) of the cell itself (no suction
    against walls) and any other side contributes the neighbour's pressure
    (≈ 0 across the free surface).
    """
    check_shapes(div, pressure, (2, 2))
    domain = flags.in_domain
    check_shapes(div, domain)

    inner = pressure[1:-1, 1:-1]
    pressure[0, :] = 0.0
    pressure[-1, :] = 0.0
    pressure[:, 0] = 0.0
    pressure[:, -1] = 0.0
    inner[~domain] = 0.0

    if not domain.any():
        return

    red, black = _colour_masks(div.shape)
    colours = (red & domain, black & domain)

    for _ in range(iterations):
        for colour in colours:
            own = np.maximum(inner, 0.0)
            total = (
                np.where(flags.wall_left,   own, pressure[:-2, 1:-1]) +
                np.where(flags.wall_right,  own, pressure[2:,  1:-1]) +
                np.where(flags.wall_top,    own, pressure[1:-1, :-2]) +
                np.where(flags.wall_bottom, own, pressure[1:-1, 2: ])
            )
            update = (total - div) / 4.0
            inner[colour] = update[colour]


# ── Projection ────────────────────────────────────────────────────────────────

def project(grid, pressure: np.ndarray = None) -> dict:
    """
    Make the grid's velocity field divergence-free inside the liquid.

    Args:
        grid     : LiquidGrid to modify in place (u, v and the pressure buffer)
        pressure : ghost-padded buffer to solve into, also the warm start
                   (default: grid.pressure)

    Returns:
        dict with divergence metrics over full cells
    """
    u, v = grid.u, grid.v
    flags = grid.flags
    solid = grid.solid_mask
    if pressure is None:
        pressure = grid.pressure

    apply_velocity_boundary(u, v, flags, solid)

    div = divergence(u, v, grid.div)
    full = flags.in_domain
    div_before = float(np.abs(div[full]).max()) if full.any() else 0.0

    # Overfull cells get a negative target divergence, so the corrected
    # velocity carries the excess volume back out.
    if grid.overvolume_correction_factor:
        over = grid.volume - 1.0
        mask = over > 0.0
        div[mask] -= grid.overvolume_correction_factor * np.minimum(over[mask], 1.0)

    solve_poisson_in_domain(div, pressure, flags, grid.solver_iterations)

    gradient(pressure, grid.grad_x, grid.grad_y)
    multiply_add(grid.grad_x, -1.0, u)
    multiply_add(grid.grad_y, -1.0, v)

    apply_velocity_boundary(u, v, flags, solid, after_projection=True,
                            open_boundary=grid.open_boundary)

    div_after = divergence(u, v, grid.div)
    div_after_max = float(np.abs(div_after[full]).max()) if full.any() else 0.0
    log.debug("projection: max |div| in full cells %.3e -> %.3e", div_before, div_after_max)

    return {
        "iterations": grid.solver_iterations,
        "divergence_before_max": div_before,
        "divergence_after_max": div_after_max,
    }
