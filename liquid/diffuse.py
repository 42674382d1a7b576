"""
diffuse.py — Viscosity via Jacobi Iteration
============================================
Viscosity makes neighbouring faces drag each other along.
  - High viscosity → thick liquid (honey)
  - Low viscosity  → thin liquid (water)

The math: We need to solve the implicit diffusion equation:
  (I - a·∇²) φ_new = φ_old        with a = dt * viscosity

Why implicit? Because explicit diffusion (just adding the Laplacian each step)
is only stable when dt is tiny. Implicit diffusion is unconditionally stable —
you can use large dt and the simulation won't blow up.

Solving this exactly is expensive. Instead we run a fixed number of Jacobi
sweeps, ping-ponging between two buffers:
  φ1[x,y] = b · (φ0[x,y] + a · (sum of 4 neighbours of φ1)),  b = 1 / (1 + 4a)
"""

import numpy as np

from .fields import DoubleBuffer, check_shapes, copy

DEFAULT_DIFFUSION_ITERATIONS = 20


def diffuse(phi0: np.ndarray, a: float, iterations: int = DEFAULT_DIFFUSION_ITERATIONS,
            buffers: DoubleBuffer = None) -> np.ndarray:
    """
    Jacobi solver for (I - a·∇²) φ1 = φ0 on a 2-D field.

    Interior entries are relaxed; the edge rows/columns copy the nearest
    interior entry after each sweep (Neumann), and the boundary-condition
    pass of the projection decides what walls really carry.

    Args:
        phi0       : Right-hand side (original values)
        a          : dt * viscosity
        iterations : Number of Jacobi sweeps
        buffers    : Optional scratch pair shaped like phi0

    Returns:
        Relaxed field (a buffer of `buffers` when given, else a new array)
    """
    if buffers is None:
        buffers = DoubleBuffer(phi0.shape, dtype=phi0.dtype)
    check_shapes(phi0, buffers.front)

    b = 1.0 / (1.0 + 4.0 * a)
    copy(phi0, buffers.front)
    if min(phi0.shape) < 3:
        return buffers.front

    for _ in range(iterations):
        x, out = buffers.front, buffers.back
        neighbours = (
            x[2:,  1:-1] +   # x+1 neighbour
            x[:-2, 1:-1] +   # x-1 neighbour
            x[1:-1, 2: ] +   # y+1 neighbour
            x[1:-1, :-2]     # y-1 neighbour
        )
        out[1:-1, 1:-1] = b * (phi0[1:-1, 1:-1] + a * neighbours)

        out[0,  1:-1] = out[1,  1:-1]
        out[-1, 1:-1] = out[-2, 1:-1]
        out[:, 0]  = out[:, 1]
        out[:, -1] = out[:, -2]
        buffers.swap()

    return buffers.front


def diffuse_velocity(grid, dt: float):
    """
    Apply viscous diffusion to both velocity components.

    Each component is diffused independently since they live on different
    staggered grids.

    Modifies: grid.u, grid.v (via their double buffers)
    """
    if grid.viscosity == 0.0:
        return  # Skip for inviscid liquids

    a = dt * grid.viscosity
    for buf in (grid.u_buffer, grid.v_buffer):
        scratch = DoubleBuffer(buf.shape, dtype=buf.front.dtype)
        result = diffuse(buf.front, a, grid.diffusion_iterations, scratch)
        copy(result, buf.back)
        buf.swap()
