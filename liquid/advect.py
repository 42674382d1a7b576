"""
advect.py — Velocity Self-Advection and Volume Transport
=========================================================
Two very different transport schemes live here.

Velocity — Semi-Lagrangian (Stam, "Stable Fluids", SIGGRAPH 1999):
  1. Look at the position of a velocity sample (a face midpoint).
  2. Trace BACKWARD along the velocity field by one timestep (dt).
  3. Sample the velocity at that back-traced position using bilinear
     interpolation. Unconditionally stable, but not conservative.

Volume — explicit face fluxes:
  Interpolating the volume field would smear it and lose liquid, so
  instead each face moves `velocity * dt` worth of liquid out of its
  upstream (donor) cell, limited by how much liquid the donor has and
  where inside the donor that liquid sits. Whatever leaves one cell
  enters its neighbour, so the total is conserved exactly.

Units: velocities are in cells per unit time, so `u * dt` is a distance
in cells (and, for a face of height 1, a volume).
"""

import numpy as np

from .cells import Bias, CellFlags
from .fields import check_shapes, copy


def _bilinear_sample(field: np.ndarray, x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """
    Bilinear interpolation of a 2-D field at fractional index positions.

    Corners that fall outside the array contribute zero, so samples
    traced out of the grid fade towards no motion.
    """
    Nx, Ny = field.shape

    x0 = np.floor(x).astype(np.int64)
    y0 = np.floor(y).astype(np.int64)
    tx = (x - x0).astype(field.dtype)
    ty = (y - y0).astype(field.dtype)

    result = np.zeros(x.shape, dtype=field.dtype)
    corners = (
        (0, 0, (1 - tx) * (1 - ty)),
        (1, 0, tx * (1 - ty)),
        (0, 1, (1 - tx) * ty),
        (1, 1, tx * ty),
    )
    for dx, dy, weight in corners:
        xi = x0 + dx
        yi = y0 + dy
        inside = (xi >= 0) & (xi < Nx) & (yi >= 0) & (yi < Ny)
        values = np.zeros(x.shape, dtype=field.dtype)
        values[inside] = field[xi[inside], yi[inside]]
        result += weight * values
    return result


def _average_corners(f: np.ndarray) -> np.ndarray:
    """4-point average of each 2×2 block: shape (n, m) → (n-1, m-1)."""
    return 0.25 * (f[:-1, :-1] + f[1:, :-1] + f[:-1, 1:] + f[1:, 1:])


def advect_velocity(grid, dt: float):
    """
    Advect the velocity field through itself (self-advection).

    Each component lives on its own staggered faces, so each is traced
    back from its own face positions; the other component is evaluated
    there by averaging its four surrounding samples. Only interior faces
    are advected; edge faces are owned by the boundary conditions.

    Modifies: grid.u, grid.v (via their double buffers)
    """
    u, v = grid.u, grid.v
    X, Y = grid.x_size, grid.y_size

    new_u = None
    if X > 1:
        # ── u: interior x-faces, shape (X-1, Y) ──────────────────────────
        iu, ju = np.meshgrid(
            np.arange(1, X, dtype=np.float32),
            np.arange(Y,    dtype=np.float32),
            indexing='ij'
        )
        v_at_u = _average_corners(v)
        x_back = iu - dt * u[1:-1, :]
        y_back = ju - dt * v_at_u
        new_u = _bilinear_sample(u, x_back, y_back)

    new_v = None
    if Y > 1:
        # ── v: interior y-faces, shape (X, Y-1) ──────────────────────────
        iv, jv = np.meshgrid(
            np.arange(X,    dtype=np.float32),
            np.arange(1, Y, dtype=np.float32),
            indexing='ij'
        )
        u_at_v = _average_corners(u)
        x_back = iv - dt * u_at_v
        y_back = jv - dt * v[:, 1:-1]
        new_v = _bilinear_sample(v, x_back, y_back)

    # Both components are sampled from the old fields before either is written.
    if new_u is not None:
        back = grid.u_buffer.back
        copy(u, back)
        back[1:-1, :] = new_u
        grid.u_buffer.swap()
    if new_v is not None:
        back = grid.v_buffer.back
        copy(v, back)
        back[:, 1:-1] = new_v
        grid.v_buffer.swap()


def _face_transfer(t: np.ndarray, volume: np.ndarray, flags: CellFlags, solid: np.ndarray,
                   axis: int, open_boundary: bool) -> np.ndarray:
    """
    Signed volume crossing each face along `axis` during one step.

    The donor is the upstream cell. Its bias along the flow axis limits
    how much can leave through the face; its bias across the flow axis
    says how much of the face is covered by liquid.
    """
    along_bias = flags.x_bias if axis == 0 else flags.y_bias
    across_bias = flags.y_bias if axis == 0 else flags.x_bias

    pad = [(0, 0), (0, 0)]
    pad[axis] = (1, 1)

    def low_high(a, fill):
        padded = np.pad(a, pad, mode="constant", constant_values=fill)
        if axis == 0:
            return padded[:-1, :], padded[1:, :]
        return padded[:, :-1], padded[:, 1:]

    vol_lo, vol_hi = low_high(volume, 0.0)
    along_lo, along_hi = low_high(along_bias, Bias.NONE)
    across_lo, across_hi = low_high(across_bias, Bias.NONE)
    solid_lo, solid_hi = low_high(solid, False)

    forward = t > 0.0
    magnitude = np.abs(t)
    donor_vol = np.where(forward, vol_lo, vol_hi)
    along = np.where(forward, along_lo, along_hi)
    across = np.where(forward, across_lo, across_hi)
    downstream = np.where(forward, Bias.POSITIVE, Bias.NEGATIVE)

    # How far the flow reaches into the donor's liquid
    amount = np.where(
        along == Bias.ALL, magnitude,
        np.where(
            along == downstream, np.minimum(magnitude, donor_vol),
            np.maximum(0.0, magnitude + donor_vol - 1.0)
        )
    )
    amount = np.where(along == Bias.NONE, 0.0, amount)

    # How much of the face is wet
    coverage = np.where(across == Bias.ALL, 1.0, donor_vol)
    coverage = np.where(across == Bias.NONE, 0.0, coverage)

    transfer = np.where(forward, 1.0, -1.0) * amount * coverage
    transfer = transfer.astype(volume.dtype)
    transfer[solid_lo | solid_hi] = 0.0

    if not open_boundary:
        if axis == 0:
            transfer[0, :] = 0.0
            transfer[-1, :] = 0.0
        else:
            transfer[:, 0] = 0.0
            transfer[:, -1] = 0.0
    return transfer


def advect_volume(volume: np.ndarray, u: np.ndarray, v: np.ndarray, flags: CellFlags,
                  solid: np.ndarray, dt: float, out: np.ndarray,
                  open_boundary: bool = False) -> float:
    """
    Move liquid between cells through face fluxes.

    Each cell's new volume is its old volume plus net inflow. The result is
    committed unclamped, so the grid total is conserved even while single
    cells briefly leave [0, 1].

    Args:
        volume        : current volume fractions, shape (X, Y)
        u, v          : staggered velocity, shapes (X+1, Y) and (X, Y+1)
        flags         : CellFlags computed from `volume`
        solid         : boolean solid mask
        dt            : timestep
        out           : destination array, shape (X, Y)
        open_boundary : let outward flux leave through the grid edge

    Returns:
        Largest excursion of the new volume outside [0, 1]
    """
    check_shapes(volume, out)
    check_shapes(volume, u, (1, 0))
    check_shapes(volume, v, (0, 1))

    flux_x = _face_transfer(u * dt, volume, flags, solid, axis=0, open_boundary=open_boundary)
    flux_y = _face_transfer(v * dt, volume, flags, solid, axis=1, open_boundary=open_boundary)

    out[:] = volume - (flux_x[1:, :] - flux_x[:-1, :]) - (flux_y[:, 1:] - flux_y[:, :-1])

    max_error = max(0.0, float((out - 1.0).max()), float((-out).max()))
    return max_error
