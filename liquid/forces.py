"""
forces.py — External Forces and Pressure Loads
===============================================
Two directions of coupling between the liquid and the outside world:

  - Body forces (gravity, wind) push on the liquid's velocity field.
  - Pressure pushes back on solid cells (used by moving SolidObjects).

Coordinates: x grows to the right, y grows DOWNWARDS, so gravity is a
positive external_force_y.
"""

import numpy as np


def apply_external_force(grid, dt: float):
    """
    Add a uniform body force to both velocity components.

      u += dt * external_force_x
      v += dt * external_force_y

    Faces that must carry no flow are zeroed again by the projection's
    boundary pass.

    Modifies: grid.u, grid.v (in-place)
    """
    u, v = grid.u, grid.v
    if grid.external_force_x:
        u += dt * grid.external_force_x
    if grid.external_force_y:
        v += dt * grid.external_force_y


def pressure_force_on_cell(pressure: np.ndarray, x: int, y: int, density: float, dt: float) -> tuple:
    """
    Net pressure force on cell (x, y) from its four neighbours.

    The solved pressure is a velocity potential (it was subtracted straight
    from the velocity), so the physical load is density * Δp / dt.

    Args:
        pressure : ghost-padded pressure, shape (X+2, Y+2)
        x, y     : cell indices (unpadded)
        density  : liquid density
        dt       : timestep the pressure was solved for

    Returns:
        (fx, fy)
    """
    px, py = x + 1, y + 1
    fx = density * (pressure[px - 1, py] - pressure[px + 1, py]) / dt
    fy = density * (pressure[px, py - 1] - pressure[px, py + 1]) / dt
    return float(fx), float(fy)
