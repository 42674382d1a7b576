"""
scenes.py — Ready-made Initial Conditions
==========================================
Each builder fills a freshly constructed LiquidGrid (volume, velocity,
walls). The caller still runs `grid.post_initialise()` afterwards.

Remember y grows downwards: "bottom" rows have the largest y.
"""

import numpy as np

from .grid import LiquidGrid
from .solids import SolidObject, SolidObjectCollection


def half_full(grid: LiquidGrid, interface_volume: float = None):
    """
    Liquid fills the lower half (y >= Y/2).

    With `interface_volume`, the row just above the liquid is set to that
    partial volume, giving a free surface inside the cells.
    """
    Y = grid.y_size
    grid.volume[:, Y // 2:] = 1.0
    if interface_volume is not None and Y // 2 > 0:
        grid.volume[:, Y // 2 - 1] = interface_volume


def two_chambers(grid: LiquidGrid, column: int = None):
    """A full grid split in two by a solid wall column."""
    X = grid.x_size
    column = X // 2 if column is None else column
    grid.volume[:, :] = 1.0
    for y in range(grid.y_size):
        grid.set_solid(column, y, True)
    grid.volume[column, :] = 0.0


def dam_break(grid: LiquidGrid, width_fraction: float = 0.3, height_fraction: float = 0.7):
    """A block of liquid against the left wall, ready to collapse."""
    X, Y = grid.x_size, grid.y_size
    width = max(1, int(round(X * width_fraction)))
    height = max(1, int(round(Y * height_fraction)))
    grid.volume[:width, Y - height:] = 1.0


def random_tank(grid: LiquidGrid, empty_rows: int = 5, max_speed: float = 5.0, seed: int = None):
    """
    Full tank below the first `empty_rows` rows, stirred with random
    velocities in [-max_speed, max_speed]. post_initialise() removes the
    divergence the random field starts with.
    """
    rng = np.random.default_rng(seed)
    grid.volume[:, empty_rows:] = 1.0
    grid.u[:, empty_rows:] = rng.uniform(-max_speed, max_speed, grid.u[:, empty_rows:].shape)
    grid.v[:, empty_rows + 1:] = rng.uniform(-max_speed, max_speed, grid.v[:, empty_rows + 1:].shape)


def floating_box(grid: LiquidGrid, size: int = 3, density: float = 0.5) -> SolidObjectCollection:
    """Half-full tank with a light box dropped in from above the surface."""
    half_full(grid)
    X, Y = grid.x_size, grid.y_size
    x0 = X // 2 - size // 2
    y0 = max(0, Y // 2 - size - 1)
    cells = [(x0 + i, y0 + j) for i in range(size) for j in range(size)]

    solids = SolidObjectCollection(grid)
    solids.add(SolidObject.from_cells(cells, density=density))
    return solids


SCENES = {
    "half_full": half_full,
    "two_chambers": two_chambers,
    "dam_break": dam_break,
    "random_tank": random_tank,
    "floating_box": floating_box,
}
