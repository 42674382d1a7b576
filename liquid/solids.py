"""
solids.py — Movable Rigid Obstacles
====================================
A SolidObject is a fixed set of cells (offsets from its own reference
point) that floats, sinks or gets pushed around by the liquid.

Per step (SolidObjectCollection.update_all):
  1. Every object erases its cells from the grid's solid mask
  2. Every object sums the pressure load on its cells plus its weight
     (external force × density), then integrates velocity and position
  3. Every object writes its footprint back, rounded to whole cells,
     claiming only cells no other solid already holds

Translation only: there is no rotation.
"""

import logging
import math

from .cells import CellSolidKind

log = logging.getLogger(__name__)


class SolidObject:
    """
    Usage:
        box = SolidObject.from_cells([(5, 5), (6, 5), (5, 6), (6, 6)], density=0.5)
        solids = SolidObjectCollection(grid)
        solids.add(box)
    """

    def __init__(self, cells, density: float = 1.0):
        if not cells:
            raise ValueError("A SolidObject needs at least one cell")
        self.cells = tuple((int(x), int(y)) for x, y in cells)
        self.density = density
        self.offset_x = 0.0
        self.offset_y = 0.0
        self.velocity_x = 0.0
        self.velocity_y = 0.0

    @classmethod
    def from_cells(cls, cells, density: float = 1.0) -> "SolidObject":
        return cls(cells, density=density)

    @property
    def mass(self) -> float:
        return self.density * len(self.cells)

    def cell_offset(self) -> tuple:
        """Current offset rounded to the nearest whole cell."""
        return math.floor(self.offset_x + 0.5), math.floor(self.offset_y + 0.5)

    def footprint(self):
        """Grid cells covered right now (may fall outside the grid)."""
        ox, oy = self.cell_offset()
        return [(x + ox, y + oy) for x, y in self.cells]

    def apply_forces(self, grid, dt: float):
        """Integrate velocity from pressure loads and the external force."""
        total_fx = 0.0
        total_fy = 0.0
        for gx, gy in self.footprint():
            if 0 <= gx < grid.x_size and 0 <= gy < grid.y_size:
                fx, fy = grid.pressure_force_on_cell(gx, gy)
                total_fx += fx
                total_fy += fy
            total_fx += grid.external_force_x * self.density
            total_fy += grid.external_force_y * self.density

        self.velocity_x += dt * total_fx / self.mass
        self.velocity_y += dt * total_fy / self.mass

    def move(self, dt: float):
        self.offset_x += dt * self.velocity_x
        self.offset_y += dt * self.velocity_y

    def write_to_grid(self, grid):
        self._update_grid(grid, CellSolidKind.NONE, CellSolidKind.OBJECT)

    def erase_from_grid(self, grid):
        self._update_grid(grid, CellSolidKind.OBJECT, CellSolidKind.NONE)

    def _update_grid(self, grid, test: CellSolidKind, new: CellSolidKind):
        for gx, gy in self.footprint():
            if 0 <= gx < grid.x_size and 0 <= gy < grid.y_size:
                if grid.get_solid(gx, gy) == test:
                    grid.set_solid(gx, gy, new)

    def __repr__(self):
        return (f"SolidObject(cells={len(self.cells)}, density={self.density}, "
                f"offset=({self.offset_x:.2f}, {self.offset_y:.2f}), "
                f"velocity=({self.velocity_x:.2f}, {self.velocity_y:.2f}))")


class SolidObjectCollection:
    """All moving solids on one grid, updated together each step."""

    def __init__(self, grid):
        self.grid = grid
        self.objects = []

    def add(self, obj: SolidObject):
        self.objects.append(obj)
        obj.write_to_grid(self.grid)
        log.info("Added %r", obj)

    def update_all(self, dt: float):
        for obj in self.objects:
            obj.erase_from_grid(self.grid)

        for obj in self.objects:
            obj.apply_forces(self.grid, dt)
            obj.move(dt)

        for obj in self.objects:
            obj.write_to_grid(self.grid)

    def clear(self):
        for obj in self.objects:
            obj.erase_from_grid(self.grid)
        self.objects.clear()

    def __len__(self):
        return len(self.objects)

    def __iter__(self):
        return iter(self.objects)
