"""Tests for movable solid objects and their collection."""

import pytest

from liquid import CellSolidKind, LiquidGrid, SolidObject, SolidObjectCollection


class TestSolidObject:
    def test_needs_cells(self):
        with pytest.raises(ValueError):
            SolidObject([])

    def test_mass_and_rounding(self):
        box = SolidObject.from_cells([(0, 0), (1, 0)], density=0.5)
        assert box.mass == pytest.approx(1.0)

        box.offset_x, box.offset_y = 0.49, -0.5
        assert box.cell_offset() == (0, 0)
        box.offset_x, box.offset_y = 0.5, -0.51
        assert box.cell_offset() == (1, -1)
        assert box.footprint() == [(1, -1), (2, -1)]

    def test_write_and_erase(self):
        grid = LiquidGrid(4, 4)
        box = SolidObject([(1, 1), (2, 1)])

        box.write_to_grid(grid)
        assert grid.get_solid(1, 1) == CellSolidKind.OBJECT
        assert grid.get_solid(2, 1) == CellSolidKind.OBJECT

        box.erase_from_grid(grid)
        assert not grid.solid_mask.any()

    def test_walls_are_never_touched(self):
        grid = LiquidGrid(4, 4)
        grid.set_solid(1, 1, True)
        box = SolidObject([(1, 1), (2, 1)])

        box.write_to_grid(grid)
        assert grid.get_solid(1, 1) == CellSolidKind.WALL

        box.erase_from_grid(grid)
        assert grid.get_solid(1, 1) == CellSolidKind.WALL
        assert grid.get_solid(2, 1) == CellSolidKind.NONE

    def test_cells_outside_grid_are_ignored(self):
        grid = LiquidGrid(3, 3)
        box = SolidObject([(2, 2), (3, 2), (2, 3)])

        box.write_to_grid(grid)
        box.apply_forces(grid, 0.1)

        assert int(grid.solid_mask.sum()) == 1

    def test_pressure_pushes_object(self):
        grid = LiquidGrid(3, 3)
        grid.force_pressure[1, 2] = 2.0  # left of cell (1, 1)
        box = SolidObject([(1, 1)])

        box.apply_forces(grid, 0.5)

        assert box.velocity_x == pytest.approx(1.0)
        assert box.velocity_y == pytest.approx(0.0)


class TestCollection:
    def test_falls_under_gravity(self):
        grid = LiquidGrid(6, 10, external_force_y=1.0)
        solids = SolidObjectCollection(grid)
        solids.add(SolidObject([(2, 1)]))
        assert grid.get_solid(2, 1) == CellSolidKind.OBJECT

        solids.update_all(0.5)
        assert grid.get_solid(2, 1) == CellSolidKind.OBJECT

        solids.update_all(0.5)
        assert grid.get_solid(2, 1) == CellSolidKind.NONE
        assert grid.get_solid(2, 2) == CellSolidKind.OBJECT

    def test_first_writer_keeps_shared_cell(self):
        grid = LiquidGrid(4, 4)
        solids = SolidObjectCollection(grid)
        first = SolidObject([(1, 1)])
        second = SolidObject([(0, 1)])
        solids.add(first)
        solids.add(second)
        second.velocity_x = 1.0          # slides onto the first object

        solids.update_all(1.0)
        assert int(grid.solid_mask.sum()) == 1
        assert grid.get_solid(1, 1) == CellSolidKind.OBJECT

        first.velocity_x = 2.0
        solids.update_all(1.0)
        assert grid.get_solid(1, 1) == CellSolidKind.NONE
        assert grid.get_solid(2, 1) == CellSolidKind.OBJECT
        assert grid.get_solid(3, 1) == CellSolidKind.OBJECT

    def test_clear(self):
        grid = LiquidGrid(4, 4)
        grid.set_solid(0, 0, True)
        solids = SolidObjectCollection(grid)
        solids.add(SolidObject([(2, 2)]))
        assert len(solids) == 1

        solids.clear()

        assert len(solids) == 0
        assert list(solids) == []
        assert grid.get_solid(2, 2) == CellSolidKind.NONE
        assert grid.get_solid(0, 0) == CellSolidKind.WALL


def submerged_box(iterations):
    """12×12 tank full from row 4 down with a light 2×2 box under the surface."""
    grid = LiquidGrid(12, 12, external_force_y=9.8, solver_iterations=iterations)
    grid.volume[:, 4:] = 1.0
    solids = SolidObjectCollection(grid)
    box = SolidObject([(5, 6), (6, 6), (5, 7), (6, 7)], density=0.5)
    solids.add(box)
    grid.post_initialise()
    grid.step(0.05)
    return grid, box


class TestBuoyancy:
    @pytest.mark.parametrize("iterations", [20, 2000])
    def test_light_box_is_pushed_up_harder_than_its_weight(self, iterations):
        grid, box = submerged_box(iterations)
        weight = grid.external_force_y * box.mass

        fy = sum(grid.pressure_force_on_cell(x, y)[1] for x, y in box.footprint())

        assert -fy > weight

    def test_sideways_loads_cancel(self):
        grid, box = submerged_box(2000)

        fx = sum(grid.pressure_force_on_cell(x, y)[0] for x, y in box.footprint())

        assert fx == pytest.approx(0.0, abs=1e-3)

    def test_light_box_accelerates_upwards(self):
        grid, box = submerged_box(20)

        box.apply_forces(grid, 0.05)

        assert box.velocity_y < 0.0
