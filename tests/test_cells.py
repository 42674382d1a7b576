"""Tests for cell classification."""

import numpy as np
import pytest

from liquid.cells import Bias, CellFlag, Side, classify_cells


def classify(volume, solid=None):
    volume = np.asarray(volume, dtype=np.float32)
    if solid is None:
        solid = np.zeros(volume.shape, dtype=bool)
    return classify_cells(volume, np.asarray(solid, dtype=bool))


class TestVolumeStates:
    def test_empty_full_and_solid(self):
        vol = np.zeros((3, 3))
        vol[0, 0] = 1.0
        vol[1, 1] = 1.0
        solid = np.zeros((3, 3), dtype=bool)
        solid[1, 1] = True

        flags = classify(vol, solid)

        assert flags.at(0, 0).in_domain
        assert flags.at(0, 0).side == Side.ALL
        assert not flags.at(1, 1).in_domain
        assert flags.at(1, 1).side == Side.NONE
        assert flags.at(2, 2).side == Side.NONE

    def test_overfull_cell_is_in_domain(self):
        flags = classify([[1.4]])
        assert flags.at(0, 0).in_domain

    def test_negative_volume_is_empty(self):
        flags = classify([[-0.1]])
        assert flags.at(0, 0).x_bias == Bias.NONE


class TestPartialBias:
    def test_isolated_partial_defaults_left(self):
        vol = np.zeros((3, 3))
        vol[1, 1] = 0.5

        flag = classify(vol).at(1, 1)

        assert not flag.in_domain
        assert flag.x_bias == Bias.NEGATIVE
        assert flag.y_bias == Bias.ALL
        assert flag.side == Side.LEFT

    def test_fullest_neighbour_below(self):
        vol = np.zeros((3, 3))
        vol[1, 1] = 0.5
        vol[1, 2] = 1.0
        vol[0, 1] = 0.3

        flag = classify(vol).at(1, 1)

        assert flag.side == Side.BOTTOM
        assert flag.x_bias == Bias.ALL
        assert flag.y_bias == Bias.POSITIVE

    def test_fullest_neighbour_above(self):
        vol = np.zeros((3, 3))
        vol[1, 1] = 0.5
        vol[1, 0] = 0.8

        assert classify(vol).at(1, 1).side == Side.TOP

    def test_tie_keeps_left_over_right(self):
        vol = np.zeros((3, 3))
        vol[1, 1] = 0.5
        vol[0, 1] = 1.0
        vol[2, 1] = 1.0

        assert classify(vol).at(1, 1).side == Side.LEFT

    def test_tie_keeps_right_over_top_and_bottom(self):
        vol = np.zeros((3, 3))
        vol[1, 1] = 0.5
        vol[2, 1] = 0.7
        vol[1, 0] = 0.7
        vol[1, 2] = 0.7

        flag = classify(vol).at(1, 1)

        assert flag.side == Side.RIGHT
        assert flag.x_bias == Bias.POSITIVE

    def test_solid_neighbour_counts_as_empty(self):
        vol = np.zeros((3, 3))
        vol[1, 1] = 0.5
        vol[2, 1] = 0.3
        vol[1, 2] = 1.0
        solid = np.zeros((3, 3), dtype=bool)
        solid[1, 2] = True

        assert classify(vol, solid).at(1, 1).side == Side.RIGHT


class TestWalls:
    def test_grid_edges_are_walls(self):
        flags = classify(np.ones((3, 3)))

        corner = flags.at(0, 0)
        assert corner.wall_left and corner.wall_top
        assert not corner.wall_right and not corner.wall_bottom

        centre = flags.at(1, 1)
        assert not any([centre.wall_left, centre.wall_right, centre.wall_top, centre.wall_bottom])

    def test_solid_neighbours_are_walls(self):
        solid = np.zeros((3, 3), dtype=bool)
        solid[1, 0] = True

        flags = classify(np.ones((3, 3)), solid)

        assert flags.at(0, 0).wall_right
        assert flags.at(2, 0).wall_left
        assert flags.at(1, 1).wall_top

    def test_reuses_output_flags(self):
        flags = classify(np.ones((2, 2)))
        again = classify_cells(np.zeros((2, 2), dtype=np.float32), np.zeros((2, 2), dtype=bool), out=flags)

        assert again is flags
        assert not flags.in_domain.any()

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            classify_cells(np.zeros((2, 2)), np.zeros((3, 2), dtype=bool))


class TestLiquidRect:
    @pytest.mark.parametrize("x_bias, y_bias, expected", [
        (Bias.NONE, Bias.NONE, (0.0, 0.0, 0.0, 0.0)),
        (Bias.ALL, Bias.ALL, (0.0, 0.0, 1.0, 1.0)),
        (Bias.NEGATIVE, Bias.ALL, (0.0, 0.0, 0.25, 1.0)),
        (Bias.POSITIVE, Bias.ALL, (0.75, 0.0, 0.25, 1.0)),
        (Bias.ALL, Bias.NEGATIVE, (0.0, 0.0, 1.0, 0.25)),
        (Bias.ALL, Bias.POSITIVE, (0.0, 0.75, 1.0, 0.25)),
    ])
    def test_rect_hugs_side(self, x_bias, y_bias, expected):
        flag = CellFlag(False, False, False, False, False, x_bias, y_bias)
        assert flag.liquid_rect(0.25) == pytest.approx(expected)

    def test_rect_clamps_volume(self):
        flag = CellFlag(False, False, False, False, False, Bias.NEGATIVE, Bias.ALL)
        assert flag.liquid_rect(1.5) == pytest.approx((0.0, 0.0, 1.0, 1.0))
