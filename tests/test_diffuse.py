"""Tests for implicit viscous diffusion."""

import numpy as np
import pytest

from liquid import LiquidGrid
from liquid.diffuse import diffuse, diffuse_velocity
from liquid.fields import DoubleBuffer


class TestDiffuse:
    def test_constant_field_is_unchanged(self):
        phi0 = np.full((6, 5), 2.5, dtype=np.float32)

        result = diffuse(phi0, a=0.7, iterations=10)

        assert np.allclose(result, 2.5)

    def test_single_sweep_matches_jacobi_update(self):
        a = 0.5
        b = 1.0 / (1.0 + 4.0 * a)
        phi0 = np.zeros((5, 5), dtype=np.float32)
        phi0[2, 2] = 1.0

        result = diffuse(phi0, a, iterations=1)

        assert result[2, 2] == pytest.approx(b * 1.0)
        assert result[1, 2] == pytest.approx(b * a * 1.0)
        assert result[2, 3] == pytest.approx(b * a * 1.0)
        assert result[1, 1] == pytest.approx(0.0)

    def test_edges_copy_nearest_interior(self, rng):
        phi0 = rng.uniform(-1.0, 1.0, (6, 7)).astype(np.float32)

        result = diffuse(phi0, a=0.3, iterations=3)

        assert np.array_equal(result[0, 1:-1], result[1, 1:-1])
        assert np.array_equal(result[-1, 1:-1], result[-2, 1:-1])
        assert np.array_equal(result[:, 0], result[:, 1])
        assert np.array_equal(result[:, -1], result[:, -2])

    def test_spreads_and_keeps_sign(self):
        phi0 = np.zeros((7, 7), dtype=np.float32)
        phi0[3, 3] = 1.0

        result = diffuse(phi0, a=0.5, iterations=20)

        assert 0.0 < result[3, 3] < 1.0
        assert result[3, 5] > 0.0
        assert np.all(result >= 0.0)

    def test_narrow_field_is_copied(self):
        phi0 = np.arange(6.0, dtype=np.float32).reshape(2, 3)

        result = diffuse(phi0, a=1.0, iterations=5)

        assert np.array_equal(result, phi0)
        assert result is not phi0

    def test_uses_given_buffers(self):
        phi0 = np.ones((4, 4), dtype=np.float32)
        buffers = DoubleBuffer((4, 4))

        result = diffuse(phi0, a=0.2, iterations=3, buffers=buffers)

        assert result is buffers.front

    def test_rejects_mismatched_buffers(self):
        with pytest.raises(ValueError):
            diffuse(np.zeros((4, 4)), 0.1, buffers=DoubleBuffer((4, 5)))


class TestDiffuseVelocity:
    def test_inviscid_leaves_velocity_alone(self, rng):
        grid = LiquidGrid(6, 6)
        grid.u[:] = rng.uniform(-1.0, 1.0, grid.u.shape)
        u_before, v_before = grid.u, grid.v
        u_values = grid.u.copy()

        diffuse_velocity(grid, 0.1)

        assert grid.u is u_before and grid.v is v_before
        assert np.array_equal(grid.u, u_values)

    def test_swaps_in_diffused_field(self, rng):
        grid = LiquidGrid(6, 6, viscosity=2.0, diffusion_iterations=4)
        grid.u[:] = rng.uniform(-1.0, 1.0, grid.u.shape)
        grid.v[:] = rng.uniform(-1.0, 1.0, grid.v.shape)
        u_before, v_before = grid.u, grid.v
        expected_u = diffuse(grid.u.copy(), 0.1 * 2.0, 4)
        expected_v = diffuse(grid.v.copy(), 0.1 * 2.0, 4)

        diffuse_velocity(grid, 0.1)

        assert grid.u is not u_before and grid.v is not v_before
        assert grid.u is grid.u_buffer.front
        assert np.allclose(grid.u, expected_u)
        assert np.allclose(grid.v, expected_v)

    def test_smooths_a_jump(self):
        grid = LiquidGrid(8, 8, viscosity=1.0)
        grid.u[4, :] = 1.0

        diffuse_velocity(grid, 0.5)

        assert grid.u[4, 3] < 1.0
        assert grid.u[3, 3] > 0.0
