"""Pytest configuration and fixtures for the liquid solver tests."""

import numpy as np
import pytest

from liquid import LiquidGrid


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def full_box():
    """An 8×8 closed box completely full of liquid, at rest."""
    grid = LiquidGrid(8, 8)
    grid.volume[:] = 1.0
    return grid


@pytest.fixture
def stirred_box(rng):
    """A 12×12 full box with random face velocities."""
    grid = LiquidGrid(12, 12, solver_iterations=100)
    grid.volume[:] = 1.0
    grid.u[:] = rng.uniform(-1.0, 1.0, grid.u.shape)
    grid.v[:] = rng.uniform(-1.0, 1.0, grid.v.shape)
    return grid
