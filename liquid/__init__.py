"""
liquid/ — 2-D Free-Surface Liquid Simulation
=============================================
Exports the main interfaces.

Drivers import: LiquidSimulation (locked stepping + solids + metrics)
Embedders import: LiquidGrid → set_* / post_initialise() / step(dt)
Viewers read: LiquidGrid[x, y] → CellState
"""

from .cells import Bias, CellFlag, CellFlags, CellSolidKind, Side, classify_cells
from .grid import CellState, LiquidGrid
from .simulation import LiquidSimulation
from .solids import SolidObject, SolidObjectCollection

__all__ = [
    "Bias", "CellFlag", "CellFlags", "CellSolidKind", "Side", "classify_cells",
    "CellState", "LiquidGrid", "LiquidSimulation",
    "SolidObject", "SolidObjectCollection",
]
