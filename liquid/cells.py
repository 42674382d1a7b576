"""
cells.py — Cell Classification
===============================
Every step the solver needs to know, per cell:

  1. Is it part of the pressure domain?  (only completely full cells are)
  2. Which of its four sides touch a wall? (solid neighbour or grid edge)
  3. Where inside the cell does a partial volume sit?

The third point is the volume-of-fluid trick. A half-full cell is drawn
as a rectangle hugging one side of the cell, and that side is chosen by
looking at which neighbour holds the most liquid:

  ┌──────────┐
  │          │   volume = 0.4, fullest neighbour below
  │▓▓▓▓▓▓▓▓▓▓│   → y_bias = POSITIVE, x_bias = ALL
  └──────────┘

The bias is kept per axis so the flux code can ask "is the liquid on the
downstream side of this face?" without caring which axis it is on.
"""

from dataclasses import dataclass
from enum import IntEnum

import numpy as np


class Bias(IntEnum):
    """Where the liquid sits along one axis of a cell."""
    NONE = 0        # no liquid
    ALL = 1         # spans the whole axis
    NEGATIVE = 2    # hugs the low-index side (left / top)
    POSITIVE = 3    # hugs the high-index side (right / bottom)


class Side(IntEnum):
    NONE = 0
    ALL = 1
    LEFT = 2
    RIGHT = 3
    TOP = 4
    BOTTOM = 5


class CellSolidKind(IntEnum):
    NONE = 0
    WALL = 1      # static obstacle, painted in by the caller
    OBJECT = 2    # claimed by a moving SolidObject


@dataclass(frozen=True)
class CellFlag:
    """Classification of a single cell."""
    in_domain: bool
    wall_left: bool
    wall_right: bool
    wall_top: bool
    wall_bottom: bool
    x_bias: Bias
    y_bias: Bias

    @property
    def side(self) -> Side:
        if self.x_bias == Bias.NONE:
            return Side.NONE
        if self.x_bias == Bias.NEGATIVE:
            return Side.LEFT
        if self.x_bias == Bias.POSITIVE:
            return Side.RIGHT
        if self.y_bias == Bias.NEGATIVE:
            return Side.TOP
        if self.y_bias == Bias.POSITIVE:
            return Side.BOTTOM
        return Side.ALL

    def liquid_rect(self, volume: float) -> tuple:
        """
        Rectangle (x, y, width, height) occupied by liquid, in cell units.

        A partial rectangle hugs its side and spans the full other axis.
        """
        vol = min(1.0, max(0.0, float(volume)))
        side = self.side
        if side == Side.NONE:
            return (0.0, 0.0, 0.0, 0.0)
        if side == Side.LEFT:
            return (0.0, 0.0, vol, 1.0)
        if side == Side.RIGHT:
            return (1.0 - vol, 0.0, vol, 1.0)
        if side == Side.TOP:
            return (0.0, 0.0, 1.0, vol)
        if side == Side.BOTTOM:
            return (0.0, 1.0 - vol, 1.0, vol)
        return (0.0, 0.0, 1.0, 1.0)


@dataclass
class CellFlags:
    """
    Classification of the whole grid, one (X, Y) array per field.

    Use `at(x, y)` to get the per-cell `CellFlag` record.
    """
    in_domain: np.ndarray
    wall_left: np.ndarray
    wall_right: np.ndarray
    wall_top: np.ndarray
    wall_bottom: np.ndarray
    x_bias: np.ndarray
    y_bias: np.ndarray

    @classmethod
    def empty(cls, x_size: int, y_size: int) -> "CellFlags":
        shape = (x_size, y_size)
        return cls(
            in_domain=np.zeros(shape, dtype=bool),
            wall_left=np.zeros(shape, dtype=bool),
            wall_right=np.zeros(shape, dtype=bool),
            wall_top=np.zeros(shape, dtype=bool),
            wall_bottom=np.zeros(shape, dtype=bool),
            x_bias=np.full(shape, Bias.NONE, dtype=np.int8),
            y_bias=np.full(shape, Bias.NONE, dtype=np.int8),
        )

    @property
    def shape(self) -> tuple:
        return self.in_domain.shape

    def at(self, x: int, y: int) -> CellFlag:
        return CellFlag(
            in_domain=bool(self.in_domain[x, y]),
            wall_left=bool(self.wall_left[x, y]),
            wall_right=bool(self.wall_right[x, y]),
            wall_top=bool(self.wall_top[x, y]),
            wall_bottom=bool(self.wall_bottom[x, y]),
            x_bias=Bias(int(self.x_bias[x, y])),
            y_bias=Bias(int(self.y_bias[x, y])),
        )


def _neighbour_volumes(volume: np.ndarray, solid: np.ndarray):
    """Volumes of the left/right/top/bottom neighbours, 0 outside or solid."""
    vol = np.where(solid, 0.0, volume).astype(volume.dtype)
    padded = np.pad(vol, 1, mode="constant", constant_values=0.0)
    left = padded[:-2, 1:-1]
    right = padded[2:, 1:-1]
    top = padded[1:-1, :-2]
    bottom = padded[1:-1, 2:]
    return left, right, top, bottom


def classify_cells(volume: np.ndarray, solid: np.ndarray, out: CellFlags = None) -> CellFlags:
    """
    Derive CellFlags from the volume field and the boolean solid mask.

    Partial cells pick the fullest neighbour; ties keep the earlier
    candidate in the order left, right, top, bottom, so a partial cell
    with no liquid around it ends up biased left.
    """
    if volume.shape != solid.shape:
        raise ValueError(f"volume {volume.shape} and solid {solid.shape} differ in shape")
    X, Y = volume.shape
    flags = out if out is not None else CellFlags.empty(X, Y)

    empty = solid | (volume <= 0.0)
    full = ~empty & (volume >= 1.0)
    partial = ~empty & ~full

    # ── Pick the fullest neighbour (strict > keeps the earlier winner) ────
    left, right, top, bottom = _neighbour_volumes(volume, solid)
    best = np.full((X, Y), Side.LEFT, dtype=np.int8)
    best_vol = left.copy()
    for side, nvol in ((Side.RIGHT, right), (Side.TOP, top), (Side.BOTTOM, bottom)):
        better = nvol > best_vol
        best[better] = side
        best_vol[better] = nvol[better]

    x_bias = np.full((X, Y), Bias.ALL, dtype=np.int8)
    y_bias = np.full((X, Y), Bias.ALL, dtype=np.int8)
    x_bias[partial & (best == Side.LEFT)] = Bias.NEGATIVE
    x_bias[partial & (best == Side.RIGHT)] = Bias.POSITIVE
    y_bias[partial & (best == Side.TOP)] = Bias.NEGATIVE
    y_bias[partial & (best == Side.BOTTOM)] = Bias.POSITIVE
    x_bias[empty] = Bias.NONE
    y_bias[empty] = Bias.NONE

    # ── Walls: solid neighbour or the edge of the grid ────────────────────
    walls = np.pad(solid, 1, mode="constant", constant_values=True)

    flags.in_domain[:] = full
    flags.wall_left[:] = walls[:-2, 1:-1]
    flags.wall_right[:] = walls[2:, 1:-1]
    flags.wall_top[:] = walls[1:-1, :-2]
    flags.wall_bottom[:] = walls[1:-1, 2:]
    flags.x_bias[:] = x_bias
    flags.y_bias[:] = y_bias
    return flags
