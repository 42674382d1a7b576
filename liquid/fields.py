"""
fields.py — Stateless Field Kernels
====================================
Small operators shared by every other step of the solver.

Layout reminder (X × Y cells):
  - Cell-centred fields (volume, divergence) → shape (X, Y)
  - u lives on left/right faces             → shape (X+1, Y)
  - v lives on top/bottom faces             → shape (X, Y+1)
  - Pressure carries one ghost ring         → shape (X+2, Y+2)

With this layout divergence and gradient are exact discrete adjoints,
which is what makes the projection step well-posed.
"""

import numpy as np


def check_shapes(a: np.ndarray, b: np.ndarray, adjust: tuple = (0, 0)):
    """
    Raise ValueError unless b.shape == a.shape + adjust (per dimension).

    A mismatch means two kernels were wired to the wrong buffers, which
    is a programming error, so there is no recovery path.
    """
    if a.ndim != b.ndim:
        raise ValueError(f"Arrays have inconsistent ranks: {a.ndim} vs {b.ndim}")
    for dim, (na, nb, d) in enumerate(zip(a.shape, b.shape, adjust)):
        if na + d != nb:
            raise ValueError(
                f"Arrays have inconsistent lengths in dimension {dim}: "
                f"expected {na + d}, got {nb}"
            )


def divergence(u: np.ndarray, v: np.ndarray, out: np.ndarray = None) -> np.ndarray:
    """
    Cell-centred divergence of the staggered field (u, v).

      div[x, y] = u[x+1, y] - u[x, y] + v[x, y+1] - v[x, y]

    Returns: (X, Y) array (written into `out` when given).
    """
    X, Y = v.shape[0], u.shape[1]
    check_shapes(u, v, (-1, 1))
    if out is None:
        out = np.zeros((X, Y), dtype=u.dtype)
    check_shapes(u, out, (-1, 0))

    out[:] = (u[1:, :] - u[:-1, :]) + (v[:, 1:] - v[:, :-1])
    return out


def gradient(phi: np.ndarray, grad_x: np.ndarray, grad_y: np.ndarray):
    """
    Face-centred gradient of a ghost-padded cell field.

    phi has shape (X+2, Y+2); grad_x lands on u-faces (X+1, Y) and
    grad_y on v-faces (X, Y+1). Boundary faces use the ghost values.
    """
    check_shapes(phi, grad_x, (-1, -2))
    check_shapes(phi, grad_y, (-2, -1))

    grad_x[:] = phi[1:, 1:-1] - phi[:-1, 1:-1]
    grad_y[:] = phi[1:-1, 1:] - phi[1:-1, :-1]


def multiply_add(p: np.ndarray, factor: float, q: np.ndarray):
    """q += factor * p, in place."""
    check_shapes(p, q)
    q += factor * p


def copy(src: np.ndarray, dst: np.ndarray):
    check_shapes(src, dst)
    np.copyto(dst, src)


def clear(q: np.ndarray, value: float = 0.0):
    q[...] = value


class DoubleBuffer:
    """
    A front/back pair of equally shaped arrays.

    A pass reads `front`, writes `back`, then calls `swap()` so the
    result becomes the new front. Nothing is copied.
    """

    def __init__(self, shape: tuple, dtype=np.float32):
        self._buffers = [np.zeros(shape, dtype=dtype), np.zeros(shape, dtype=dtype)]
        self._parity = 0

    @property
    def front(self) -> np.ndarray:
        return self._buffers[self._parity]

    @property
    def back(self) -> np.ndarray:
        return self._buffers[1 - self._parity]

    @property
    def shape(self) -> tuple:
        return self.front.shape

    def swap(self):
        self._parity = 1 - self._parity
