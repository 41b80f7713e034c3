"""Toroidal trail grid for the Physarum simulation."""

from functools import lru_cache
from typing import Union

import numpy as np
from scipy.ndimage import convolve

from ..config import PopulationConfig

ArrayLike = Union[float, np.ndarray]


def wrap(values: ArrayLike, bound: float) -> np.ndarray:
    """
    Map values onto [0, bound) with toroidal modulo arithmetic.

    np.mod can round a tiny negative value up to exactly `bound`, so that
    case is folded back to 0.
    """
    wrapped = np.mod(values, bound)
    return np.where(wrapped >= bound, 0.0, wrapped)


def bilinear_sample(field: np.ndarray, x: ArrayLike, y: ArrayLike) -> np.ndarray:
    """
    Bilinearly interpolate `field` at continuous (x, y).

    Cell (i, j) holds the value at integer coordinate (x=i, y=j); both axes
    wrap, so interpolation between the last and first column is continuous.
    """
    height, width = field.shape
    x = wrap(np.asarray(x, dtype=np.float64), width)
    y = wrap(np.asarray(y, dtype=np.float64), height)

    x0 = np.floor(x)
    y0 = np.floor(y)
    fx = x - x0
    fy = y - y0

    x0 = x0.astype(np.intp) % width
    y0 = y0.astype(np.intp) % height
    x1 = (x0 + 1) % width
    y1 = (y0 + 1) % height

    top = (1 - fx) * field[y0, x0] + fx * field[y0, x1]
    bottom = (1 - fx) * field[y1, x0] + fx * field[y1, x1]
    return (1 - fy) * top + fy * bottom


@lru_cache(maxsize=8)
def _box_kernel(radius: int) -> np.ndarray:
    """Normalized (2r+1)x(2r+1) averaging kernel."""
    size = 2 * radius + 1
    kernel = np.full((size, size), 1.0 / (size * size), dtype=np.float64)
    kernel.setflags(write=False)
    return kernel


class Grid:
    """
    One population's trail field on a toroidal plane.

    Coordinate convention: (x, y) for API, [y, x] for array indexing.

    `field` is the primary trail, mutated by deposition and diffusion.
    `read_buffer` holds the combined sensing surface written by
    `combine()` once per iteration; agents only ever sample that.
    """

    def __init__(self, width: int, height: int, config: PopulationConfig):
        self.width = width
        self.height = height
        self.config = config

        self.field = np.zeros((height, width), dtype=np.float64)
        self.read_buffer = np.zeros((height, width), dtype=np.float64)

    def sample(self, x: ArrayLike, y: ArrayLike) -> np.ndarray:
        """Bilinear sample of the read buffer at wrapped coordinates."""
        return bilinear_sample(self.read_buffer, x, y)

    def cell_index(self, x: ArrayLike, y: ArrayLike):
        """Return (row, col) indices of the cell nearest the wrapped point."""
        col = np.rint(wrap(np.asarray(x, dtype=np.float64), self.width))
        row = np.rint(wrap(np.asarray(y, dtype=np.float64), self.height))
        return (row.astype(np.intp) % self.height,
                col.astype(np.intp) % self.width)

    def deposit(self, x: ArrayLike, y: ArrayLike) -> None:
        """
        Add the deposition amount at the nearest cell of every point.

        Uses unbuffered accumulation, so several points landing on the same
        cell add up exactly.
        """
        rows, cols = self.cell_index(x, y)
        np.add.at(self.field, (rows, cols), self.config.deposition_amount)

    def diffuse(self, diffusivity: int) -> None:
        """
        Box-blur the trail with radius `diffusivity`, then decay.

        Each cell becomes the mean of its (2r+1)x(2r+1) toroidal
        neighborhood, itself included. Radius 0 only decays.
        """
        if diffusivity > 0:
            self.field = convolve(self.field, _box_kernel(int(diffusivity)),
                                  mode='wrap')
        self.field *= self.config.decay_factor

    def quantile(self, q: float) -> float:
        """Value at quantile q of the trail distribution (linear interpolation)."""
        if not 0.0 <= q <= 1.0:
            raise ValueError(f"quantile must lie in [0, 1], got {q}")
        return float(np.quantile(self.field, q))

    def snapshot(self) -> "Grid":
        """Deep copy of this grid that shares no arrays with it."""
        copy = Grid(self.width, self.height, self.config)
        copy.field = self.field.copy()
        copy.read_buffer = self.read_buffer.copy()
        return copy

    def __repr__(self) -> str:
        return f"Grid({self.width}x{self.height}, config={self.config})"
