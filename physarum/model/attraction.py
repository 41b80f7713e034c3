"""Attraction table and cross-population field combination."""

from typing import Sequence

import numpy as np

from ..config import AttractionConfig
from .grid import Grid


def random_attraction_table(n_populations: int, config: AttractionConfig,
                            rng: np.random.Generator) -> np.ndarray:
    """
    Build the square attraction table.

    Diagonal entries (self-attraction) come from N(attraction_mean,
    attraction_std), off-diagonal entries from N(repulsion_mean,
    repulsion_std). An explicit table in the config is used as-is.
    """
    if config.table is not None:
        table = np.array(config.table, dtype=np.float64)
    else:
        table = rng.normal(config.repulsion_mean, config.repulsion_std,
                           size=(n_populations, n_populations))
        np.fill_diagonal(table, rng.normal(config.attraction_mean,
                                           config.attraction_std,
                                           size=n_populations))
    table.setflags(write=False)
    return table


def combine(grids: Sequence[Grid], attraction_table: np.ndarray) -> None:
    """
    Refresh every grid's read buffer from all primary fields.

    read_buffer[i] = sum_j attraction_table[i][j] * field[j], elementwise.
    """
    if attraction_table.shape != (len(grids), len(grids)):
        raise ValueError(
            f"attraction table shape {attraction_table.shape} does not match "
            f"{len(grids)} grids")
    fields = np.stack([grid.field for grid in grids])
    combined = np.tensordot(attraction_table, fields, axes=1)
    for grid, buffer in zip(grids, combined):
        grid.read_buffer = buffer
