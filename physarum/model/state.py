"""State snapshot dataclasses for the Physarum simulation."""

from dataclasses import dataclass
from typing import List, Sequence, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from .grid import Grid


@dataclass(frozen=True)
class Agent:
    """Immutable view of one agent's state."""
    x: float
    y: float
    angle: float
    population_id: int


@dataclass(frozen=True)
class FieldStats:
    """Summary of one population's trail at a given iteration."""
    iteration: int
    population: int
    mean: float
    maximum: float
    saturation: float  # quantile used as the rendering white point


def field_stats(iteration: int, grids: Sequence["Grid"],
                quantile: float = 0.999) -> List[FieldStats]:
    """Compute FieldStats for every grid."""
    return [
        FieldStats(
            iteration=iteration,
            population=i,
            mean=float(grid.field.mean()),
            maximum=float(grid.field.max()),
            saturation=grid.quantile(quantile)
        )
        for i, grid in enumerate(grids)
    ]


@dataclass(frozen=True)
class FieldSnapshot:
    """Owned copy of every population's trail at a given iteration."""
    iteration: int
    grids: Tuple["Grid", ...]
