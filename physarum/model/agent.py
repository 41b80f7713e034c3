"""Physarum agents: sensing, steering and movement on a toroidal plane."""

import math
from typing import List, Tuple, Union

import numpy as np

from .grid import Grid, wrap
from .state import Agent

TAU = 2.0 * math.pi

STRAIGHT = 0
TURN_LEFT = -1
TURN_RIGHT = 1

_TURNS = np.array([TURN_LEFT, TURN_RIGHT], dtype=np.int8)


def pick_direction(center, left, right,
                   rng: np.random.Generator) -> Union[int, np.ndarray]:
    """
    Decide the turn for sensor readings (center, left, right).

    | condition                  | result             |
    |----------------------------|--------------------|
    | center beats both sides    | 0 (straight)       |
    | both sides beat center     | random -1 or +1    |
    | left < right               | +1 (toward right)  |
    | right < left               | -1 (toward left)   |
    | otherwise (left == right)  | 0                  |

    Accepts scalars or equally shaped arrays; scalars give an int back.
    """
    center, left, right = np.broadcast_arrays(
        np.asarray(center, dtype=np.float64),
        np.asarray(left, dtype=np.float64),
        np.asarray(right, dtype=np.float64),
    )
    random_turns = rng.choice(_TURNS, size=center.shape)
    direction = np.select(
        [
            (center > left) & (center > right),
            (center < left) & (center < right),
            left < right,
            right < left,
        ],
        [STRAIGHT, random_turns, TURN_RIGHT, TURN_LEFT],
        default=STRAIGHT,
    ).astype(np.int8)
    if direction.ndim == 0:
        return int(direction)
    return direction


class AgentSwarm:
    """
    All agents of a model, stored as parallel numpy arrays.

    Agents of one population are contiguous: population p owns indices
    [p * per_population, (p + 1) * per_population).
    """

    def __init__(self, x: np.ndarray, y: np.ndarray, angle: np.ndarray,
                 population_id: np.ndarray, per_population: int):
        self.x = x
        self.y = y
        self.angle = angle
        self.population_id = population_id
        self.per_population = per_population

    @classmethod
    def random(cls, width: int, height: int, n_populations: int,
               per_population: int, rng: np.random.Generator) -> "AgentSwarm":
        """Uniformly random positions and headings."""
        n = n_populations * per_population
        return cls(
            x=wrap(rng.random(n) * width, width),
            y=wrap(rng.random(n) * height, height),
            angle=wrap(rng.random(n) * TAU, TAU),
            population_id=np.repeat(np.arange(n_populations, dtype=np.intp),
                                    per_population),
            per_population=per_population,
        )

    def __len__(self) -> int:
        return len(self.x)

    def __getitem__(self, index: int) -> Agent:
        return Agent(x=float(self.x[index]), y=float(self.y[index]),
                     angle=float(self.angle[index]),
                     population_id=int(self.population_id[index]))

    def population_slice(self, population: int) -> slice:
        start = population * self.per_population
        return slice(start, start + self.per_population)

    def chunks(self, population: int, chunk_size: int) -> List[slice]:
        """Split one population's index range into work chunks."""
        span = self.population_slice(population)
        return [slice(start, min(start + chunk_size, span.stop))
                for start in range(span.start, span.stop, chunk_size)]

    def sense(self, grid: Grid, span: slice) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Sample the center, left and right sensors of agents in `span`."""
        config = grid.config
        x, y, angle = self.x[span], self.y[span], self.angle[span]
        distance = config.sensor_distance

        readings = []
        for offset in (0.0, -config.sensor_angle, config.sensor_angle):
            probe = angle + offset
            readings.append(grid.sample(x + np.cos(probe) * distance,
                                        y + np.sin(probe) * distance))
        center, left, right = readings
        return center, left, right

    def rotate_and_move(self, span: slice, direction: np.ndarray,
                        rotation_angle: float, step_distance: float,
                        width: int, height: int) -> None:
        """Turn by rotation_angle * direction, then step along the new heading."""
        angle = wrap(self.angle[span] + rotation_angle * direction, TAU)
        self.angle[span] = angle
        self.x[span] = wrap(self.x[span] + step_distance * np.cos(angle), width)
        self.y[span] = wrap(self.y[span] + step_distance * np.sin(angle), height)

    def steer(self, grid: Grid, span: slice, rng: np.random.Generator) -> None:
        """Sense, pick a direction and move every agent in `span`."""
        center, left, right = self.sense(grid, span)
        direction = pick_direction(center, left, right, rng)
        self.rotate_and_move(span, direction, grid.config.rotation_angle,
                             grid.config.step_distance, grid.width, grid.height)

    def __repr__(self) -> str:
        return (f"AgentSwarm(n={len(self)}, "
                f"per_population={self.per_population})")
