"""Simulation engine for the Physarum transport network."""

import logging
import math
import os
import time
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Callable, List, Optional, TYPE_CHECKING

import numpy as np

from .grid import Grid
from .agent import AgentSwarm
from .attraction import random_attraction_table, combine
from .state import Agent, FieldSnapshot, FieldStats, field_stats
from ..config import PopulationConfig

if TYPE_CHECKING:
    from ..config import SimulationConfig

logger = logging.getLogger(__name__)


class ModelPhase(Enum):
    """Lifecycle of a Model."""
    READY = "ready"
    STEPPING = "stepping"
    FINALIZED = "finalized"


class Model:
    """
    Orchestrates the fixed-point iteration loop.

    One step runs, strictly in order:
    1. Combine: refresh every grid's read buffer from all primary fields
    2. Sense + steer: parallel over agent chunks, each chunk only reads its
       population's read buffer and writes its own slice of agent state
    3. Deposit: single-threaded accumulation into the primary fields
    4. Diffuse + decay: parallel over grids
    """

    def __init__(self, config: "SimulationConfig"):
        config.validate()
        self.config = config
        self.width = config.grid.width
        self.height = config.grid.height
        self.diffusivity = config.diffusivity
        self.iteration = 0
        self.phase = ModelPhase.READY

        self.seed_sequence = np.random.SeedSequence(config.seed)
        if config.seed is None:
            logger.info("No seed given, using entropy %d",
                        self.seed_sequence.entropy)
        rng = np.random.default_rng(self.seed_sequence)

        n_populations = config.populations
        per_population = math.ceil(config.particles / n_populations)

        self.attraction_table = random_attraction_table(
            n_populations, config.attraction, rng)

        self.grids: List[Grid] = [
            Grid(self.width, self.height, self._population_config(i, rng))
            for i in range(n_populations)
        ]

        self.agents = AgentSwarm.random(
            self.width, self.height, n_populations, per_population, rng)

        self._executor = ThreadPoolExecutor(
            max_workers=config.workers or os.cpu_count() or 1,
            thread_name_prefix="physarum")

        logger.info("Model: %dx%d grid, %d populations, %d agents "
                    "(%d requested), diffusivity %d",
                    self.width, self.height, n_populations, len(self.agents),
                    config.particles, self.diffusivity)
        for line in self.describe().splitlines():
            logger.info(line)

    def _population_config(self, index: int,
                           rng: np.random.Generator) -> PopulationConfig:
        """Explicit config for this population if given, else a random one."""
        if index < len(self.config.population_configs):
            return self.config.population_configs[index]
        return PopulationConfig.random(rng, self.config.ranges)

    def _step_rng(self, start: int) -> np.random.Generator:
        """Generator for the agent chunk starting at `start` this iteration."""
        return np.random.default_rng(
            [self.seed_sequence.entropy, self.iteration, start])

    def _sense_and_steer(self) -> None:
        futures = []
        for population, grid in enumerate(self.grids):
            for span in self.agents.chunks(population, self.config.chunk_size):
                futures.append(self._executor.submit(
                    self.agents.steer, grid, span, self._step_rng(span.start)))
        for future in futures:
            future.result()

    def _deposit(self) -> None:
        for population, grid in enumerate(self.grids):
            span = self.agents.population_slice(population)
            grid.deposit(self.agents.x[span], self.agents.y[span])

    def _diffuse(self) -> None:
        diffusivity = self.diffusivity
        futures = [self._executor.submit(grid.diffuse, diffusivity)
                   for grid in self.grids]
        for future in futures:
            future.result()

    def step(self) -> None:
        """Execute one iteration."""
        if self.phase is ModelPhase.FINALIZED:
            raise RuntimeError("cannot step a finalized model")
        self.phase = ModelPhase.STEPPING
        started = time.perf_counter()

        combine(self.grids, self.attraction_table)
        self._sense_and_steer()
        self._deposit()
        self._diffuse()

        self.iteration += 1
        logger.debug("Iteration %d took %.4fs", self.iteration,
                     time.perf_counter() - started)

    def run(self, iterations: int,
            callback: Optional[Callable[["Model"], None]] = None) -> None:
        """Step `iterations` times, calling `callback` after each step, then finalize."""
        for _ in range(iterations):
            self.step()
            if callback is not None:
                callback(self)
        self.finalize()

    def finalize(self) -> None:
        """Freeze the fields for rendering; no further steps are allowed."""
        self.phase = ModelPhase.FINALIZED

    def is_finished(self) -> bool:
        return (self.phase is ModelPhase.FINALIZED
                or self.iteration >= self.config.iterations)

    def agent(self, index: int) -> Agent:
        return self.agents[index]

    def snapshot(self) -> FieldSnapshot:
        """Owned copy of all fields at the current iteration."""
        return FieldSnapshot(
            iteration=self.iteration,
            grids=tuple(grid.snapshot() for grid in self.grids)
        )

    def stats(self, quantile: float = 0.999) -> List[FieldStats]:
        return field_stats(self.iteration, self.grids, quantile)

    def describe(self) -> str:
        """Population configurations and attraction table, one per line."""
        lines = [f"Grid {i}: {grid.config}" for i, grid in enumerate(self.grids)]
        lines.append("Attraction table:")
        for row in self.attraction_table:
            lines.append("  [" + ", ".join(f"{v:+.3f}" for v in row) + "]")
        return "\n".join(lines)

    def close(self) -> None:
        """Shut down the worker pool."""
        self._executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def get_summary(self) -> dict:
        """Get summary statistics for the simulation."""
        return {
            'iterations': self.iteration,
            'populations': len(self.grids),
            'agents_total': len(self.agents),
            'agents_per_population': self.agents.per_population,
            'agents_requested': self.config.particles,
            'diffusivity': self.diffusivity,
        }
