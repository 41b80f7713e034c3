import math

import numpy as np
import pytest

from physarum.config import GridConfig, PopulationConfig, SimulationConfig
from physarum.model.engine import Model
from physarum.model.grid import Grid


@pytest.fixture
def population_config() -> PopulationConfig:
    return PopulationConfig(
        sensor_distance=4.0,
        sensor_angle=math.radians(45),
        rotation_angle=math.radians(45),
        step_distance=1.0,
        deposition_amount=5.0,
        decay_factor=0.9,
    )


@pytest.fixture
def still_config() -> PopulationConfig:
    """Population config with decay disabled."""
    return PopulationConfig(
        sensor_distance=2.0,
        sensor_angle=math.radians(30),
        rotation_angle=math.radians(30),
        step_distance=1.0,
        deposition_amount=5.0,
        decay_factor=1.0,
    )


@pytest.fixture
def make_grid(still_config):
    def factory(width: int = 8, height: int = 8, config=None) -> Grid:
        return Grid(width, height, config or still_config)
    return factory


@pytest.fixture
def make_config(population_config):
    def factory(width=16, height=16, particles=64, populations=1,
                diffusivity=1, seed=0, workers=2, **kwargs) -> SimulationConfig:
        kwargs.setdefault('population_configs',
                          [population_config] * populations)
        return SimulationConfig(
            grid=GridConfig(width=width, height=height),
            particles=particles,
            populations=populations,
            diffusivity=diffusivity,
            seed=seed,
            workers=workers,
            **kwargs
        )
    return factory


@pytest.fixture
def make_model(make_config):
    models = []

    def factory(**kwargs) -> Model:
        model = Model(make_config(**kwargs))
        models.append(model)
        return model

    yield factory
    for model in models:
        model.close()


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)
