"""Configuration dataclasses and YAML loader for the Physarum simulation."""

import math
from logging import getLevelName
from dataclasses import dataclass, field, fields
from typing import List, Tuple, Dict, Any, Optional
from pathlib import Path

import numpy as np
import yaml


class ConfigError(ValueError):
    """Raised when a configuration violates a precondition of the model."""


@dataclass
class GridConfig:
    width: int
    height: int


@dataclass(frozen=True)
class PopulationConfig:
    """Behavior of one population. Angles are in radians."""
    sensor_distance: float
    sensor_angle: float      # half-angle between center and side sensors
    rotation_angle: float
    step_distance: float
    deposition_amount: float
    decay_factor: float      # fraction of trail kept after each diffusion

    @classmethod
    def random(cls, rng: np.random.Generator,
               ranges: "PopulationRanges") -> "PopulationConfig":
        """Draw every parameter uniformly from its configured range."""
        def draw(bounds: Tuple[float, float]) -> float:
            low, high = bounds
            return float(rng.uniform(low, high)) if high > low else float(low)

        return cls(
            sensor_distance=draw(ranges.sensor_distance),
            sensor_angle=math.radians(draw(ranges.sensor_angle)),
            rotation_angle=math.radians(draw(ranges.rotation_angle)),
            step_distance=draw(ranges.step_distance),
            deposition_amount=draw(ranges.deposition_amount),
            decay_factor=draw(ranges.decay_factor),
        )

    def __str__(self) -> str:
        return (f"{{sensor_distance: {self.sensor_distance:.3f}, "
                f"sensor_angle: {math.degrees(self.sensor_angle):.3f}°, "
                f"rotation_angle: {math.degrees(self.rotation_angle):.3f}°, "
                f"step_distance: {self.step_distance:.3f}, "
                f"deposition_amount: {self.deposition_amount:.3f}, "
                f"decay_factor: {self.decay_factor:.3f}}}")


@dataclass
class PopulationRanges:
    """Min/max bounds for random population configs. Angles in degrees."""
    sensor_distance: Tuple[float, float] = (0.0, 64.0)
    sensor_angle: Tuple[float, float] = (0.0, 120.0)
    rotation_angle: Tuple[float, float] = (0.0, 120.0)
    step_distance: Tuple[float, float] = (0.2, 2.0)
    deposition_amount: Tuple[float, float] = (5.0, 5.0)
    decay_factor: Tuple[float, float] = (0.9, 0.9)


@dataclass
class AttractionConfig:
    attraction_mean: float = 1.0
    attraction_std: float = 0.1
    repulsion_mean: float = -1.0
    repulsion_std: float = 0.1
    table: Optional[List[List[float]]] = None


@dataclass
class ExportConfig:
    snapshot_interval: int = 0   # 0 = final state only
    queue_size: int = 4
    stats_enabled: bool = False
    quantile: float = 0.999


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: str = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
    log_file: Optional[Path] = None


@dataclass
class SimulationConfig:
    grid: GridConfig
    iterations: int = 400
    particles: int = 1 << 16
    populations: int = 1
    diffusivity: int = 1
    attraction: AttractionConfig = field(default_factory=AttractionConfig)
    ranges: PopulationRanges = field(default_factory=PopulationRanges)
    population_configs: List[PopulationConfig] = field(default_factory=list)
    export: ExportConfig = field(default_factory=ExportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    seed: Optional[int] = None
    workers: Optional[int] = None
    chunk_size: int = 1 << 16
    quiet: bool = False
    out_dir: Path = field(default_factory=lambda: Path("./output"))

    def validate(self) -> None:
        """Raise ConfigError for the first violated precondition."""
        if self.grid.width <= 0 or self.grid.height <= 0:
            raise ConfigError(
                f"grid dimensions must be positive, got "
                f"{self.grid.width}x{self.grid.height}")
        if self.populations < 1:
            raise ConfigError(
                f"population count must be at least 1, got {self.populations}")
        if self.particles < 1:
            raise ConfigError(
                f"particle count must be at least 1, got {self.particles}")
        if self.diffusivity < 0:
            raise ConfigError(
                f"diffusivity must be non-negative, got {self.diffusivity}")
        if self.iterations < 0:
            raise ConfigError(
                f"iteration count must be non-negative, got {self.iterations}")
        if self.chunk_size < 1:
            raise ConfigError(
                f"chunk size must be positive, got {self.chunk_size}")
        if self.seed is not None and self.seed < 0:
            raise ConfigError(f"seed must be non-negative, got {self.seed}")
        if self.workers is not None and self.workers < 1:
            raise ConfigError(f"worker count must be positive, got {self.workers}")

        for name in ("attraction_std", "repulsion_std"):
            std = getattr(self.attraction, name)
            if not math.isfinite(std) or std < 0:
                raise ConfigError(f"attraction.{name} must be a finite "
                                  f"non-negative number, got {std}")
        for name in ("attraction_mean", "repulsion_mean"):
            if not math.isfinite(getattr(self.attraction, name)):
                raise ConfigError(f"attraction.{name} must be finite")

        table = self.attraction.table
        if table is not None:
            if len(table) != self.populations or any(
                    len(row) != self.populations for row in table):
                raise ConfigError(
                    f"attraction table must be {self.populations}x"
                    f"{self.populations}")
            if not all(math.isfinite(v) for row in table for v in row):
                raise ConfigError("attraction table entries must be finite")

        for i, population in enumerate(self.population_configs):
            for f in fields(PopulationConfig):
                _check_population_value(f"populations[{i}]", f.name,
                                        getattr(population, f.name))

        for f in fields(PopulationRanges):
            low, high = getattr(self.ranges, f.name)
            _check_population_value("population_ranges", f.name, low)
            _check_population_value("population_ranges", f.name, high)
            if low > high:
                raise ConfigError(
                    f"range for {f.name} is inverted: [{low}, {high}]")

        if len(self.population_configs) > self.populations:
            raise ConfigError(
                f"{len(self.population_configs)} population configs given "
                f"for {self.populations} populations")

        if not 0.0 <= self.export.quantile <= 1.0:
            raise ConfigError(
                f"export quantile must lie in [0, 1], got {self.export.quantile}")
        if self.export.snapshot_interval < 0:
            raise ConfigError("snapshot interval must be non-negative")
        if self.export.queue_size < 1:
            raise ConfigError("snapshot queue size must be positive")
        if not isinstance(getLevelName(self.logging.level), int):
            raise ConfigError(f"unknown log level: {self.logging.level}")


_NON_NEGATIVE = ("sensor_distance", "step_distance", "deposition_amount")


def _check_population_value(where: str, name: str, value: float) -> None:
    """Raise ConfigError unless `value` is usable for population field `name`."""
    if not math.isfinite(value):
        raise ConfigError(f"{where}.{name} must be finite, got {value}")
    if name in _NON_NEGATIVE and value < 0:
        raise ConfigError(f"{where}.{name} must be non-negative, got {value}")
    if name == "decay_factor" and not 0.0 <= value <= 1.0:
        raise ConfigError(f"{where}.{name} must lie in [0, 1], got {value}")


def _parse_population(raw: Dict[str, Any]) -> PopulationConfig:
    """Parse one explicit population config; YAML angles are in degrees."""
    try:
        return PopulationConfig(
            sensor_distance=float(raw['sensor_distance']),
            sensor_angle=math.radians(raw['sensor_angle']),
            rotation_angle=math.radians(raw['rotation_angle']),
            step_distance=float(raw['step_distance']),
            deposition_amount=float(raw.get('deposition_amount', 5.0)),
            decay_factor=float(raw.get('decay_factor', 0.9)),
        )
    except KeyError as e:
        raise ConfigError(f"population config missing key: {e.args[0]}") from e


def _parse_ranges(raw: Dict[str, Any]) -> PopulationRanges:
    """Parse [min, max] pairs, keeping defaults for omitted parameters."""
    ranges = PopulationRanges()
    for f in fields(PopulationRanges):
        if f.name in raw:
            bounds = raw[f.name]
            if not isinstance(bounds, (list, tuple)) or len(bounds) != 2:
                raise ConfigError(f"range for {f.name} must be [min, max]")
            setattr(ranges, f.name, (float(bounds[0]), float(bounds[1])))
    return ranges


def load_config(config_path: Path) -> SimulationConfig:
    """Load and validate YAML configuration file."""
    with open(config_path) as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"cannot parse {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(
            f"{config_path} must contain a mapping, got {type(raw).__name__}")

    try:
        config = _build_config(raw)
    except ConfigError:
        raise
    except (ValueError, TypeError, AttributeError) as e:
        raise ConfigError(f"malformed value in {config_path}: {e}") from e
    config.validate()
    return config


def _build_config(raw: Dict[str, Any]) -> SimulationConfig:
    grid_raw = raw.get('grid', {})
    grid = GridConfig(
        width=int(grid_raw.get('width', 1024)),
        height=int(grid_raw.get('height', 1024))
    )

    sim_raw = raw.get('simulation', {})

    attr_raw = raw.get('attraction', {})
    attraction = AttractionConfig(
        attraction_mean=float(attr_raw.get('attraction_mean', 1.0)),
        attraction_std=float(attr_raw.get('attraction_std', 0.1)),
        repulsion_mean=float(attr_raw.get('repulsion_mean', -1.0)),
        repulsion_std=float(attr_raw.get('repulsion_std', 0.1)),
        table=attr_raw.get('table')
    )

    export_raw = raw.get('export', {})
    export = ExportConfig(
        snapshot_interval=int(export_raw.get('snapshot_interval', 0)),
        queue_size=int(export_raw.get('queue_size', 4)),
        stats_enabled=bool(export_raw.get('stats', False)),
        quantile=float(export_raw.get('quantile', 0.999))
    )

    log_raw = raw.get('logging', {})
    log_file = log_raw.get('log_file')
    logging_config = LoggingConfig(
        level=str(log_raw.get('level', 'INFO')).upper(),
        format=log_raw.get('format', LoggingConfig.format),
        log_file=Path(log_file) if log_file else None
    )

    seed = sim_raw.get('seed')
    workers = sim_raw.get('workers')
    return SimulationConfig(
        grid=grid,
        iterations=int(sim_raw.get('iterations', 400)),
        particles=int(sim_raw.get('particles', 1 << 16)),
        populations=int(sim_raw.get('populations', 1)),
        diffusivity=int(sim_raw.get('diffusivity', 1)),
        attraction=attraction,
        ranges=_parse_ranges(raw.get('population_ranges', {})),
        population_configs=[_parse_population(p)
                            for p in raw.get('populations', [])],
        export=export,
        logging=logging_config,
        seed=int(seed) if seed is not None else None,
        workers=int(workers) if workers is not None else None,
        chunk_size=int(sim_raw.get('chunk_size', 1 << 16)),
    )
